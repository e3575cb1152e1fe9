"""
Face region estimation.

This is NOT face detection. The "face" is assumed to sit in the middle of a
portrait-style photo, so the region is a fixed fractional box:
horizontal 25%-75%, vertical 20%-80% of the image.
"""

import math
from dataclasses import dataclass

from tools.errors import InvalidDimensions

LEFT_RATIO = 0.25
TOP_RATIO = 0.20
WIDTH_RATIO = 0.50
HEIGHT_RATIO = 0.60


@dataclass(frozen=True)
class Region:
    left: int
    top: int
    width: int
    height: int

    @property
    def box(self):
        """PIL-style (left, upper, right, lower) box."""
        return (self.left, self.top, self.left + self.width, self.top + self.height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def fits_within(self, width: int, height: int) -> bool:
        return (
            self.left >= 0
            and self.top >= 0
            and self.width >= 0
            and self.height >= 0
            and self.left + self.width <= width
            and self.top + self.height <= height
        )


def estimate(width: int, height: int) -> Region:
    if isinstance(width, bool) or isinstance(height, bool):
        raise InvalidDimensions(f"Invalid image size: {width}x{height}")
    if not isinstance(width, int) or not isinstance(height, int):
        raise InvalidDimensions(f"Invalid image size: {width}x{height}")
    if width <= 0 or height <= 0:
        raise InvalidDimensions(f"Invalid image size: {width}x{height}")

    return Region(
        left=math.floor(width * LEFT_RATIO),
        top=math.floor(height * TOP_RATIO),
        width=math.floor(width * WIDTH_RATIO),
        height=math.floor(height * HEIGHT_RATIO),
    )


def estimate_for(image) -> Region:
    return estimate(image.width, image.height)
