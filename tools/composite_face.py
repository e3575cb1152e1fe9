"""
Rectangular face compositing.

The source face box is cut out, resized to cover the target face box, pasted
over the target as an opaque rectangle, then the whole picture is capped at
MAX_SIZE on its longer side and encoded as JPEG. No blending, no alignment.
"""

import argparse
import io
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from tools.errors import CompositeError, ExtractionError, UnreadableImage
from tools.region import Region, estimate_for

MAX_SIZE = 1024
JPEG_QUALITY = 85


def load_image(data: bytes) -> Image.Image:
    """Decode raw upload bytes into an upright RGB image."""
    if not data:
        raise UnreadableImage("Image file is empty")
    try:
        img = Image.open(io.BytesIO(data))
        img = ImageOps.exif_transpose(img)
        return img.convert("RGB")
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise UnreadableImage(f"Could not read image: {e}") from e


def _cover_resize(patch: np.ndarray, width: int, height: int) -> np.ndarray:
    # scale to fill the box, then centre-crop the overflow
    src_h, src_w = patch.shape[:2]
    scale = max(width / src_w, height / src_h)
    new_w = max(width, int(round(src_w * scale)))
    new_h = max(height, int(round(src_h * scale)))

    interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
    resized = cv2.resize(
        np.ascontiguousarray(patch), (new_w, new_h), interpolation=interpolation
    )

    x = (new_w - width) // 2
    y = (new_h - height) // 2
    return resized[y : y + height, x : x + width]


def downscale(img: Image.Image, max_size: int = MAX_SIZE) -> Image.Image:
    if max(img.size) <= max_size:
        return img
    scale = max_size / max(img.size)
    new_w = max(1, min(max_size, round(img.width * scale)))
    new_h = max(1, min(max_size, round(img.height * scale)))
    return img.resize((new_w, new_h), Image.LANCZOS)


def encode_jpeg(img: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def composite(
    source: Image.Image,
    source_region: Region,
    target: Image.Image,
    target_region: Region,
    max_size: int = MAX_SIZE,
) -> Image.Image:
    """
    Paste the source face box over the target face box.

    Raises:
        ExtractionError: source_region is empty or not inside source.
        CompositeError: target_region is empty or not inside target.
    """
    if source_region.is_empty or not source_region.fits_within(
        source.width, source.height
    ):
        raise ExtractionError(
            f"Source region {source_region.box} does not fit in "
            f"{source.width}x{source.height} source image"
        )
    if target_region.is_empty or not target_region.fits_within(
        target.width, target.height
    ):
        raise CompositeError(
            f"Target region {target_region.box} does not fit in "
            f"{target.width}x{target.height} target image"
        )

    src = np.array(source.convert("RGB"))
    face = src[
        source_region.top : source_region.top + source_region.height,
        source_region.left : source_region.left + source_region.width,
    ]
    face_resized = _cover_resize(face, target_region.width, target_region.height)

    result = np.array(target.convert("RGB"))
    x, y = target_region.left, target_region.top
    result[y : y + target_region.height, x : x + target_region.width] = face_resized

    return downscale(Image.fromarray(result), max_size)


def swap(
    source: Image.Image,
    source_region: Region,
    target: Image.Image,
    target_region: Region,
    max_size: int = MAX_SIZE,
    quality: int = JPEG_QUALITY,
) -> bytes:
    """Composite and encode; returns JPEG bytes."""
    result = composite(source, source_region, target, target_region, max_size)
    return encode_jpeg(result, quality)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Swap the face box of two images")
    parser.add_argument("source", type=Path)
    parser.add_argument("target", type=Path)
    parser.add_argument("output", type=Path)
    parser.add_argument("--max-size", type=int, default=MAX_SIZE)
    parser.add_argument("--quality", type=int, default=JPEG_QUALITY)
    args = parser.parse_args(argv)

    source = load_image(args.source.read_bytes())
    target = load_image(args.target.read_bytes())
    data = swap(
        source,
        estimate_for(source),
        target,
        estimate_for(target),
        max_size=args.max_size,
        quality=args.quality,
    )
    args.output.write_bytes(data)
    print(f"Saved composited image to {args.output}")


if __name__ == "__main__":
    main()
