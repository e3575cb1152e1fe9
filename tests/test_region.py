import pytest

from tools.errors import InvalidDimensions
from tools.region import Region, estimate


def test_fixed_fractions():
    assert estimate(1000, 500) == Region(left=250, top=100, width=500, height=300)


def test_floors_fractional_values():
    assert estimate(7, 9) == Region(left=1, top=1, width=3, height=5)


@pytest.mark.parametrize(
    "width,height",
    [(1, 1), (2, 3), (3, 2), (17, 31), (640, 480), (4000, 3000), (1023, 1)],
)
def test_region_inside_image(width, height):
    r = estimate(width, height)
    assert r.fits_within(width, height)
    assert min(r.left, r.top, r.width, r.height) >= 0


def test_deterministic():
    assert estimate(1234, 987) == estimate(1234, 987)


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 5), (5, -1)])
def test_invalid_dimensions(width, height):
    with pytest.raises(InvalidDimensions):
        estimate(width, height)


def test_box():
    assert estimate(100, 100).box == (25, 20, 75, 80)
