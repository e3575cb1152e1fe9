import io

import numpy as np
import pytest
from PIL import Image

from tools.composite_face import composite, load_image, swap
from tools.errors import CompositeError, ExtractionError, UnreadableImage
from tools.region import Region, estimate


def solid(width, height, color):
    return Image.new("RGB", (width, height), color)


def test_overlay_replaces_target_region_only():
    source = solid(200, 200, (255, 0, 0))
    target = solid(100, 50, (0, 0, 255))
    t_region = estimate(100, 50)

    out = np.asarray(composite(source, estimate(200, 200), target, t_region))

    assert out.shape == (50, 100, 3)
    inside = out[t_region.top : t_region.top + t_region.height,
                 t_region.left : t_region.left + t_region.width]
    assert (inside == [255, 0, 0]).all()
    assert (out[0, 0] == [0, 0, 255]).all()
    assert (out[-1, -1] == [0, 0, 255]).all()


def test_cover_resize_centre_crops():
    # left half black, right half white; a wide patch into a square box
    # keeps the middle, so both colours survive
    arr = np.zeros((100, 400, 3), dtype=np.uint8)
    arr[:, 200:] = 255
    source = Image.fromarray(arr)
    target = solid(100, 100, (0, 255, 0))

    out = np.asarray(
        composite(source, Region(0, 0, 400, 100), target, Region(10, 10, 50, 50))
    )
    patch = out[10:60, 10:60]
    assert (patch[:, 0] < 10).all()
    assert (patch[:, -1] > 245).all()


def test_downscales_to_cap():
    target = solid(3000, 1500, (0, 0, 255))
    source = solid(300, 300, (255, 0, 0))
    out = composite(source, estimate(300, 300), target, estimate(3000, 1500))
    assert max(out.size) <= 1024
    assert out.width == 1024
    assert abs(out.width / out.height - 2.0) < 0.01


def test_never_upscales_small_targets():
    target = solid(320, 240, (0, 0, 255))
    source = solid(2000, 2000, (255, 0, 0))
    out = composite(source, estimate(2000, 2000), target, estimate(320, 240))
    assert out.size == (320, 240)


def test_swap_returns_jpeg():
    data = swap(
        solid(50, 50, (255, 0, 0)),
        estimate(50, 50),
        solid(80, 60, (0, 0, 255)),
        estimate(80, 60),
    )
    img = Image.open(io.BytesIO(data))
    assert img.format == "JPEG"
    assert img.size == (80, 60)


def test_source_region_out_of_bounds():
    with pytest.raises(ExtractionError):
        composite(solid(50, 50, (0, 0, 0)), Region(40, 40, 20, 20),
                  solid(50, 50, (0, 0, 0)), Region(0, 0, 10, 10))


def test_empty_source_region():
    with pytest.raises(ExtractionError):
        composite(solid(1, 1, (0, 0, 0)), estimate(1, 1),
                  solid(50, 50, (0, 0, 0)), Region(0, 0, 10, 10))


def test_target_region_out_of_bounds():
    with pytest.raises(CompositeError):
        composite(solid(50, 50, (0, 0, 0)), Region(0, 0, 10, 10),
                  solid(50, 50, (0, 0, 0)), Region(45, 0, 10, 10))


def test_load_image_rejects_garbage():
    with pytest.raises(UnreadableImage):
        load_image(b"definitely not an image")
    with pytest.raises(UnreadableImage):
        load_image(b"")


def test_load_image_converts_to_rgb():
    buf = io.BytesIO()
    Image.new("RGBA", (10, 10), (1, 2, 3, 128)).save(buf, format="PNG")
    img = load_image(buf.getvalue())
    assert img.mode == "RGB"
    assert img.size == (10, 10)


def test_command_line(tmp_path):
    from tools.composite_face import main

    solid(100, 100, (255, 0, 0)).save(tmp_path / "face.png")
    solid(2048, 1024, (0, 0, 255)).save(tmp_path / "photo.jpg")
    out = tmp_path / "out.jpg"

    main([str(tmp_path / "face.png"), str(tmp_path / "photo.jpg"), str(out)])

    assert Image.open(out).size == (1024, 512)
