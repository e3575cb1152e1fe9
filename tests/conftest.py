import io
import os
import tempfile

import pytest
from PIL import Image

# keep the module-level app in server.py out of the working directory
_scratch = tempfile.mkdtemp(prefix="faceswap-tests-")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_scratch, "uploads"))
os.environ.setdefault("OUTPUT_DIR", os.path.join(_scratch, "outputs"))

from tools.storage import EphemeralStore  # noqa: E402


def image_bytes(width, height, color=(200, 120, 80), fmt="JPEG"):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def store(tmp_path):
    return EphemeralStore(tmp_path / "uploads", tmp_path / "outputs")
