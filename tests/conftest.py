"""Pytest configuration.

Tests import modules from the repository root (e.g. `from autocrop.services.mask_service import MaskService`).
When running pytest from outside the repo the root isn't always on `sys.path`,
so it is added here. Shared fixtures build PNG bytes and raw buffers in memory.
"""

import io
import os
import sys

import numpy as np
import pytest
from PIL import Image


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from autocrop.models.image_model import RawImage  # noqa: E402


class ManualClock:
    def __init__(self, start=0.0):
        self.now = start

    def monotonic(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def png_bytes(pixels):
    """Encodes an (h, w, 4) uint8 array as PNG."""
    buf = io.BytesIO()
    Image.fromarray(np.asarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def solid(width, height, rgba):
    arr = np.empty((height, width, 4), dtype=np.uint8)
    arr[:, :] = rgba
    return arr


def illustration(width=100, height=60, bg=(255, 255, 255, 255), fg=(0, 0, 255, 255),
                 box=(10, 30, 50, 50)):
    """White canvas with a solid rectangle; box is (top, left, bottom, right)."""
    arr = solid(width, height, bg)
    top, left, bottom, right = box
    arr[top:bottom, left:right] = fg
    return arr


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_raw():
    def _make(pixels):
        return RawImage.from_array(np.array(pixels, dtype=np.uint8))
    return _make


@pytest.fixture
def vault(tmp_path):
    folder = tmp_path / "_Assets" / "Enluminures"
    folder.mkdir(parents=True)
    return tmp_path
