import numpy as np
import pytest

from autocrop.models.errors import DegenerateGeometryError
from autocrop.models.image_model import (
    BackgroundFill,
    BoundingBox,
    FitMode,
    ProcessingConfig,
    RawImage,
)
from autocrop.services.canvas_service import CanvasService
from autocrop.services.codec_service import CodecService

from conftest import solid


@pytest.fixture
def canvas():
    return CanvasService(CodecService())


def test_square_padding_puts_odd_remainder_right_and_bottom():
    # (top, bottom, left, right)
    assert CanvasService.square_padding(3, 6) == (0, 0, 1, 2)
    assert CanvasService.square_padding(10, 7) == (1, 2, 0, 0)
    assert CanvasService.square_padding(4, 4) == (0, 0, 0, 0)


def test_crop_extracts_region_as_new_buffer(canvas):
    arr = np.arange(6 * 5 * 4, dtype=np.uint8).reshape(5, 6, 4)
    image = RawImage.from_array(arr)
    cropped = canvas.crop(image, BoundingBox(top=1, left=2, bottom=4, right=5))

    assert (cropped.width, cropped.height) == (3, 3)
    assert np.array_equal(cropped.pixels, arr[1:4, 2:5])
    cropped.pixels[:] = 0
    assert np.array_equal(image.pixels, arr)


@pytest.mark.parametrize("box", [
    BoundingBox(top=2, left=0, bottom=2, right=4),
    BoundingBox(top=0, left=3, bottom=4, right=3),
    BoundingBox(top=0, left=0, bottom=5, right=4),
])
def test_degenerate_crop_raises(canvas, box):
    image = RawImage.from_array(solid(4, 4, (0, 0, 0, 255)))
    with pytest.raises(DegenerateGeometryError):
        canvas.crop(image, box)


def test_pad_to_square_fills_with_background(canvas):
    image = RawImage.from_array(solid(3, 6, (255, 0, 0, 255)))
    square = canvas.pad_to_square(image, BackgroundFill.parse("#00FF00"))

    assert (square.width, square.height) == (6, 6)
    assert square.pixels[0, 0].tolist() == [0, 255, 0, 255]
    assert square.pixels[0, 1].tolist() == [255, 0, 0, 255]
    assert square.pixels[0, 3].tolist() == [255, 0, 0, 255]
    assert square.pixels[0, 4].tolist() == [0, 255, 0, 255]
    assert square.pixels[0, 5].tolist() == [0, 255, 0, 255]


def test_pad_to_square_transparent_fill(canvas):
    image = RawImage.from_array(solid(4, 2, (9, 9, 9, 255)))
    square = canvas.pad_to_square(image, BackgroundFill.transparent())
    assert square.pixels[0, 0, 3] == 0
    assert square.pixels[3, 0, 3] == 0
    assert square.pixels[1, 0].tolist() == [9, 9, 9, 255]


@pytest.mark.parametrize("size, shape", [(64, (10, 30)), (17, (50, 3)), (1, (8, 8)), (200, (5, 9))])
def test_pad_mode_output_is_target_square(canvas, size, shape):
    h, w = shape
    image = RawImage.from_array(solid(w, h, (200, 10, 10, 255)))
    config = ProcessingConfig(target_size=size, fit_mode=FitMode.PAD_TO_SQUARE)

    out = canvas.compose(image, BoundingBox.full(image), config)

    assert out.width == out.height == size


def test_pad_mode_exact_layout_without_resampling(canvas):
    arr = solid(10, 10, (0, 0, 0, 0))
    arr[2:8, 4:6] = (0, 0, 255, 255)
    image = RawImage.from_array(arr)
    config = ProcessingConfig(target_size=6, fit_mode=FitMode.PAD_TO_SQUARE)

    out = canvas.compose(image, BoundingBox(top=2, left=4, bottom=8, right=6), config)

    assert out.pixels[:, 2:4].tolist() == [[[0, 0, 255, 255]] * 2] * 6
    assert (out.alpha[:, :2] == 0).all()
    assert (out.alpha[:, 4:] == 0).all()


def test_contain_mode_letterboxes_with_fill(canvas):
    image = RawImage.from_array(solid(40, 20, (255, 0, 0, 255)))
    fill = BackgroundFill.parse("#0000ff")
    config = ProcessingConfig(target_size=20, background_fill=fill, fit_mode=FitMode.RESIZE_CONTAIN)

    out = canvas.compose(image, BoundingBox.full(image), config)

    assert (out.width, out.height) == (20, 20)
    assert out.pixels[0, 10].tolist() == [0, 0, 255, 255]
    assert out.pixels[19, 10].tolist() == [0, 0, 255, 255]
    centre = out.pixels[10, 10]
    assert centre[0] >= 250 and centre[2] <= 5
