"""Сборка итогового холста: обрезка по границам, квадрат или вписывание, ресайз.

Принципы:
- SRP: геометрия холста; ресайз делегируется кодеку.
- DIP: зависит от `CodecService` как от роли «ресайз с фильтром Lanczos».
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from autocrop.models.errors import DegenerateGeometryError
from autocrop.models.image_model import (
    BackgroundFill,
    BoundingBox,
    FitMode,
    ProcessingConfig,
    RawImage,
    ResizeFit,
    ResizeOptions,
)
from autocrop.services.codec_service import CodecService


class CanvasService:
    def __init__(self, codec: CodecService) -> None:
        self._codec = codec

    def compose(self, image: RawImage, bounds: BoundingBox, config: ProcessingConfig) -> RawImage:
        """Строит итоговое изображение из обрезанного содержимого.

        - `PAD_TO_SQUARE`: дополняет до квадрата заливкой фона (нечётный остаток
          уходит вправо/вниз) и растягивает до `target_size x target_size`.
        - `RESIZE_CONTAIN`: вписывает обрезку в `target_size x target_size`
          с сохранением пропорций, поля заливаются фоном.

        Raises:
            DegenerateGeometryError: если обрезка пуста или выходит за изображение.
        """
        cropped = self.crop(image, bounds)
        size = config.target_size

        if config.fit_mode == FitMode.RESIZE_CONTAIN:
            return self._codec.resize(
                cropped,
                size,
                size,
                ResizeOptions(fit=ResizeFit.CONTAIN, background=config.background_fill),
            )

        square = self.pad_to_square(cropped, config.background_fill)
        return self._codec.resize(
            square,
            size,
            size,
            ResizeOptions(fit=ResizeFit.FILL, background=config.background_fill),
        )

    def crop(self, image: RawImage, bounds: BoundingBox) -> RawImage:
        """Копирует подпрямоугольник `bounds` в новый буфер."""
        if not bounds.is_valid_for(image):
            raise DegenerateGeometryError(
                f"Обрезка {bounds} недопустима для изображения {image.width}x{image.height}"
            )
        region = image.pixels[bounds.top:bounds.bottom, bounds.left:bounds.right]
        return RawImage.from_array(region.copy())

    def pad_to_square(self, image: RawImage, fill: BackgroundFill) -> RawImage:
        """Центрирует изображение на квадратном холсте со стороной `max(w, h)`."""
        side = max(image.width, image.height)
        pad_top, pad_bottom, pad_left, pad_right = self.square_padding(image.width, image.height)
        if side == image.width == image.height:
            return image

        canvas = np.empty((side, side, 4), dtype=np.uint8)
        canvas[:, :] = fill.rgba
        canvas[pad_top:side - pad_bottom, pad_left:side - pad_right] = image.pixels
        return RawImage(width=side, height=side, pixels=canvas)

    @staticmethod
    def square_padding(width: int, height: int) -> Tuple[int, int, int, int]:
        """Поля `(top, bottom, left, right)`; нечётный остаток — справа и снизу."""
        side = max(width, height)
        pad_left = (side - width) // 2
        pad_top = (side - height) // 2
        pad_right = side - width - pad_left
        pad_bottom = side - height - pad_top
        return pad_top, pad_bottom, pad_left, pad_right
