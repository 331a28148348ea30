"""Декодирование/кодирование PNG и ресайз сырых RGBA-буферов на Pillow.

Принципы:
- SRP: класс отвечает только за границу с библиотекой изображений.
- DIP: конвейер зависит от методов `decode`/`encode`/`resize`, а не от Pillow напрямую.
- Ошибки Pillow переводятся в `DecodeError`, `EncodeError`, `ResizeError`.
"""
from __future__ import annotations

import io
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError, features

from autocrop.models.errors import DecodeError, EncodeError, ResizeError, ResourceUnavailableError
from autocrop.models.image_model import (
    BackgroundFill,
    EncodeOptions,
    RawImage,
    Resample,
    ResizeFit,
    ResizeOptions,
)


_RESAMPLE_FILTERS = {
    Resample.LANCZOS3: Image.Resampling.LANCZOS,
}


class CodecService:
    def __init__(self) -> None:
        """Проверяет, что Pillow собран с поддержкой zlib (нужна для PNG).

        Raises:
            ResourceUnavailableError: если PNG-кодек недоступен.
        """
        try:
            zlib_ok = bool(features.check("zlib"))
        except (ValueError, OSError) as exc:
            raise ResourceUnavailableError(f"Не удалось проверить возможности Pillow: {exc}") from exc
        if not zlib_ok:
            raise ResourceUnavailableError("Pillow собран без поддержки zlib: PNG недоступен")

    # ---------- Декодирование ----------
    def decode(self, data: bytes) -> RawImage:
        """Декодирует байты PNG в сырой RGBA-буфер.

        Args:
            data: Закодированное изображение.

        Returns:
            `RawImage` размером исходного изображения.

        Raises:
            DecodeError: если байты не являются читаемым PNG или размеры нулевые.
        """
        if not data:
            raise DecodeError("Пустые входные данные")
        try:
            with Image.open(io.BytesIO(data)) as pil_image:
                if pil_image.format != "PNG":
                    raise DecodeError(f"Ожидался PNG, получен {pil_image.format or 'неизвестный формат'}")
                rgba = pil_image.convert("RGBA")
        except UnidentifiedImageError as exc:
            raise DecodeError("Данные не являются изображением") from exc
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            if isinstance(exc, DecodeError):
                raise
            # truncated files and broken chunks surface here
            raise DecodeError(f"Не удалось прочитать изображение: {exc}") from exc

        width, height = rgba.size
        if width == 0 or height == 0:
            raise DecodeError(f"Изображение без размеров: {width}x{height}")
        return self.from_pil(rgba)

    # ---------- Кодирование ----------
    def encode(self, image: RawImage, options: Optional[EncodeOptions] = None) -> bytes:
        """Кодирует буфер в PNG.

        Pillow сам подбирает фильтр строк для полноцветных изображений;
        `adaptive_filtering` дополнительно включает `optimize`.

        Raises:
            EncodeError: если кодирование не удалось.
        """
        opts = options or EncodeOptions()
        buffer = io.BytesIO()
        try:
            self.to_pil(image).save(
                buffer,
                format="PNG",
                compress_level=opts.compression_level,
                optimize=opts.adaptive_filtering,
            )
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Не удалось закодировать PNG: {exc}") from exc
        return buffer.getvalue()

    # ---------- Ресайз ----------
    def resize(
        self,
        image: RawImage,
        width: int,
        height: int,
        options: Optional[ResizeOptions] = None,
    ) -> RawImage:
        """Меняет размер буфера.

        - `FILL`: растягивает ровно до `width x height`.
        - `CONTAIN`: вписывает с сохранением пропорций и центрирует на холсте
          `width x height`, залитом `options.background`.

        Raises:
            ResizeError: при некорректных размерах или ошибке Pillow.
        """
        opts = options or ResizeOptions()
        if width <= 0 or height <= 0:
            raise ResizeError(f"Некорректный целевой размер: {width}x{height}")
        if image.width == 0 or image.height == 0:
            raise ResizeError(f"Нельзя изменить размер пустого изображения: {image.width}x{image.height}")

        resample = _RESAMPLE_FILTERS[opts.resample]
        try:
            src = self.to_pil(image)
            if opts.fit == ResizeFit.FILL:
                out = self._resize_exact(src, width, height, resample)
            else:
                out = self._resize_contain(src, width, height, resample, opts.background)
        except (OSError, ValueError, MemoryError) as exc:
            raise ResizeError(f"Не удалось изменить размер: {exc}") from exc
        return self.from_pil(out)

    # ---------- Вспомогательные функции ----------
    def _resize_exact(self, src: Image.Image, width: int, height: int, resample: int) -> Image.Image:
        if src.size == (width, height):
            return src.copy()
        return src.resize((width, height), resample)

    def _resize_contain(
        self,
        src: Image.Image,
        width: int,
        height: int,
        resample: int,
        background: BackgroundFill,
    ) -> Image.Image:
        scale = min(width / src.width, height / src.height)
        new_w = min(width, max(1, int(round(src.width * scale))))
        new_h = min(height, max(1, int(round(src.height * scale))))
        content = self._resize_exact(src, new_w, new_h, resample)
        if (new_w, new_h) == (width, height):
            return content
        canvas = Image.new("RGBA", (width, height), background.rgba)
        # paste without mask: content pixels (alpha included) replace the fill
        canvas.paste(content, ((width - new_w) // 2, (height - new_h) // 2))
        return canvas

    @staticmethod
    def to_pil(image: RawImage) -> Image.Image:
        # (h, w, 4) uint8 arrays map to RGBA
        return Image.fromarray(np.ascontiguousarray(image.pixels))

    @staticmethod
    def from_pil(pil_image: Image.Image) -> RawImage:
        if pil_image.mode != "RGBA":
            pil_image = pil_image.convert("RGBA")
        return RawImage.from_array(np.array(pil_image, dtype=np.uint8))
