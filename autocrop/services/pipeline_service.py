"""Конвейер автокропа: байты PNG -> фон -> прозрачность -> границы -> холст -> байты PNG.

Принципы:
- SRP: оркестрация стадий; пиксельная логика — в отдельных сервисах.
- Буфер принадлежит конвейеру на время одного вызова и передаётся между стадиями
  без совместного изменения.
- Единственная локально обрабатываемая ошибка — `DegenerateGeometryError`
  (откат на простой ресайз). Ошибки кодека пробрасываются.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from loguru import logger

from autocrop.models.errors import DegenerateGeometryError
from autocrop.models.image_model import (
    Color,
    EncodeOptions,
    ProcessingConfig,
    RawImage,
    ResizeFit,
    ResizeOptions,
)
from autocrop.services.background_service import BackgroundService
from autocrop.services.bounds_service import BoundsService
from autocrop.services.canvas_service import CanvasService
from autocrop.services.codec_service import CodecService
from autocrop.services.mask_service import MaskService


class PipelineStage(str, Enum):
    DECODED = "decoded"
    BACKGROUND_REMOVED = "background_removed"
    BOUNDED = "bounded"
    COMPOSED = "composed"
    ENCODED = "encoded"


@dataclass(frozen=True)
class PipelineResult:
    """Результат одного прогона.

    Fields:
        data: Закодированный PNG.
        width, height: Размер результата, px.
        background: Найденный цвет фона или `None`.
        fallback: Использован ли простой ресайз вместо обрезки.
    """
    data: bytes
    width: int
    height: int
    background: Optional[Color]
    fallback: bool


class AutocropPipeline:
    def __init__(
        self,
        codec: Optional[CodecService] = None,
        background: Optional[BackgroundService] = None,
        masker: Optional[MaskService] = None,
        bounds: Optional[BoundsService] = None,
        canvas: Optional[CanvasService] = None,
        encode_options: Optional[EncodeOptions] = None,
    ) -> None:
        # CodecService() raises ResourceUnavailableError when Pillow lacks PNG support
        self._codec = codec or CodecService()
        self._background = background or BackgroundService()
        self._masker = masker or MaskService()
        self._bounds = bounds or BoundsService()
        self._canvas = canvas or CanvasService(self._codec)
        self._encode_options = encode_options or EncodeOptions(compression_level=9, adaptive_filtering=True)

    @property
    def codec(self) -> CodecService:
        return self._codec

    def process(self, data: bytes, config: ProcessingConfig) -> bytes:
        """Автокроп PNG-байтов; возвращает закодированный результат."""
        return self.run(data, config).data

    def run(self, data: bytes, config: ProcessingConfig) -> PipelineResult:
        """Полный прогон с метаданными результата.

        Raises:
            DecodeError: входные байты не читаются.
            ResizeError, EncodeError: ошибка кодека на выходе.
        """
        image = self._codec.decode(data)
        logger.debug(f"{PipelineStage.DECODED.value}: {image.width}x{image.height}")

        bg = self._background.detect(image)
        if bg is not None:
            masked = self._masker.apply(image, bg, config.background_tolerance)
            logger.debug(f"{PipelineStage.BACKGROUND_REMOVED.value}: bg={bg.as_tuple()} masked={masked}")

        fallback = False
        try:
            composed = self._crop_and_compose(image, config)
        except DegenerateGeometryError as exc:
            logger.warning(f"Обрезка невозможна ({exc}); выполняется простой ресайз")
            composed = self.resize_only(data, config)
            fallback = True

        out = self._codec.encode(composed, self._encode_options)
        logger.debug(f"{PipelineStage.ENCODED.value}: {len(out)} bytes")
        return PipelineResult(
            data=out,
            width=composed.width,
            height=composed.height,
            background=bg,
            fallback=fallback,
        )

    def resize_only(self, data: bytes, config: ProcessingConfig) -> RawImage:
        """Откат: исходное изображение без обрезки вписывается в `target_size x target_size`."""
        original = self._codec.decode(data)
        size = config.target_size
        return self._codec.resize(
            original,
            size,
            size,
            ResizeOptions(fit=ResizeFit.CONTAIN, background=config.background_fill),
        )

    # ---------- Вспомогательные функции ----------
    def _crop_and_compose(self, image: RawImage, config: ProcessingConfig) -> RawImage:
        if not self._bounds.has_content(image, config.trim_threshold):
            raise DegenerateGeometryError(
                f"нет пикселей с альфой выше {config.trim_threshold}"
            )
        box = self._bounds.find_bounds(image, config.trim_threshold)
        logger.debug(f"{PipelineStage.BOUNDED.value}: {box}")

        composed = self._canvas.compose(image, box, config)
        logger.debug(f"{PipelineStage.COMPOSED.value}: {composed.width}x{composed.height}")
        return composed
