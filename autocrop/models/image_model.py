"""Модели данных для сырых RGBA-изображений и параметров обработки.

Принципы:
- SRP: только структуры данных и их инварианты, без алгоритмов.
- Чистый код: неизменяемость (`frozen=True`) там, где значение не должно меняться
  во время одного прогона конвейера.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

import numpy as np


CHANNELS = 4


@dataclass(frozen=True, eq=False)
class RawImage:
    """Сырое RGBA-изображение (8 бит на канал).

    Fields:
        width: Ширина, px.
        height: Высота, px.
        pixels: Массив `uint8` формы `(height, width, 4)`, построчно (row-major).

    Поля заморожены, но сам буфер `pixels` изменяем: маскировщик прозрачности
    правит альфа-канал на месте.
    """
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Некорректные размеры: {self.width}x{self.height}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Ожидался буфер uint8, получен {self.pixels.dtype}")
        if self.pixels.shape != (self.height, self.width, CHANNELS):
            raise ValueError(
                f"Форма буфера {self.pixels.shape} не совпадает с {self.height}x{self.width}x{CHANNELS}"
            )

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "RawImage":
        """Создаёт изображение из массива `(h, w, 4)`; массив приводится к C-порядку."""
        arr = np.ascontiguousarray(pixels, dtype=np.uint8)
        if arr.ndim != 3:
            raise ValueError(f"Ожидался трёхмерный массив, получено измерений: {arr.ndim}")
        height, width = arr.shape[:2]
        return cls(width=width, height=height, pixels=arr)

    @classmethod
    def filled(cls, width: int, height: int, rgba: Tuple[int, int, int, int]) -> "RawImage":
        """Однотонное изображение заданного цвета."""
        arr = np.empty((height, width, CHANNELS), dtype=np.uint8)
        arr[:, :] = rgba
        return cls(width=width, height=height, pixels=arr)

    @property
    def alpha(self) -> np.ndarray:
        """Вид (view) на альфа-канал формы `(h, w)`."""
        return self.pixels[:, :, 3]

    def copy(self) -> "RawImage":
        return RawImage(width=self.width, height=self.height, pixels=self.pixels.copy())


@dataclass(frozen=True)
class Color:
    """Оценка цвета фона (без альфы)."""
    r: int
    g: int
    b: int

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)


@dataclass(frozen=True)
class BoundingBox:
    """Прямоугольник содержимого; `bottom` и `right` не включаются."""
    top: int
    left: int
    bottom: int
    right: int

    @classmethod
    def full(cls, image: RawImage) -> "BoundingBox":
        return cls(top=0, left=0, bottom=image.height, right=image.width)

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    def is_valid_for(self, image: RawImage) -> bool:
        """Проверяет `0 <= top < bottom <= height` и `0 <= left < right <= width`."""
        return 0 <= self.top < self.bottom <= image.height and 0 <= self.left < self.right <= image.width


class FitMode(str, Enum):
    """Способ приведения обрезанного содержимого к целевому размеру."""
    PAD_TO_SQUARE = "pad"
    RESIZE_CONTAIN = "contain"


class ResizeFit(str, Enum):
    """Режим ресайза для кодека."""
    FILL = "fill"
    CONTAIN = "contain"


class Resample(str, Enum):
    LANCZOS3 = "lanczos3"


TRANSPARENT = "transparent"


@dataclass(frozen=True)
class BackgroundFill:
    """Заливка фона: прозрачная или RGBA-цвет.

    Прозрачная заливка хранится как `(0, 0, 0, 0)`.
    """
    rgba: Tuple[int, int, int, int] = (0, 0, 0, 0)

    @classmethod
    def transparent(cls) -> "BackgroundFill":
        return cls()

    @classmethod
    def parse(cls, value: Union[str, "BackgroundFill", None]) -> "BackgroundFill":
        """Разбирает `"transparent"` или HEX (`#RGB`, `#RRGGBB`, `#RRGGBBAA`).

        Raises:
            ValueError: если строка не распознана.
        """
        if isinstance(value, BackgroundFill):
            return value
        if value is None:
            return cls.transparent()
        text = value.strip().lower()
        if text in ("", TRANSPARENT):
            return cls.transparent()
        digits = text[1:] if text.startswith("#") else text
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        if len(digits) == 6:
            digits += "ff"
        if len(digits) != 8:
            raise ValueError(f"Некорректный цвет фона: {value!r}")
        try:
            channels = tuple(int(digits[i:i + 2], 16) for i in range(0, 8, 2))
        except ValueError as exc:
            raise ValueError(f"Некорректный цвет фона: {value!r}") from exc
        return cls(rgba=channels)  # type: ignore[arg-type]

    @property
    def is_transparent(self) -> bool:
        return self.rgba[3] == 0

    def to_hex(self) -> str:
        if self.is_transparent:
            return TRANSPARENT
        r, g, b, a = self.rgba
        return f"#{r:02X}{g:02X}{b:02X}{a:02X}"


@dataclass(frozen=True)
class ProcessingConfig:
    """Параметры одного прогона конвейера.

    Fields:
        target_size: Сторона итогового квадрата, 1..2000.
        trim_threshold: Порог альфы: пиксель с альфой строго выше считается содержимым.
        background_tolerance: Допуск по каждому каналу при сравнении с цветом фона.
        background_fill: Заливка полей и леттербокса.
        fit_mode: `PAD_TO_SQUARE` или `RESIZE_CONTAIN`.
    """
    target_size: int = 200
    trim_threshold: int = 10
    background_tolerance: int = 30
    background_fill: BackgroundFill = BackgroundFill()
    fit_mode: FitMode = FitMode.PAD_TO_SQUARE

    def __post_init__(self) -> None:
        if not 1 <= self.target_size <= 2000:
            raise ValueError(f"target_size должен быть в диапазоне 1..2000: {self.target_size}")
        if not 0 <= self.trim_threshold <= 255:
            raise ValueError(f"trim_threshold должен быть в диапазоне 0..255: {self.trim_threshold}")
        if not 0 <= self.background_tolerance <= 255:
            raise ValueError(
                f"background_tolerance должен быть в диапазоне 0..255: {self.background_tolerance}"
            )


@dataclass(frozen=True)
class EncodeOptions:
    compression_level: int = 9
    adaptive_filtering: bool = True


@dataclass(frozen=True)
class ResizeOptions:
    fit: ResizeFit = ResizeFit.FILL
    background: BackgroundFill = BackgroundFill()
    resample: Resample = Resample.LANCZOS3


