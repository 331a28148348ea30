"""Оценка сплошного цвета фона по углам и краям изображения.

Принципы:
- SRP: только чтение пикселей и усреднение, буфер не изменяется.
- Чистая функция от данных: повторный вызов на том же буфере даёт тот же цвет.
"""
from __future__ import annotations

from typing import List, Optional

import numpy as np

from autocrop.models.image_model import Color, RawImage


class BackgroundService:
    sample_size: int = 20
    min_corner_samples: int = 100
    edge_step: int = 10
    opaque_alpha: int = 128

    def detect(self, image: RawImage) -> Optional[Color]:
        """Оценивает цвет фона по четырём угловым областям 20x20.

        Пиксели с альфой < 128 пропускаются: они уже прозрачны и не относятся
        к сплошному фону. Если в углах набралось меньше 100 подходящих
        пикселей, дополнительно берётся каждый 10-й пиксель вдоль четырёх краёв.

        Returns:
            Средний цвет (округление половины вверх) или `None`, если подходящих
            пикселей не нашлось.
        """
        if image.width == 0 or image.height == 0:
            return None

        samples: List[np.ndarray] = [self._opaque(region) for region in self._corner_regions(image)]
        count = sum(len(s) for s in samples)

        if count < self.min_corner_samples:
            edge = self._opaque(self._edge_pixels(image))
            samples.append(edge)
            count += len(edge)

        if count == 0:
            return None

        sums = np.zeros(3, dtype=np.int64)
        for s in samples:
            if len(s):
                sums += s[:, :3].astype(np.int64).sum(axis=0)
        # half-up rounding, not banker's
        r, g, b = (int(np.floor(v / count + 0.5)) for v in sums)
        return Color(r=r, g=g, b=b)

    # ---------- Вспомогательные функции ----------
    def _corner_regions(self, image: RawImage) -> List[np.ndarray]:
        """Четыре угловые области, обрезанные по границам изображения.

        При стороне меньше 40 px области перекрываются, и общие пиксели
        учитываются в каждой из них.
        """
        w, h, n = image.width, image.height, self.sample_size
        xs = (slice(0, min(n, w)), slice(max(0, w - n), w))
        ys = (slice(0, min(n, h)), slice(max(0, h - n), h))
        px = image.pixels
        return [
            px[ys[0], xs[0]].reshape(-1, 4),
            px[ys[0], xs[1]].reshape(-1, 4),
            px[ys[1], xs[0]].reshape(-1, 4),
            px[ys[1], xs[1]].reshape(-1, 4),
        ]

    def _edge_pixels(self, image: RawImage) -> np.ndarray:
        """Каждый `edge_step`-й пиксель верхнего/нижнего и левого/правого краёв."""
        px = image.pixels
        step = self.edge_step
        last_row, last_col = image.height - 1, image.width - 1
        # top and bottom rows interleaved per column, then left and right columns per row
        horizontal = np.stack([px[0, ::step], px[last_row, ::step]], axis=1).reshape(-1, 4)
        vertical = np.stack([px[::step, 0], px[::step, last_col]], axis=1).reshape(-1, 4)
        return np.concatenate([horizontal, vertical], axis=0)

    def _opaque(self, pixels: np.ndarray) -> np.ndarray:
        return pixels[pixels[:, 3] >= self.opaque_alpha]
