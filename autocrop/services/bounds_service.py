"""Поиск прямоугольника содержимого по альфа-каналу.

Принципы:
- SRP: только чтение альфа-канала; буфер не изменяется.
- Каждая граница вычисляется независимо; без содержимого — полный размер изображения,
  так что обрезка нулевой площади отсюда не возникает.
"""
from __future__ import annotations

import numpy as np

from autocrop.models.image_model import BoundingBox, RawImage


class BoundsService:
    def content_mask(self, image: RawImage, alpha_threshold: int) -> np.ndarray:
        """Булева маска `(h, w)`: альфа строго больше порога."""
        return image.alpha > int(alpha_threshold)

    def has_content(self, image: RawImage, alpha_threshold: int) -> bool:
        return bool(self.content_mask(image, alpha_threshold).any())

    def find_bounds(self, image: RawImage, alpha_threshold: int) -> BoundingBox:
        """Минимальный прямоугольник, содержащий все пиксели с альфой > порога.

        Args:
            image: Изображение (только чтение).
            alpha_threshold: Порог обрезки, 0..255.

        Returns:
            `BoundingBox` с невключёнными `bottom`/`right`; если содержимого нет,
            `{0, 0, height, width}`.
        """
        full = BoundingBox.full(image)
        if image.width == 0 or image.height == 0:
            return full

        mask = self.content_mask(image, alpha_threshold)
        rows = np.flatnonzero(mask.any(axis=1))
        cols = np.flatnonzero(mask.any(axis=0))

        top = int(rows[0]) if rows.size else full.top
        bottom = int(rows[-1]) + 1 if rows.size else full.bottom
        left = int(cols[0]) if cols.size else full.left
        right = int(cols[-1]) + 1 if cols.size else full.right
        return BoundingBox(top=top, left=left, bottom=bottom, right=right)
