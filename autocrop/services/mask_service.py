from __future__ import annotations

import numpy as np

from autocrop.models.image_model import Color, RawImage


class MaskService:
    def apply(self, image: RawImage, bg: Color, tolerance: int) -> int:
        """
        Обнуляет альфу пикселей, близких к цвету фона.
        Пиксель считается фоном, если |R-bg.r|, |G-bg.g|, |B-bg.b| <= tolerance.
        Жёсткий порог: частичная прозрачность на границе не вводится.
        Буфер изменяется на месте. Возвращает число замаскированных пикселей.
        """
        rgb = image.pixels[:, :, :3].astype(np.int16)
        ref = np.array(bg.as_tuple(), dtype=np.int16)
        mask = np.all(np.abs(rgb - ref) <= int(tolerance), axis=2)
        image.pixels[:, :, 3][mask] = 0
        return int(mask.sum())
