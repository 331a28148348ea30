"""Настройки автокропа: значения по умолчанию, чтение из окружения, валидация.

Принципы:
- SRP: только конфигурация; жизненный цикл и хранение настроек — у вызывающей стороны.
- Валидация сразу при создании: некорректное значение даёт `ValueError` с именем переменной.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from autocrop.models.image_model import BackgroundFill, FitMode, ProcessingConfig


ENV_PREFIX = "AUTOCROP_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name}: ожидалось логическое значение, получено {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name}: ожидалось целое число, получено {raw!r}") from exc


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name}: ожидалось число, получено {raw!r}") from exc


@dataclass(frozen=True)
class AutocropSettings:
    """Распознаваемые опции автокропа.

    Fields:
        root: Корень хранилища; идентификаторы изображений — пути относительно него.
        watched_folder: Наблюдаемая папка (относительно `root`).
        target_size: Сторона итогового изображения, 1..2000.
        enabled: Автообработка новых файлов.
        trim_threshold: Порог альфы для поиска границ, 0..255.
        background_tolerance: Допуск цвета фона, 5..100.
        background_color: `"transparent"` или HEX.
        fit_mode: `"pad"` или `"contain"`.
        keep_backup: Сохранять оригинал в `_originals` перед обработкой.
        startup_delay: Сколько секунд после старта игнорировать события создания.
        trigger_delay: Задержка перед обработкой нового файла, с.
        inflight_hold: Сколько секунд идентификатор остаётся занятым после завершения.
    """
    root: Path = Path(".")
    watched_folder: str = "_Assets/Enluminures"
    target_size: int = 200
    enabled: bool = True
    trim_threshold: int = 10
    background_tolerance: int = 30
    background_color: str = "transparent"
    fit_mode: FitMode = FitMode.PAD_TO_SQUARE
    keep_backup: bool = True
    startup_delay: float = 5.0
    trigger_delay: float = 1.0
    inflight_hold: float = 2.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root))
        object.__setattr__(self, "watched_folder", normalize_folder(self.watched_folder))
        object.__setattr__(self, "fit_mode", _parse_fit_mode("fit_mode", self.fit_mode))

        if not 1 <= self.target_size <= 2000:
            raise ValueError(f"target_size: ожидалось 1..2000, получено {self.target_size}")
        if not 0 <= self.trim_threshold <= 255:
            raise ValueError(f"trim_threshold: ожидалось 0..255, получено {self.trim_threshold}")
        if not 5 <= self.background_tolerance <= 100:
            raise ValueError(
                f"background_tolerance: ожидалось 5..100, получено {self.background_tolerance}"
            )
        BackgroundFill.parse(self.background_color)
        for name in ("startup_delay", "trigger_delay", "inflight_hold"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name}: значение не может быть отрицательным")

    # ---------- Фабрики ----------
    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "AutocropSettings":
        """Собирает настройки из переменных `AUTOCROP_*`.

        Args:
            environ: Источник переменных; по умолчанию `os.environ`.
            overrides: Значения, имеющие приоритет над окружением (например, флаги CLI).
                `None` означает «не задано».

        Raises:
            ValueError: если значение переменной некорректно.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        def raw(key: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + key)
            return value if value not in (None, "") else None

        if (v := raw("ROOT")) is not None:
            values["root"] = Path(v)
        if (v := raw("WATCHED_FOLDER")) is not None:
            values["watched_folder"] = v
        if (v := raw("TARGET_SIZE")) is not None:
            values["target_size"] = _parse_int(ENV_PREFIX + "TARGET_SIZE", v)
        if (v := raw("ENABLED")) is not None:
            values["enabled"] = _parse_bool(ENV_PREFIX + "ENABLED", v)
        if (v := raw("TRIM_THRESHOLD")) is not None:
            values["trim_threshold"] = _parse_int(ENV_PREFIX + "TRIM_THRESHOLD", v)
        if (v := raw("BACKGROUND_TOLERANCE")) is not None:
            values["background_tolerance"] = _parse_int(ENV_PREFIX + "BACKGROUND_TOLERANCE", v)
        if (v := raw("BACKGROUND_COLOR")) is not None:
            try:
                BackgroundFill.parse(v)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}BACKGROUND_COLOR: {exc}") from exc
            values["background_color"] = v
        if (v := raw("FIT_MODE")) is not None:
            values["fit_mode"] = _parse_fit_mode(ENV_PREFIX + "FIT_MODE", v)
        if (v := raw("KEEP_BACKUP")) is not None:
            values["keep_backup"] = _parse_bool(ENV_PREFIX + "KEEP_BACKUP", v)
        if (v := raw("STARTUP_DELAY")) is not None:
            values["startup_delay"] = _parse_float(ENV_PREFIX + "STARTUP_DELAY", v)
        if (v := raw("TRIGGER_DELAY")) is not None:
            values["trigger_delay"] = _parse_float(ENV_PREFIX + "TRIGGER_DELAY", v)
        if (v := raw("INFLIGHT_HOLD")) is not None:
            values["inflight_hold"] = _parse_float(ENV_PREFIX + "INFLIGHT_HOLD", v)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "AutocropSettings":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    # ---------- Производные значения ----------
    @property
    def background_fill(self) -> BackgroundFill:
        return BackgroundFill.parse(self.background_color)

    def to_processing_config(self) -> ProcessingConfig:
        """Неизменяемые параметры для одного прогона конвейера."""
        return ProcessingConfig(
            target_size=self.target_size,
            trim_threshold=self.trim_threshold,
            background_tolerance=self.background_tolerance,
            background_fill=self.background_fill,
            fit_mode=self.fit_mode,
        )


def normalize_folder(folder: str) -> str:
    """Приводит путь папки к виду `a/b`: обратные слэши в прямые, без слэшей по краям."""
    return folder.replace("\\", "/").strip("/")


def _parse_fit_mode(name: str, value: Any) -> FitMode:
    if isinstance(value, FitMode):
        return value
    try:
        return FitMode(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(m.value for m in FitMode)
        raise ValueError(f"{name}: ожидалось одно из [{choices}], получено {value!r}") from exc
