"""Иерархия исключений автокропа.

Принципы:
- SRP: только типы ошибок, без логики.
- Граничные ошибки (кодек, хранилище) пробрасываются вызывающему;
  `DegenerateGeometryError` обрабатывается конвейером локально.
"""
from __future__ import annotations


class AutocropError(Exception):
    """Базовая ошибка автокропа."""


class CodecError(AutocropError):
    """Ошибка библиотеки обработки изображений (декодирование, кодирование, ресайз)."""


class DecodeError(CodecError, ValueError):
    """Входные байты не являются читаемым PNG."""


class EncodeError(CodecError):
    """Не удалось закодировать результат в PNG."""


class ResizeError(CodecError):
    """Ошибка при изменении размера изображения."""


class DegenerateGeometryError(AutocropError):
    """Обрезка дала бы пустую (нулевой площади) область."""


class ResourceUnavailableError(AutocropError):
    """Библиотека обработки изображений недоступна."""


class StorageError(AutocropError):
    """Ошибка чтения или записи в хранилище."""
