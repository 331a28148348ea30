"""Хранилище изображений на локальной файловой системе.

Принципы:
- SRP: чтение/запись байтов по идентификатору и резервные копии; без обработки изображений.
- Идентификатор — POSIX-путь относительно корня (`root`), например `art/a.png`.
- Резервная копия лежит в `<папка>/_originals/<имя>` и никогда не перезаписывается.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import List

from loguru import logger

from autocrop.models.errors import StorageError


BACKUP_DIR_NAME = "_originals"


def normalize_identity(identity: str) -> str:
    """Обратные слэши в прямые, без ведущего `/`."""
    return identity.replace("\\", "/").lstrip("/")


def backup_identity(identity: str) -> str:
    """`dir/name.png` -> `dir/_originals/name.png` (для корня: `_originals/name.png`)."""
    path = PurePosixPath(normalize_identity(identity))
    return (path.parent / BACKUP_DIR_NAME / path.name).as_posix()


def is_backup_identity(identity: str) -> bool:
    return f"/{BACKUP_DIR_NAME}/" in "/" + normalize_identity(identity).lower()


class StorageService:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    # ---------- Пути ----------
    def path_for(self, identity: str) -> Path:
        """Абсолютный путь для идентификатора.

        Raises:
            StorageError: если путь выходит за пределы корня.
        """
        path = (self._root / normalize_identity(identity)).resolve()
        if path != self._root and self._root not in path.parents:
            raise StorageError(f"Путь вне хранилища: {identity}")
        return path

    def identity_for(self, path: str | Path) -> str:
        """Относительный POSIX-идентификатор для абсолютного пути внутри корня."""
        try:
            rel = Path(path).resolve().relative_to(self._root)
        except ValueError as exc:
            raise StorageError(f"Путь вне хранилища: {path}") from exc
        return rel.as_posix()

    def exists(self, identity: str) -> bool:
        return self.path_for(identity).is_file()

    def is_dir(self, identity: str) -> bool:
        return self.path_for(identity).is_dir()

    # ---------- Чтение / запись ----------
    def read_bytes(self, identity: str) -> bytes:
        path = self.path_for(identity)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Файл не найден: {identity}") from exc
        except OSError as exc:
            raise StorageError(f"Не удалось прочитать {identity}: {exc}") from exc

    def write_bytes(self, identity: str, data: bytes) -> None:
        """Пишет байты через временный файл и `os.replace`, чтобы не оставить полузаписанный PNG."""
        path = self.path_for(identity)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".autocrop-", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Не удалось записать {identity}: {exc}") from exc

    # ---------- Резервные копии ----------
    def backup_identity(self, identity: str) -> str:
        return backup_identity(identity)

    def has_backup(self, identity: str) -> bool:
        return self.exists(backup_identity(identity))

    def ensure_backup(self, identity: str, data: bytes) -> bool:
        """Создаёт резервную копию, если её ещё нет.

        Returns:
            `True`, если копия создана; `False`, если уже существовала.
        """
        target = backup_identity(identity)
        if self.exists(target):
            return False
        self.write_bytes(target, data)
        logger.info(f"Backup created: {target}")
        return True

    def read_backup(self, identity: str) -> bytes:
        return self.read_bytes(backup_identity(identity))

    # ---------- Обход ----------
    def list_images(self, folder: str) -> List[str]:
        """Все PNG в папке (рекурсивно), кроме содержимого `_originals`.

        Raises:
            StorageError: если папки нет.
        """
        base = self.path_for(folder)
        if not base.is_dir():
            raise StorageError(f"Папка не найдена: {folder}")
        found: List[str] = []
        for path in sorted(base.rglob("*")):
            if not path.is_file() or path.suffix.lower() != ".png":
                continue
            identity = self.identity_for(path)
            if is_backup_identity(identity):
                continue
            found.append(identity)
        return found
