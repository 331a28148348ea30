from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from autocrop.models.errors import StorageError
from autocrop.services.storage_service import StorageService


class AutocropFileHandler(FileSystemEventHandler):
    """Переводит события создания файлов в идентификаторы хранилища."""
    def __init__(self, storage: StorageService, callback: Callable[[str], object]) -> None:
        self.storage = storage
        self.callback = callback

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        src = os.fsdecode(event.src_path)
        try:
            identity = self.storage.identity_for(src)
        except StorageError:
            return
        logger.debug(f"New file detected: {identity}")
        self.callback(identity)


class FolderWatcher:
    def __init__(self, storage: StorageService, folder: str, callback: Callable[[str], object]) -> None:
        self.storage = storage
        self.callback = callback
        self.watch_dir: Path = storage.path_for(folder)
        self.observer: Optional[Observer] = None

        if not self.watch_dir.exists():
            os.makedirs(self.watch_dir, exist_ok=True)

    def start(self) -> None:
        logger.info(f"Watching for new images in: {self.watch_dir}")
        event_handler = AutocropFileHandler(self.storage, self.callback)
        self.observer = Observer()
        self.observer.schedule(event_handler, str(self.watch_dir), recursive=True)
        self.observer.start()

    def stop(self) -> None:
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None
        logger.info("Folder watcher stopped.")

    @property
    def running(self) -> bool:
        return self.observer is not None and self.observer.is_alive()
