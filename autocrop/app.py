from __future__ import annotations

import threading
from typing import Optional

from loguru import logger

from autocrop.controllers.autocrop_controller import AutocropController
from autocrop.models.settings import AutocropSettings
from autocrop.services.storage_service import StorageService
from autocrop.services.watch_service import FolderWatcher


class AutocropApp:
    def __init__(self, settings: AutocropSettings, controller: Optional[AutocropController] = None) -> None:
        self.settings = settings
        self.storage = StorageService(settings.root)
        self.controller = controller or AutocropController(settings=settings, storage=self.storage)
        self._watcher: Optional[FolderWatcher] = None
        self._stop = threading.Event()

        logger.info(f"Image autocrop loaded (root: {self.storage.root})")

    def start_watching(self) -> FolderWatcher:
        self._watcher = FolderWatcher(
            storage=self.storage,
            folder=self.settings.watched_folder,
            callback=self.controller.handle_created,
        )
        self._watcher.start()
        return self._watcher

    def run(self) -> None:
        """Наблюдает за папкой, пока не вызван `stop()` или не нажат Ctrl+C."""
        self.start_watching()
        try:
            while not self._stop.wait(0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.shutdown()

    def stop(self) -> None:
        self._stop.set()

    def shutdown(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        logger.info("Image autocrop unloaded")
