"""Контроллер автокропа: хранилище, резервные копии, конвейер, исключение повторов.

SOLID:
- SRP: класс управляет связями между хранилищем, конвейером и триггерами
  (без логики обработки пикселей).
- DIP: зависит от сервисов как от ролей; часы и планировщик внедряются.
Clean Code:
- Обработчики компактны; ошибки одного изображения превращаются в `ProcessOutcome`
  и не останавливают пакетную обработку или наблюдатель.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable, List, Optional

from loguru import logger

from autocrop.controllers.scheduling import (
    Clock,
    InFlightRegistry,
    Scheduler,
    StartupGate,
    SystemClock,
    thread_timer_scheduler,
)
from autocrop.models.errors import AutocropError, ResourceUnavailableError, StorageError
from autocrop.models.settings import AutocropSettings, normalize_folder
from autocrop.services.pipeline_service import AutocropPipeline
from autocrop.services.storage_service import is_backup_identity, normalize_identity, StorageService


UNAVAILABLE_MESSAGE = "Image processing library not available"


class OutcomeStatus(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"
    RESTORED = "restored"
    MISSING_BACKUP = "missing_backup"


@dataclass(frozen=True)
class ProcessOutcome:
    identity: str
    status: OutcomeStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.PROCESSED, OutcomeStatus.RESTORED)


@dataclass
class BatchSummary:
    processed: int = 0
    failed: int = 0
    folder_missing: bool = False
    outcomes: List[ProcessOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.failed


def is_image_file(identity: str) -> bool:
    """PNG вне папок `_originals`."""
    path = normalize_identity(identity)
    if is_backup_identity(path):
        return False
    return PurePosixPath(path.lower()).suffix == ".png"


def is_in_watched_folder(identity: str, watched_folder: str) -> bool:
    folder = normalize_folder(watched_folder)
    path = normalize_identity(identity)
    if not folder:
        return True
    return path == folder or path.startswith(folder + "/")


class AutocropController:
    """Связывает хранилище, конвейер и триггеры.

    Ответственности:
    - Обработка одного изображения с резервной копией и записью результата.
    - Пакетная обработка наблюдаемой папки.
    - Восстановление из резервной копии.
    - Фильтрация событий создания файлов и отложенный запуск обработки.
    """
    def __init__(
        self,
        settings: AutocropSettings,
        storage: StorageService,
        pipeline_factory: Callable[[], AutocropPipeline] = AutocropPipeline,
        clock: Optional[Clock] = None,
        scheduler: Scheduler = thread_timer_scheduler,
        pause: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self._clock = clock or SystemClock()
        self._scheduler = scheduler
        self._pause = pause
        self._in_flight = InFlightRegistry(self._clock, settings.inflight_hold)
        self._gate = StartupGate(self._clock, settings.startup_delay)

        self._pipeline: Optional[AutocropPipeline]
        try:
            self._pipeline = pipeline_factory()
        except ResourceUnavailableError as exc:
            logger.error(f"Failed to load image processing library: {exc}")
            self._pipeline = None

    @property
    def available(self) -> bool:
        return self._pipeline is not None

    @property
    def in_flight(self) -> InFlightRegistry:
        return self._in_flight

    # ---- Handlers ----
    def process_image(self, identity: str) -> ProcessOutcome:
        """Автокроп одного изображения.

        Порядок: проверка занятости -> чтение -> резервная копия (если включена
        и ещё не создана) -> конвейер -> запись. Запись происходит только после
        успешного кодирования, поэтому при ошибке файл не меняется.
        """
        identity = normalize_identity(identity)
        if self._pipeline is None:
            logger.error(UNAVAILABLE_MESSAGE)
            return ProcessOutcome(identity, OutcomeStatus.UNAVAILABLE, UNAVAILABLE_MESSAGE)

        if not self._in_flight.try_acquire(identity):
            logger.debug(f"Already processing: {identity}")
            return ProcessOutcome(identity, OutcomeStatus.SKIPPED, "already in progress")

        try:
            logger.info(f"Processing image: {identity}")
            data = self.storage.read_bytes(identity)
            if self.settings.keep_backup:
                self.storage.ensure_backup(identity, data)

            result = self._pipeline.run(data, self.settings.to_processing_config())
            self.storage.write_bytes(identity, result.data)

            note = " (resize only)" if result.fallback else ""
            logger.info(f"Successfully processed: {identity} -> {result.width}x{result.height}{note}")
            return ProcessOutcome(identity, OutcomeStatus.PROCESSED, f"Image autocropped: {identity}{note}")
        except (AutocropError, OSError) as exc:
            logger.error(f"Failed to process {identity}: {exc}")
            return ProcessOutcome(identity, OutcomeStatus.FAILED, f"Failed to process {identity}: {exc}")
        finally:
            self._in_flight.release(identity)

    def process_all_in_folder(self) -> BatchSummary:
        """Обрабатывает все PNG наблюдаемой папки по одному."""
        summary = BatchSummary()
        folder = self.settings.watched_folder
        try:
            identities = self.storage.list_images(folder)
        except StorageError as exc:
            logger.error(f"Folder not found: {folder} ({exc})")
            summary.folder_missing = True
            return summary

        if not identities:
            logger.info(f"No PNG images found in {folder}")
            return summary

        logger.info(f"Processing {len(identities)} images...")
        for index, identity in enumerate(identities):
            if index:
                self._pause(0.1)
            outcome = self.process_image(identity)
            summary.outcomes.append(outcome)
            if outcome.ok:
                summary.processed += 1
            else:
                summary.failed += 1

        logger.info(f"Processed {summary.processed} images, {summary.failed} skipped/failed")
        return summary

    def restore_from_backup(self, identity: str) -> ProcessOutcome:
        """Возвращает исходные байты из `_originals` поверх изображения."""
        identity = normalize_identity(identity)
        try:
            if not self.storage.has_backup(identity):
                logger.warning(f"No backup found for: {identity}")
                return ProcessOutcome(identity, OutcomeStatus.MISSING_BACKUP, f"No backup found for: {identity}")
            self.storage.write_bytes(identity, self.storage.read_backup(identity))
        except StorageError as exc:
            logger.error(f"Failed to restore {identity}: {exc}")
            return ProcessOutcome(identity, OutcomeStatus.FAILED, f"Failed to restore: {exc}")
        logger.info(f"Restored: {identity}")
        return ProcessOutcome(identity, OutcomeStatus.RESTORED, f"Restored: {identity}")

    def has_backup(self, identity: str) -> bool:
        return self.storage.has_backup(normalize_identity(identity))

    def should_handle(self, identity: str) -> bool:
        """Фильтр событий создания: шлюз открыт, автообработка включена,
        файл в наблюдаемой папке, PNG и не резервная копия."""
        if not self._gate.is_open():
            return False
        if not self.settings.enabled:
            return False
        if not is_in_watched_folder(identity, self.settings.watched_folder):
            return False
        return is_image_file(identity)

    def handle_created(self, identity: str) -> bool:
        """Планирует обработку нового файла через `trigger_delay` секунд.

        Returns:
            `True`, если обработка запланирована.
        """
        identity = normalize_identity(identity)
        if not self.should_handle(identity):
            logger.debug(f"Ignored create event: {identity}")
            return False
        self._scheduler(self.settings.trigger_delay, lambda: self.process_image(identity))
        return True
