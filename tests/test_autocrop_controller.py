import threading

import pytest
from unittest.mock import MagicMock

from autocrop.controllers.autocrop_controller import (
    AutocropController,
    OutcomeStatus,
    UNAVAILABLE_MESSAGE,
    is_image_file,
    is_in_watched_folder,
)
from autocrop.models.errors import ResourceUnavailableError
from autocrop.models.settings import AutocropSettings
from autocrop.services.codec_service import CodecService
from autocrop.services.pipeline_service import AutocropPipeline, PipelineResult
from autocrop.services.storage_service import StorageService

from conftest import illustration, png_bytes


IMAGE = "_Assets/Enluminures/dragon.png"


class CountingStorage(StorageService):
    def __init__(self, root):
        super().__init__(root)
        self.writes = []

    def write_bytes(self, identity, data):
        self.writes.append(identity)
        super().write_bytes(identity, data)


@pytest.fixture
def settings(vault):
    return AutocropSettings(root=vault, target_size=32, startup_delay=5.0, trigger_delay=1.0, inflight_hold=2.0)


@pytest.fixture
def storage(vault):
    return CountingStorage(vault)


@pytest.fixture
def controller(settings, storage, clock):
    return AutocropController(settings=settings, storage=storage, clock=clock, pause=lambda s: None)


def test_process_image_writes_result_and_backup(controller, storage, vault):
    original = png_bytes(illustration())
    (vault / IMAGE).write_bytes(original)

    outcome = controller.process_image(IMAGE)

    assert outcome.status == OutcomeStatus.PROCESSED
    assert outcome.ok
    out = CodecService().decode((vault / IMAGE).read_bytes())
    assert (out.width, out.height) == (32, 32)
    assert (vault / "_Assets/Enluminures/_originals/dragon.png").read_bytes() == original


def test_existing_backup_is_not_overwritten(controller, vault):
    backup = vault / "_Assets/Enluminures/_originals/dragon.png"
    backup.parent.mkdir()
    backup.write_bytes(b"older original")
    (vault / IMAGE).write_bytes(png_bytes(illustration()))

    assert controller.process_image(IMAGE).ok
    assert backup.read_bytes() == b"older original"


def test_backup_skipped_when_disabled(settings, storage, clock, vault):
    controller = AutocropController(settings=settings.with_overrides(keep_backup=False), storage=storage, clock=clock)
    (vault / IMAGE).write_bytes(png_bytes(illustration()))

    assert controller.process_image(IMAGE).ok
    assert not (vault / "_Assets/Enluminures/_originals").exists()
    assert storage.writes == [IMAGE]


def test_failure_leaves_original_untouched(controller, storage, vault):
    (vault / IMAGE).write_bytes(b"broken png bytes")

    outcome = controller.process_image(IMAGE)

    assert outcome.status == OutcomeStatus.FAILED
    assert "Failed to process" in outcome.message
    assert (vault / IMAGE).read_bytes() == b"broken png bytes"
    assert IMAGE not in storage.writes


def test_missing_file_is_reported(controller):
    outcome = controller.process_image("_Assets/Enluminures/ghost.png")
    assert outcome.status == OutcomeStatus.FAILED


def test_concurrent_requests_for_same_image_write_once(settings, storage, clock, vault):
    (vault / IMAGE).write_bytes(png_bytes(illustration()))
    started = threading.Event()
    release = threading.Event()

    real = AutocropPipeline()

    class SlowPipeline:
        def run(self, data, config):
            started.set()
            release.wait(5)
            return real.run(data, config)

    controller = AutocropController(
        settings=settings.with_overrides(keep_backup=False),
        storage=storage,
        pipeline_factory=SlowPipeline,
        clock=clock,
    )

    results = []
    worker = threading.Thread(target=lambda: results.append(controller.process_image(IMAGE)))
    worker.start()
    assert started.wait(5)

    second = controller.process_image(IMAGE)
    release.set()
    worker.join(5)

    assert second.status == OutcomeStatus.SKIPPED
    assert results[0].status == OutcomeStatus.PROCESSED
    assert storage.writes == [IMAGE]


def test_recently_finished_image_is_skipped_until_hold_expires(controller, clock, vault):
    (vault / IMAGE).write_bytes(png_bytes(illustration()))
    assert controller.process_image(IMAGE).ok

    assert controller.process_image(IMAGE).status == OutcomeStatus.SKIPPED
    clock.advance(2.0)
    assert controller.process_image(IMAGE).ok


def test_unavailable_library_short_circuits(settings, vault, clock):
    def broken_factory():
        raise ResourceUnavailableError("no zlib")

    storage = MagicMock()
    controller = AutocropController(settings=settings, storage=storage, pipeline_factory=broken_factory, clock=clock)

    outcome = controller.process_image(IMAGE)

    assert not controller.available
    assert outcome.status == OutcomeStatus.UNAVAILABLE
    assert outcome.message == UNAVAILABLE_MESSAGE
    storage.read_bytes.assert_not_called()


def test_restore_from_backup(controller, vault):
    original = png_bytes(illustration())
    (vault / IMAGE).write_bytes(original)
    controller.process_image(IMAGE)
    assert (vault / IMAGE).read_bytes() != original
    assert controller.has_backup(IMAGE)

    outcome = controller.restore_from_backup(IMAGE)

    assert outcome.status == OutcomeStatus.RESTORED
    assert (vault / IMAGE).read_bytes() == original


def test_restore_without_backup(controller, vault):
    (vault / IMAGE).write_bytes(b"x")
    outcome = controller.restore_from_backup(IMAGE)
    assert outcome.status == OutcomeStatus.MISSING_BACKUP
    assert (vault / IMAGE).read_bytes() == b"x"


def test_process_all_in_folder(controller, vault):
    folder = vault / "_Assets/Enluminures"
    (folder / "a.png").write_bytes(png_bytes(illustration()))
    (folder / "sub").mkdir()
    (folder / "sub" / "b.png").write_bytes(png_bytes(illustration()))
    (folder / "broken.png").write_bytes(b"nope")
    (folder / "notes.txt").write_text("hello")

    summary = controller.process_all_in_folder()

    assert summary.processed == 2
    assert summary.failed == 1
    assert summary.total == 3
    assert not summary.folder_missing
    # backups created during the run are not picked up as new work
    assert (folder / "_originals" / "a.png").exists()


def test_process_all_with_missing_folder(settings, storage, clock):
    controller = AutocropController(settings=settings.with_overrides(watched_folder="nowhere"), storage=storage, clock=clock)
    summary = controller.process_all_in_folder()
    assert summary.folder_missing
    assert summary.total == 0


def test_created_events_are_filtered_and_scheduled(settings, storage, clock, vault):
    scheduled = []
    controller = AutocropController(
        settings=settings,
        storage=storage,
        clock=clock,
        scheduler=lambda delay, fn: scheduled.append((delay, fn)),
    )
    (vault / IMAGE).write_bytes(png_bytes(illustration()))

    assert not controller.handle_created(IMAGE)
    clock.advance(5.0)

    assert not controller.handle_created("elsewhere/dragon.png")
    assert not controller.handle_created("_Assets/Enluminures/dragon.jpg")
    assert not controller.handle_created("_Assets/Enluminures/_originals/dragon.png")
    assert controller.handle_created(IMAGE)

    assert len(scheduled) == 1
    delay, fn = scheduled[0]
    assert delay == 1.0
    fn()
    assert CodecService().decode((vault / IMAGE).read_bytes()).width == 32


def test_disabled_controller_ignores_events(settings, storage, clock):
    controller = AutocropController(
        settings=settings.with_overrides(enabled=False, startup_delay=0.0),
        storage=storage,
        clock=clock,
        scheduler=lambda delay, fn: pytest.fail("should not schedule"),
    )
    assert not controller.handle_created(IMAGE)


def test_image_file_and_folder_rules():
    assert is_image_file("a/b.PNG")
    assert not is_image_file("a/b.png.txt")
    assert not is_image_file("_originals/b.png")
    assert not is_image_file("a/_originals/b.png")
    assert is_in_watched_folder("_Assets/Enluminures/x.png", "/_Assets/Enluminures/")
    assert is_in_watched_folder("_Assets\\Enluminures\\x.png", "_Assets/Enluminures")
    assert not is_in_watched_folder("_Assets/EnluminuresOld/x.png", "_Assets/Enluminures")
    assert is_in_watched_folder("anything.png", "")


def test_pipeline_receives_config_from_settings(settings, storage, clock, vault):
    pipeline = MagicMock()
    pipeline.run.return_value = PipelineResult(data=b"out", width=1, height=1, background=None, fallback=False)
    controller = AutocropController(
        settings=settings.with_overrides(trim_threshold=42, background_color="#123456"),
        storage=storage,
        pipeline_factory=lambda: pipeline,
        clock=clock,
    )
    (vault / IMAGE).write_bytes(b"in")

    assert controller.process_image(IMAGE).ok

    config = pipeline.run.call_args[0][1]
    assert config.trim_threshold == 42
    assert config.background_fill.rgba == (0x12, 0x34, 0x56, 255)
    assert (vault / IMAGE).read_bytes() == b"out"
