"""Точка входа в приложение."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from autocrop.app import AutocropApp
from autocrop.controllers.autocrop_controller import ProcessOutcome
from autocrop.environment import load_env
from autocrop.models.settings import AutocropSettings


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} - {name} - {level} - {message}"


def configure_logging(level: Optional[str] = None) -> None:
    logger.remove()
    logger.add(sys.stdout, level=(level or os.environ.get("AUTOCROP_LOG_LEVEL") or "INFO").upper(), format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="image-autocrop",
        description="Autocrop PNG illustrations into uniform square thumbnails.",
    )
    p.add_argument("--root", type=Path, help="storage root; image paths are relative to it")
    p.add_argument("--watched-folder", help="folder (relative to root) to watch and batch-process")
    p.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    p.add_argument("--target-size", type=int, help="output side in pixels (1..2000)")
    p.add_argument("--trim-threshold", type=int, help="alpha threshold for content bounds (0..255)")
    p.add_argument("--tolerance", type=int, dest="background_tolerance",
                   help="per-channel background tolerance (5..100)")
    p.add_argument("--background", dest="background_color", help="'transparent' or hex color")
    p.add_argument("--fit", dest="fit_mode", choices=("pad", "contain"))
    p.add_argument("--no-backup", dest="keep_backup", action="store_false", default=None,
                   help="do not keep a copy in _originals")

    sub = p.add_subparsers(dest="command", required=True)
    proc = sub.add_parser("process", help="autocrop the given images")
    proc.add_argument("paths", nargs="+")
    sub.add_parser("process-all", help="autocrop every PNG in the watched folder")
    restore = sub.add_parser("restore", help="restore images from their _originals backup")
    restore.add_argument("paths", nargs="+")
    sub.add_parser("watch", help="watch the folder and autocrop new PNG files")
    return p


def _report(outcomes: List[ProcessOutcome]) -> int:
    for outcome in outcomes:
        stream = sys.stdout if outcome.ok else sys.stderr
        print(outcome.message or f"{outcome.identity}: {outcome.status.value}", file=stream)
    return 0 if all(o.ok for o in outcomes) else 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Разбирает аргументы, собирает настройки и выполняет команду."""
    args = build_parser().parse_args(argv)
    load_env()
    configure_logging(args.log_level)

    try:
        settings = AutocropSettings.from_env(
            root=args.root,
            watched_folder=args.watched_folder,
            target_size=args.target_size,
            trim_threshold=args.trim_threshold,
            background_tolerance=args.background_tolerance,
            background_color=args.background_color,
            fit_mode=args.fit_mode,
            keep_backup=args.keep_backup,
        )
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    if not settings.root.is_dir():
        print(f"Root folder not found: {settings.root}", file=sys.stderr)
        return 2

    app = AutocropApp(settings)
    controller = app.controller

    if args.command == "process":
        return _report([controller.process_image(path) for path in args.paths])
    if args.command == "restore":
        return _report([controller.restore_from_backup(path) for path in args.paths])
    if args.command == "process-all":
        summary = controller.process_all_in_folder()
        if summary.folder_missing:
            print(f"Folder not found: {settings.watched_folder}", file=sys.stderr)
            return 1
        print(f"Processed {summary.processed} images, {summary.failed} skipped/failed")
        return 0 if summary.failed == 0 else 1

    if not controller.available:
        print("Image processing library not available", file=sys.stderr)
        return 1
    app.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
