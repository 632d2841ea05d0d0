#!/usr/bin/env python3
"""Watch an Algo Workspace for problem and template changes.

Runs a debounced ChangeWatcher over ``problems/`` and ``templates/`` of the
workspace and logs every event. With ``--output`` each event is also appended
to a JSON-lines file so other tools can follow the stream.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.models.schemas import WatchEvent
from app.utils.config import get_settings
from app.utils.errors import WorkspaceError
from domains.workspace.manager import init_workspace
from domains.workspace.watchers.filesystem import ChangeWatcher, create_workspace_watcher


class EventWriter:
    """Appends WatchEvents to a JSON-lines file."""

    def __init__(self, output_file: Path) -> None:
        self.output_file = output_file
        self.output_file.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, event: WatchEvent) -> None:
        with self.output_file.open("a", encoding="utf-8") as f:
            f.write(event.model_dump_json() + "\n")


def log_event(event: WatchEvent) -> None:
    """Log a dispatched event."""
    logger.info(f"[{event.category.value}] {event.kind.value}: {event.path}")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Watch a workspace and report debounced problem/template changes.",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=settings.get_workspace_root(),
        help="Workspace root (default: WORKSPACE_ROOT setting).",
    )
    parser.add_argument(
        "--debounce-ms",
        type=int,
        default=settings.watch_debounce_ms,
        help="Quiet period per path before an event is reported (milliseconds).",
    )
    parser.add_argument(
        "--no-recursive",
        action="store_true",
        help="Only watch the top level of problems/ and templates/.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Append events as JSON lines to this file.",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create missing workspace directories before watching.",
    )

    return parser.parse_args(argv)


async def run(watcher: ChangeWatcher) -> int:
    """Run ``watcher`` until a signal arrives or it fails."""

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    watcher.start()
    try:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=1.0)
            except asyncio.TimeoutError:
                pass
            if not watcher.running:
                logger.error("Watcher stopped unexpectedly.")
                return 1
    finally:
        watcher.stop()

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI script."""

    args = parse_args(argv)

    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} [{level}] {message}",
        level=get_settings().log_level,
    )

    try:
        if args.init:
            init_workspace(args.root)

        watcher = create_workspace_watcher(
            args.root,
            debounce_ms=args.debounce_ms,
            recursive=not args.no_recursive,
        )
        watcher.on("all", log_event)
        if args.output:
            watcher.on("all", EventWriter(args.output))

        exit_code = asyncio.run(run(watcher))

    except WorkspaceError as e:
        logger.error(e.formatted_message())
        return 1

    logger.info("Workspace watcher stopped.")
    return exit_code


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
