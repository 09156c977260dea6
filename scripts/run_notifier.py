#!/usr/bin/env python3
"""CLI script to run the notification engine against the configured sources."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure the project source is importable when running the script directly.
_project_root = Path(__file__).resolve().parent.parent
_src = _project_root / "src"
if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from backoffice.core.config import Settings  # noqa: E402
from backoffice.core.types import now_millis  # noqa: E402
from backoffice.notifications.display import format_time_ago, newest_first  # noqa: E402
from backoffice.notifications.engine import NotificationEngine  # noqa: E402
from backoffice.notifications.storage import JsonFileStorage, MemoryStorage  # noqa: E402
from backoffice.sources.registry import create_source_registry  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Poll the back-office sources and print the operator notification feed."
    )
    parser.add_argument(
        "--provider",
        type=str,
        default=None,
        help="Source provider (fixture or http). Defaults to BACKOFFICE_SOURCES_PROVIDER.",
    )
    parser.add_argument(
        "--passes",
        type=int,
        default=1,
        help="Number of reconciliation passes to run (0 keeps polling until interrupted).",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between passes when running more than one.",
    )
    parser.add_argument(
        "--storage",
        type=str,
        default=None,
        help="Path of the JSON storage file. Use ':memory:' for a throwaway run.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def print_feed(engine: NotificationEngine) -> None:
    state = engine.get_state()
    now = now_millis()
    counts = state.counts
    print(
        f"Unread: {counts.total} (orders {counts.order}, reviews {counts.review}, "
        f"questions {counts.question}, leads {counts.lead})"
    )
    for n in newest_first(state.items):
        marker = " " if n.read else "*"
        print(f" {marker} [{n.source_type.value:<8}] {n.title}: {n.message} ({format_time_ago(n.timestamp, now)})")


async def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings()
    if args.provider:
        settings.sources.provider = args.provider
    if args.interval is not None:
        settings.notification.poll_interval_seconds = args.interval

    storage_path = args.storage or settings.notification.storage_path
    storage = MemoryStorage() if storage_path == ":memory:" else JsonFileStorage(storage_path)

    try:
        registry = create_source_registry(settings.sources)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)

    engine = NotificationEngine(registry, storage, settings.notification, page_size=settings.sources.page_size)
    print(f"Polling {', '.join(registry.adapter_names)} via '{settings.sources.provider}' ...")
    # Passes are driven from this loop alone; the poller timer is never armed.
    engine.load()
    report = None
    try:
        passes = 0
        while True:
            report = await engine.refresh_now()
            passes += 1
            if args.passes and passes >= args.passes:
                break
            await asyncio.sleep(settings.notification.poll_interval_seconds)
    except KeyboardInterrupt:
        pass
    finally:
        await engine.stop()
        await registry.close()

    if report is not None and report.failed_sources:
        print(f"Failed sources: {', '.join(report.failed_sources)}")
    print()
    print_feed(engine)


if __name__ == "__main__":
    asyncio.run(main())
