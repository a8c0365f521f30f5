#!/usr/bin/env python3
"""Command-line interface for the event catalogue.

Commands:
  - dedup       : Find (and optionally merge) cross-source duplicates
  - popularity  : Recompute raw popularity scores and category percentiles
  - archive     : Archive events that finished before today
  - trending    : Print the trending ranking

Every command reads a JSON file of events (an array, ``{"events": [...]}``
or JSONL), validates it at the boundary and works on an in-memory store.

Typical usage:
  python -m event_catalogue.cli dedup events.json --apply --output merged.json
  python -m event_catalogue.cli trending events.json --limit 10 --json-logs
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from event_catalogue.configs import get_settings
from event_catalogue.exceptions import CatalogueError
from event_catalogue.ingestion import DedupOrchestrator, archive_past_events, parse_events
from event_catalogue.monitoring import LoggingOptions, setup_logging
from event_catalogue.recommendations import PopularityScorer, RecommendationEngine
from event_catalogue.schemas.taxonomy import resolve_category
from event_catalogue.storage import (
    InMemoryEventStore,
    InMemoryInteractionStore,
    read_json_records,
    write_events_json,
)

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("input", help="Path to a JSON / JSONL file of events")
    common.add_argument("--source", default=None, help="Attribute records to this source")
    common.add_argument(
        "--now",
        default=None,
        help="Reference time (ISO 8601, UTC if naive); defaults to the current time",
    )
    common.add_argument("--json-logs", action="store_true", help="Emit JSON logs")
    common.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )

    p = argparse.ArgumentParser(prog="event-catalogue", description="Event Catalogue CLI")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    sub = p.add_subparsers(dest="cmd")

    # dedup
    pd = sub.add_parser("dedup", parents=[common], help="Detect and merge duplicates")
    pd.add_argument("--apply", action="store_true", help="Merge matches into the catalogue")
    pd.add_argument("--output", "-o", default=None, help="Write the resulting catalogue here")

    # popularity
    pp = sub.add_parser("popularity", parents=[common], help="Recompute popularity percentiles")
    pp.add_argument("--output", "-o", default=None, help="Write the scored catalogue here")

    # archive
    pa = sub.add_parser("archive", parents=[common], help="Archive past events")
    pa.add_argument("--output", "-o", default=None, help="Write the resulting catalogue here")

    # trending
    pt = sub.add_parser("trending", parents=[common], help="Show trending events")
    pt.add_argument("--limit", "-n", type=int, default=settings.RANKING.default_limit)
    pt.add_argument("--category", default=None, help="Restrict to one category")

    return p.parse_args(argv)


def _reference_time(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _load_store(args: argparse.Namespace) -> tuple[InMemoryEventStore, dict[str, Any]]:
    path = Path(args.input)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")

    boundary = parse_events(read_json_records(path), source=args.source)
    if boundary.rejected:
        logger.warning(f"Rejected {len(boundary.rejected)} invalid records from {path}")
    return InMemoryEventStore(boundary.events), boundary.to_dict()


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def main(argv: list[str] | None = None) -> int:
    """Run the CLI with the given arguments."""
    try:
        return _main_impl(argv)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in input: {e}", file=sys.stderr)
        return 1
    except (CatalogueError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _main_impl(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    if args.version:
        from event_catalogue import __version__

        print(f"event-catalogue version {__version__}")
        return 0

    if not args.cmd:
        print("Error: Command required. Use --help for usage info.", file=sys.stderr)
        return 1

    json_logs = bool(args.json_logs) or get_settings().JSON_LOGS
    setup_logging(LoggingOptions(level=args.log_level, json_logs=json_logs))
    now = _reference_time(args.now)
    store, boundary = _load_store(args)

    if args.cmd == "dedup":
        result = DedupOrchestrator(store).run_pass(now=now, apply=bool(args.apply))
        _print_json({"boundary": boundary, "dedup": result.to_dict()})
        if args.output:
            write_events_json(Path(args.output), store.list(include_archived=True))
            print(f"Catalogue written to {args.output} ({len(store)} events)")
        return 0 if not result.errors else 2

    if args.cmd == "popularity":
        result = PopularityScorer().update_store(store, now=now)
        _print_json({"boundary": boundary, "popularity": result.to_dict()})
        if args.output:
            write_events_json(Path(args.output), store.list(include_archived=True))
        return 0

    if args.cmd == "archive":
        stats = archive_past_events(store, now=now)
        _print_json({"boundary": boundary, "archive": asdict(stats)})
        if args.output:
            write_events_json(Path(args.output), store.list(include_archived=True))
        return 0 if not stats.errors else 2

    if args.cmd == "trending":
        category = resolve_category(args.category) if args.category else None
        engine = RecommendationEngine(store, InMemoryInteractionStore())
        ranked = engine.trending(limit=args.limit, category=category, now=now)

        print(f"{'SCORE':<8} {'START':<12} {'TITLE'}")
        print("-" * 60)
        for item in ranked:
            event = store.get(item.event_id)
            print(f"{item.score:<8.3f} {event.start_date.date().isoformat():<12} {event.title}")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
