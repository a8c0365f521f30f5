"""
JSON readers and writers for catalogue snapshots.

Used by the CLI to load a scraped/exported batch of events and to write the
merged catalogue back out.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from event_catalogue.schemas.event import Event


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def read_json_records(path: Path, *, encoding: str = "utf-8") -> list[dict[str, Any]]:
    """
    Read a JSON array of objects (or JSONL, one object per line).

    Raises:
        ValueError: If the document is not a list of objects.
    """
    text = path.read_text(encoding=encoding)
    if path.suffix == ".jsonl":
        return [json.loads(line) for line in text.splitlines() if line.strip()]

    data = json.loads(text)
    if isinstance(data, dict) and isinstance(data.get("events"), list):
        data = data["events"]
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise ValueError(f"{path} must contain a JSON array of event objects")
    return data


def write_json(path: Path, obj: Any, *, encoding: str = "utf-8") -> None:
    ensure_parent(path)
    with path.open("w", encoding=encoding) as f:
        json.dump(obj, f, indent=2, ensure_ascii=False, default=str)


def write_events_json(path: Path, events: Iterable[Event], *, encoding: str = "utf-8") -> None:
    """Write events as a JSON array in their serialised (mode="json") form."""
    write_json(path, [e.model_dump(mode="json") for e in events], encoding=encoding)
