"""
Archival of past events.

Events are archived, never deleted, once their whole date range lies before
today (UTC midnight). Single-session events use their start date; ongoing
runs whose end date has not passed stay active.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import Optional

from event_catalogue.exceptions import EventNotFoundError
from event_catalogue.schemas.event import Event
from event_catalogue.storage.base import EventStore

logger = logging.getLogger(__name__)


@dataclass
class ArchiveStats:
    archived: int = 0
    skipped: int = 0
    errors: int = 0


def archive_cutoff(now: datetime) -> datetime:
    """Start of the current UTC day."""
    now = now.astimezone(timezone.utc)
    return datetime.combine(now.date(), time.min, tzinfo=timezone.utc)


def is_past(event: Event, now: datetime) -> bool:
    return event.end_or_start < archive_cutoff(now)


def archive_past_events(store: EventStore, now: Optional[datetime] = None) -> ArchiveStats:
    """
    Archive every active event whose date range is fully in the past.

    Returns:
        ArchiveStats with archived / skipped (still current) / error counts.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = archive_cutoff(now)
    stats = ArchiveStats()

    logger.info(f"Archiving events ending before {cutoff.isoformat()}")

    for event in store.list():
        if not is_past(event, now):
            stats.skipped += 1
            continue
        try:
            event.is_archived = True
            event.archived_at = now
            store.save(event)
            stats.archived += 1
            logger.debug(f"Archived '{event.title}' ({event.end_or_start.date()})")
        except Exception as e:
            stats.errors += 1
            logger.error(f"Failed to archive {event.id}: {e}")

    logger.info(f"Archived {stats.archived} events ({stats.skipped} still current)")
    return stats


def unarchive_event(store: EventStore, event_id: str) -> Event:
    """
    Restore an archived event, e.g. after its dates were corrected.

    Raises:
        EventNotFoundError: If the event does not exist.
    """
    event = store.get(event_id)
    if event is None:
        raise EventNotFoundError(event_id)

    event.is_archived = False
    event.archived_at = None
    store.save(event)
    logger.info(f"Unarchived {event_id}")
    return event
