"""
Dedup Orchestrator.

Applies duplicate-detection decisions to the event store:

- run_pass(): detect duplicates across the active catalogue and merge them
- ingest():   fold a freshly scraped batch from one source into the catalogue
              (update known listings, merge fuzzy duplicates, insert the rest)

Per-match and per-event failures are logged and counted; they never abort
the pass. Callers must not run two passes against the same store at once.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from event_catalogue.ingestion.deduplication import DedupReport, DuplicateDetector
from event_catalogue.ingestion.merge import MergeResolver
from event_catalogue.monitoring.logging import with_context
from event_catalogue.schemas.event import Event
from event_catalogue.storage.base import EventStore

logger = logging.getLogger(__name__)


@dataclass
class MergeRecord:
    """One applied merge."""

    primary_id: str
    secondary_id: str
    confidence: float
    reason: str = ""


@dataclass
class DedupRunResult:
    """Result of a dedup pass over the store."""

    run_id: str
    started_at: datetime
    ended_at: datetime
    report: DedupReport
    merges: List[MergeRecord] = field(default_factory=list)
    skipped_already_merged: int = 0
    failed_merges: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    applied: bool = True

    @property
    def duration_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()

    @property
    def merged_count(self) -> int:
        return len(self.merges)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "applied": self.applied,
            "duration_seconds": self.duration_seconds,
            "detection": self.report.to_dict(),
            "merged": self.merged_count,
            "skipped_already_merged": self.skipped_already_merged,
            "failed_merges": self.failed_merges,
            "merges": [
                {
                    "primary_id": m.primary_id,
                    "secondary_id": m.secondary_id,
                    "confidence": round(m.confidence, 4),
                    "reason": m.reason,
                }
                for m in self.merges
            ],
        }


@dataclass
class IngestResult:
    """Counters for one ingested batch."""

    source: str
    inserted: int = 0
    updated: int = 0
    merged: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.merged + self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "inserted": self.inserted,
            "updated": self.updated,
            "merged": self.merged,
            "failed": self.failed,
        }


class DedupOrchestrator:
    """
    Coordinates detection, merge resolution and store writes.

    Args:
        store: Event store the passes read from and write to.
        detector: Duplicate detector (default settings when omitted).
        resolver: Merge resolver (default settings when omitted).
    """

    def __init__(
        self,
        store: EventStore,
        detector: Optional[DuplicateDetector] = None,
        resolver: Optional[MergeResolver] = None,
    ):
        self.store = store
        self.detector = detector or DuplicateDetector()
        self.resolver = resolver or MergeResolver(
            reference_data=self.detector.reference_data,
            settings=self.detector.settings,
        )

    # ========================================================================
    # FULL PASS
    # ========================================================================

    def run_pass(self, now: Optional[datetime] = None, apply: bool = True) -> DedupRunResult:
        """
        Detect and merge duplicates across all active events.

        Matches are applied highest confidence first. Once an event has been
        absorbed, later matches naming it are redirected to its survivor, so
        chains such as A~B, B~C collapse into a single record.

        Args:
            now: Merge timestamp (defaults to the current UTC time).
            apply: When False the merges are computed but nothing is written.
        """
        now = now or datetime.now(timezone.utc)
        run_id = uuid.uuid4().hex[:12]
        log = with_context(logger, run_id=run_id, stage="dedup")
        started_at = datetime.now(timezone.utc)

        events = {e.id: e for e in self.store.list()}
        report = self.detector.detect(e.to_dedup() for e in events.values())
        result = DedupRunResult(
            run_id=run_id,
            started_at=started_at,
            ended_at=started_at,
            report=report,
            applied=apply,
        )

        survivors: dict[str, str] = {}

        def resolve(event_id: str) -> str:
            while event_id in survivors:
                event_id = survivors[event_id]
            return event_id

        for match in report.matches:
            a_id, b_id = resolve(match.event1_id), resolve(match.event2_id)
            if a_id == b_id:
                result.skipped_already_merged += 1
                continue

            try:
                a, b = events[a_id], events[b_id]
                primary = self.resolver.select_primary_event(a, b)
                secondary = b if primary is a else a
                merged = self.resolver.merge_events(primary, secondary, now=now)

                if apply:
                    self.store.save(merged)
                    self.store.delete(secondary.id)

                events[merged.id] = merged
                del events[secondary.id]
                survivors[secondary.id] = merged.id
                result.merges.append(
                    MergeRecord(
                        primary_id=merged.id,
                        secondary_id=secondary.id,
                        confidence=match.confidence,
                        reason=match.reason,
                    )
                )
                log.info(f"Merged '{secondary.title}' ({secondary.source}) into {merged.id}: {match.reason}")
            except Exception as e:
                result.failed_merges += 1
                result.errors.append({"pair": [match.event1_id, match.event2_id], "error": str(e)})
                log.error(f"Failed to merge {match.event1_id} / {match.event2_id}: {e}", exc_info=True)

        result.ended_at = datetime.now(timezone.utc)
        log.info(
            f"Dedup pass complete: {result.merged_count} merged, "
            f"{result.skipped_already_merged} already merged, {result.failed_merges} failed"
        )
        return result

    # ========================================================================
    # BATCH INGESTION
    # ========================================================================

    def ingest(
        self,
        events: Iterable[Event],
        source: str,
        now: Optional[datetime] = None,
    ) -> IngestResult:
        """
        Fold a scraped batch from one source into the catalogue.

        For each event, in order:
        1. Same (source, external id) already stored: update that record
        2. Fuzzy duplicate of a stored or earlier-in-batch event: merge
        3. Otherwise insert it
        """
        now = now or datetime.now(timezone.utc)
        log = with_context(logger, stage="ingest", source=source)
        result = IngestResult(source=source)
        index = _BucketIndex(self.detector)
        for stored in self.store.list():
            index.add(stored)

        for event in events:
            try:
                event = self._attribute(event, source)
                external_id = event.source_ids.get(source)
                existing = (
                    self.store.find_by_source_id(source, external_id) if external_id else None
                )

                if existing is not None:
                    updated = self._update_existing(existing, event, source, now)
                    self.store.save(updated)
                    index.add(updated)
                    result.updated += 1
                    continue

                duplicate = self._find_duplicate(event, index)
                if duplicate is not None:
                    primary = self.resolver.select_primary_event(duplicate, event)
                    secondary = event if primary is duplicate else duplicate
                    merged = self.resolver.merge_events(primary, secondary, now=now)
                    self.store.save(merged)
                    if secondary.id == duplicate.id:
                        self.store.delete(duplicate.id)
                        index.remove(duplicate)
                    index.add(merged)
                    result.merged += 1
                    log.debug(f"Merged '{event.title}' with {duplicate.id}")
                    continue

                self.store.save(event)
                index.add(event)
                result.inserted += 1
            except Exception as e:
                result.failed += 1
                result.errors.append({"title": getattr(event, "title", None), "error": str(e)})
                log.error(f"Failed to ingest '{getattr(event, 'title', '?')}': {e}", exc_info=True)

        log.info(
            f"Ingested {result.total} events: {result.inserted} inserted, "
            f"{result.updated} updated, {result.merged} merged, {result.failed} failed"
        )
        return result

    @staticmethod
    def _attribute(event: Event, source: str) -> Event:
        """Make sure the event is attributed to the ingesting source."""
        if event.primary_source and event.sources:
            return event
        return event.model_copy(
            update={
                "primary_source": event.primary_source or source,
                "sources": event.sources or [source],
            }
        )

    def _update_existing(
        self, existing: Event, incoming: Event, source: str, now: datetime
    ) -> Event:
        """
        Refresh a stored listing from a new scrape of the same source.

        Records owned by this source take the new content; records owned by
        another source merge it in. Identity, engagement and provenance are
        always preserved, and the date range only ever widens.
        """
        if existing.source != source:
            primary = self.resolver.select_primary_event(existing, incoming)
            secondary = incoming if primary is existing else existing
            merged = self.resolver.merge_events(primary, secondary, now=now)
            return merged.model_copy(update={"id": existing.id})

        start = min(existing.start_date, incoming.start_date)
        end = max(existing.end_or_start, incoming.end_or_start)
        data = incoming.model_dump()
        data.update(
            {
                "id": existing.id,
                "start_date": start,
                "end_date": end if end != start else None,
                "sources": list(dict.fromkeys(existing.sources + incoming.sources)),
                "primary_source": existing.primary_source,
                "source_ids": {**existing.source_ids, **incoming.source_ids},
                "booking_urls": {**existing.booking_urls, **incoming.booking_urls},
                "merged_from": existing.merged_from,
                "stats": existing.stats,
                "first_seen": existing.first_seen,
                "last_updated": now,
                "is_archived": existing.is_archived,
                "archived_at": existing.archived_at,
            }
        )
        return Event.model_validate(data)

    def _find_duplicate(self, event: Event, index: "_BucketIndex") -> Optional[Event]:
        """Return the stored event that best matches ``event``, if any."""
        candidates = [
            stored
            for stored in self.store.get_many(index.candidate_ids(event))
            if stored.id != event.id
        ]
        if not candidates:
            return None

        pool = [c.to_dedup() for c in candidates] + [event.to_dedup()]
        matches = [m for m in self.detector.find_duplicates(pool) if event.id in m.pair]
        if not matches:
            return None

        best = matches[0]
        other_id = best.other(event.id)
        return next(c for c in candidates if c.id == other_id)


class _BucketIndex:
    """Bucket-key -> event ids, so ingestion only scores plausible candidates."""

    def __init__(self, detector: DuplicateDetector):
        self.scorer = detector.scorer
        self._buckets: dict[str, set[str]] = {}
        self._keys: dict[str, tuple[str, ...]] = {}

    def _keys_for(self, event: Event) -> tuple[str, ...]:
        key = self.scorer.bucket_key(event.title)
        if not key:
            return ()
        first = key.split(" ")[0]
        return (key,) if first == key else (key, first)

    def add(self, event: Event) -> None:
        self.remove(event)
        keys = self._keys_for(event)
        self._keys[event.id] = keys
        for key in keys:
            self._buckets.setdefault(key, set()).add(event.id)

    def remove(self, event: Event) -> None:
        for key in self._keys.pop(event.id, ()):
            self._buckets.get(key, set()).discard(event.id)

    def candidate_ids(self, event: Event) -> list[str]:
        ids: set[str] = set()
        for key in self._keys_for(event):
            ids |= self._buckets.get(key, set())
        return sorted(ids)
