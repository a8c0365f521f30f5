"""
Cross-source duplicate detection.

Events are grouped into buckets by title prefix so that only plausible pairs
are scored:

1. Drop events missing a title, venue name or start date
2. Bucket by the first three significant title tokens, and again by the
   first token alone so titles that diverge after the third word still meet
3. Order each bucket by source priority (then id)
4. Score every cross-source pair once, after a cheap character-overlap
   pre-filter
5. Emit a DuplicateMatch for every pair at or above the overall threshold

Cost is O(n) for bucketing plus O(sum of k^2) over bucket sizes k. A corpus
whose titles all share one first token degrades to O(n^2).
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from event_catalogue.configs import Config, DedupSettings, ReferenceData, get_settings
from event_catalogue.ingestion.similarity import SimilarityScorer
from event_catalogue.schemas.event import DuplicateMatch, EventForDedup

logger = logging.getLogger(__name__)


@dataclass
class DedupReport:
    """Matches found by one detection pass plus its counters."""

    matches: list[DuplicateMatch] = field(default_factory=list)
    total_events: int = 0
    skipped_incomplete: int = 0
    skipped_no_key: int = 0
    buckets_compared: int = 0
    pairs_scored: int = 0
    same_source_skipped: int = 0
    quick_rejected: int = 0
    failed_pairs: int = 0

    @property
    def match_count(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict:
        return {
            "total_events": self.total_events,
            "skipped_incomplete": self.skipped_incomplete,
            "skipped_no_key": self.skipped_no_key,
            "buckets_compared": self.buckets_compared,
            "pairs_scored": self.pairs_scored,
            "same_source_skipped": self.same_source_skipped,
            "quick_rejected": self.quick_rejected,
            "failed_pairs": self.failed_pairs,
            "matches": self.match_count,
        }


class DuplicateDetector:
    """
    Finds listings of the same real-world event across sources.

    Args:
        scorer: Similarity scorer (built from settings when omitted).
        reference_data: Source priority table.
        settings: Dedup thresholds.
    """

    def __init__(
        self,
        scorer: Optional[SimilarityScorer] = None,
        reference_data: Optional[ReferenceData] = None,
        settings: Optional[DedupSettings] = None,
    ):
        self.settings = settings or get_settings().DEDUP
        self.reference_data = reference_data or Config.load_reference_data()
        self.scorer = scorer or SimilarityScorer(settings=self.settings)

    def find_duplicates(self, events: Iterable[EventForDedup]) -> list[DuplicateMatch]:
        """Return duplicate matches, highest confidence first."""
        return self.detect(events).matches

    def detect(self, events: Iterable[EventForDedup]) -> DedupReport:
        """Run a full detection pass and return matches with counters."""
        report = DedupReport()
        buckets = self._bucket(events, report)

        seen_pairs: set[frozenset[str]] = set()
        for key in sorted(buckets):
            members = list(buckets[key].values())
            if len(members) < 2:
                continue
            report.buckets_compared += 1
            members.sort(key=lambda e: (-self.reference_data.priority_of(e.source), e.id))
            self._compare_bucket(members, seen_pairs, report)

        report.matches.sort(
            key=lambda m: (-m.confidence, min(m.event1_id, m.event2_id), max(m.event1_id, m.event2_id))
        )

        logger.info(
            f"Dedup pass: {report.total_events} events, {report.buckets_compared} buckets, "
            f"{report.pairs_scored} pairs scored, {report.match_count} duplicates found"
        )
        return report

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _bucket(
        self, events: Iterable[EventForDedup], report: DedupReport
    ) -> dict[str, dict[str, EventForDedup]]:
        buckets: dict[str, dict[str, EventForDedup]] = {}

        for event in events:
            report.total_events += 1
            if not event.is_complete:
                report.skipped_incomplete += 1
                logger.debug(f"Skipping event {event.id}: missing title, venue or start date")
                continue

            key = self.scorer.bucket_key(event.title)
            if not key:
                report.skipped_no_key += 1
                logger.debug(f"Skipping event {event.id}: no significant title tokens")
                continue

            buckets.setdefault(key, {})[event.id] = event

            first_token = key.split(" ")[0]
            if first_token != key:
                buckets.setdefault(first_token, {})[event.id] = event

        if report.skipped_incomplete:
            logger.warning(
                f"Skipped {report.skipped_incomplete} events with missing dedup fields"
            )
        return buckets

    def _compare_bucket(
        self,
        members: list[EventForDedup],
        seen_pairs: set[frozenset[str]],
        report: DedupReport,
    ) -> None:
        for i, e1 in enumerate(members):
            for e2 in members[i + 1 :]:
                if e1.source.lower() == e2.source.lower():
                    report.same_source_skipped += 1
                    continue

                pair = frozenset((e1.id, e2.id))
                if pair in seen_pairs:
                    continue
                seen_pairs.add(pair)

                if self.scorer.quick_reject(e1.title, e2.title):
                    report.quick_rejected += 1
                    continue

                try:
                    score, breakdown = self.scorer.match_score(e1, e2)
                except Exception:
                    report.failed_pairs += 1
                    logger.error(f"Failed to score pair {e1.id} / {e2.id}", exc_info=True)
                    continue

                report.pairs_scored += 1
                if score >= self.settings.overall_threshold:
                    report.matches.append(
                        DuplicateMatch(
                            event1_id=e1.id,
                            event2_id=e2.id,
                            confidence=score,
                            reason=f"{score * 100:.0f}% ({breakdown})",
                        )
                    )
