"""
Popularity scoring.

Raw popularity combines engagement with scale signals (venue capacity,
price, multi-source presence) and decays with listing age. Raw scores are
only comparable within a category, so a periodic job converts them into
category-relative percentiles that the vectoriser and the ranking surfaces
read from ``Event.stats``.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from event_catalogue.configs import Config, PopularitySettings, ReferenceData, get_settings
from event_catalogue.schemas.event import Event
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.storage.base import EventStore

logger = logging.getLogger(__name__)


@dataclass
class PopularityUpdateResult:
    """Counters of one percentile refresh."""

    updated: int = 0
    per_category: dict[Category, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "updated": self.updated,
            "per_category": {c.value: n for c, n in self.per_category.items()},
        }


@dataclass(frozen=True)
class CategoryComparison:
    percentile: float
    category_average: float
    compared_to_average: str  # "below" | "average" | "above"


class PopularityScorer:
    """
    Raw scores, cold-start scores and category percentiles.

    Args:
        reference_data: Venue capacity table and keyword rules.
        settings: Popularity weights.
    """

    def __init__(
        self,
        reference_data: Optional[ReferenceData] = None,
        settings: Optional[PopularitySettings] = None,
    ):
        self.settings = settings or get_settings().POPULARITY
        self.reference_data = reference_data or Config.load_reference_data()
        self._capacities = {
            name.lower(): capacity
            for name, capacity in self.reference_data.venue_capacities.items()
        }

    def estimate_venue_capacity(self, venue_name: Optional[str]) -> int:
        """Known capacity, else a keyword estimate, else the default (800)."""
        if not venue_name:
            return self.settings.default_venue_capacity

        name_lower = venue_name.strip().lower()
        known = self._capacities.get(name_lower)
        if known is not None:
            return known

        for rule in self.reference_data.venue_capacity_keywords:
            if rule.matches(name_lower):
                return int(rule.value)

        return self.settings.default_venue_capacity

    def _scale_signals(
        self, event: Event, capacity_weight: float, price_weight: float, source_weight: float
    ) -> float:
        s = self.settings
        capacity = self.estimate_venue_capacity(event.venue.name)
        score = math.log10(capacity + 1) * capacity_weight

        if event.price_max and event.price_max > s.price_signal_floor:
            score += math.log10(event.price_max) * price_weight

        if len(event.sources) > 1:
            score += len(event.sources) * source_weight

        return score

    def calculate_raw_popularity_score(self, event: Event, now: Optional[datetime] = None) -> float:
        """
        Unbounded popularity score (typically 0-100).

        Engagement plus scale signals, multiplied by a recency factor
        ``1 / (1 + days_since_first_seen / horizon)``.
        """
        now = now or datetime.now(timezone.utc)
        s = self.settings
        stats = event.stats

        score = (
            stats.favourite_count * s.favourite_weight
            + stats.clickthrough_count * s.clickthrough_weight
            + stats.view_count * s.view_weight
        )
        score += self._scale_signals(
            event, s.venue_capacity_weight, s.price_signal_weight, s.multi_source_weight
        )

        days_listed = max(0.0, (now - event.first_seen).total_seconds() / 86400)
        return score / (1 + days_listed / s.recency_horizon_days)

    def cold_start_popularity_score(self, event: Event) -> float:
        """Score from capacity, price and multi-source presence only."""
        s = self.settings
        return self._scale_signals(
            event,
            s.cold_start_capacity_weight,
            s.cold_start_price_weight,
            s.cold_start_source_weight,
        )

    def update_category_percentiles(
        self, events: Iterable[Event], now: Optional[datetime] = None
    ) -> PopularityUpdateResult:
        """
        Recompute raw scores and category percentiles in place.

        Within each category events are ranked by raw score ascending and
        given percentile ``i / (n - 1)``; a category with a single event gets
        0.5. Ties are ordered by event id.
        """
        now = now or datetime.now(timezone.utc)
        result = PopularityUpdateResult()

        by_category: dict[Category, list[tuple[float, Event]]] = {}
        for event in events:
            score = self.calculate_raw_popularity_score(event, now)
            by_category.setdefault(event.category, []).append((score, event))

        for category, scored in by_category.items():
            scored.sort(key=lambda pair: (pair[0], pair[1].id))
            total = len(scored)
            for i, (score, event) in enumerate(scored):
                event.stats.raw_popularity_score = score
                event.stats.category_popularity_percentile = (
                    0.5 if total == 1 else i / (total - 1)
                )
                event.stats.last_popularity_update = now
            result.per_category[category] = total
            result.updated += total
            logger.debug(f"Updated {total} events in {category.value}")

        logger.info(f"Popularity update complete: {result.updated} events")
        return result

    def update_store(self, store: EventStore, now: Optional[datetime] = None) -> PopularityUpdateResult:
        """Refresh percentiles for every active event in the store."""
        events = store.list()
        result = self.update_category_percentiles(events, now)
        for event in events:
            store.save(event)
        return result

    def compare_to_category(
        self, event: Event, category_events: Iterable[Event]
    ) -> CategoryComparison:
        """
        Position an event relative to its category's average percentile.

        Events without a stored percentile count as 0.5 for the subject and
        0 towards the average.
        """
        percentile = event.stats.category_popularity_percentile
        if percentile is None:
            percentile = 0.5

        peers = [e.stats.category_popularity_percentile or 0.0 for e in category_events]
        average = sum(peers) / len(peers) if peers else percentile

        band = self.settings.comparison_band
        if percentile < average - band:
            label = "below"
        elif percentile > average + band:
            label = "above"
        else:
            label = "average"

        return CategoryComparison(
            percentile=percentile,
            category_average=average,
            compared_to_average=label,
        )
