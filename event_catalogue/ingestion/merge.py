"""
Merge resolution for duplicate listings.

Given a matched pair, the resolver picks the primary record (source priority,
then completeness) and combines both into one canonical Event, keeping the
richest value for every field and the full provenance of both listings.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from event_catalogue.configs import Config, DedupSettings, ReferenceData, get_settings
from event_catalogue.schemas.event import Event, EventForDedup, EventStats, Venue
from event_catalogue.schemas.taxonomy import (
    FALLBACK_CATEGORY,
    is_cross_listing_tag,
    is_valid_subcategory,
)

logger = logging.getLogger(__name__)

AnyEvent = Union[Event, EventForDedup]


def _unique(*sequences) -> list:
    """Concatenate sequences, dropping empty and repeated values, keeping order."""
    seen = set()
    result = []
    for sequence in sequences:
        for value in sequence or ():
            if value and value not in seen:
                seen.add(value)
                result.append(value)
    return result


def _first(*values):
    for value in values:
        if value:
            return value
    return None


class MergeResolver:
    """
    Selects primary records and merges duplicate pairs.

    Args:
        reference_data: Source priority table.
        settings: Placeholder markers, default locality and separators.
    """

    def __init__(
        self,
        reference_data: Optional[ReferenceData] = None,
        settings: Optional[DedupSettings] = None,
    ):
        self.reference_data = reference_data or Config.load_reference_data()
        self.settings = settings or get_settings().DEDUP

    # ========================================================================
    # PRIMARY SELECTION
    # ========================================================================

    def completeness(self, event: AnyEvent) -> int:
        """
        Count populated optional fields, one point each.

        Criteria: non-trivial description, image, price, price details, end
        date, non-placeholder address, accessibility tags.
        """
        s = self.settings
        description = event.description or ""
        address = event.venue.address or ""

        checks = [
            len(description) > s.min_description_length
            and s.placeholder_description_marker not in description,
            bool(event.image_url),
            event.price_min is not None,
            bool(event.price_details),
            event.end_date is not None,
            bool(address) and s.placeholder_address_marker not in address,
            bool(event.accessibility),
        ]
        return sum(checks)

    def select_primary_event(self, a: AnyEvent, b: AnyEvent) -> AnyEvent:
        """
        Return whichever of ``a`` and ``b`` should be the merge primary.

        Higher source priority wins; equal priorities fall back to
        completeness; a full tie returns ``a``.
        """
        pa = self.reference_data.priority_of(a.source)
        pb = self.reference_data.priority_of(b.source)
        if pa != pb:
            return a if pa > pb else b
        return a if self.completeness(a) >= self.completeness(b) else b

    # ========================================================================
    # FIELD MERGE
    # ========================================================================

    def merge_events(
        self,
        primary: Event,
        secondary: Event,
        now: Optional[datetime] = None,
    ) -> Event:
        """
        Combine two listings of the same event into one record.

        The result keeps the primary's id and category. Merging an event with
        itself reproduces it in every merged field.
        """
        now = now or datetime.now(timezone.utc)
        s = self.settings
        same_record = primary.id == secondary.id

        start = min(primary.start_date, secondary.start_date)
        end = max(primary.end_or_start, secondary.end_or_start)
        price_min, price_max = self._merge_prices(primary, secondary)
        is_free = (primary.is_free or secondary.is_free) and not (
            (price_min or 0) > 0 or (price_max or 0) > 0
        )

        merged_from = list(primary.merged_from)
        if not same_record:
            merged_from = _unique(
                merged_from,
                secondary.merged_from,
                [f"{secondary.source}:{secondary.external_id or secondary.id}"],
            )

        updates = {
            "category": primary.category,
            "subcategories": self._merge_subcategories(primary, secondary),
            "start_date": start,
            "end_date": end if end != start else None,
            "description": self._merge_description(primary.description, secondary.description),
            "price_min": price_min,
            "price_max": price_max,
            "price_details": s.price_details_separator.join(
                _unique([primary.price_details, secondary.price_details])
            )
            or None,
            "is_free": is_free,
            "venue": self._merge_venue(primary.venue, secondary.venue),
            "image_url": _first(primary.image_url, secondary.image_url),
            "video_url": _first(primary.video_url, secondary.video_url),
            "accessibility": _unique(primary.accessibility, secondary.accessibility),
            "age_restriction": _first(primary.age_restriction, secondary.age_restriction),
            "duration": _first(primary.duration, secondary.duration),
            "booking_url": _first(primary.booking_url, secondary.booking_url) or "",
            "booking_urls": {**secondary.booking_urls, **primary.booking_urls},
            "sources": _unique(primary.sources or [primary.source], secondary.sources or [secondary.source]),
            "primary_source": primary.source,
            "source_ids": {**secondary.source_ids, **primary.source_ids},
            "merged_from": merged_from,
            "stats": primary.stats if same_record else self._merge_stats(primary.stats, secondary.stats),
            "first_seen": min(primary.first_seen, secondary.first_seen),
            "last_updated": now,
        }

        merged = Event.model_validate({**primary.model_dump(), **updates})
        logger.debug(f"Merged {secondary.id} ({secondary.source}) into {primary.id} ({primary.source})")
        return merged

    def _merge_subcategories(self, primary: Event, secondary: Event) -> list[str]:
        category = primary.category
        subcategories = [
            sub
            for sub in _unique(primary.subcategories, secondary.subcategories)
            if is_valid_subcategory(category, sub) or is_cross_listing_tag(category, sub)
        ]
        if (
            secondary.category != category
            and secondary.category != FALLBACK_CATEGORY
            and secondary.category.value not in subcategories
        ):
            subcategories.append(secondary.category.value)
        return subcategories

    def _merge_description(self, primary: str, secondary: str) -> str:
        marker = self.settings.placeholder_description_marker
        primary = primary or ""
        secondary = secondary or ""

        if marker in primary:
            return secondary or primary
        if marker in secondary:
            return primary or secondary
        return secondary if len(secondary) > len(primary) else primary

    @staticmethod
    def _merge_prices(primary: Event, secondary: Event) -> tuple[Optional[float], Optional[float]]:
        """
        Widest range over every defined price.

        A bound no side defined is left empty when all defined prices
        coincide, so a single listed price does not grow a second bound.
        """
        mins = [p for p in (primary.price_min, secondary.price_min) if p is not None]
        maxes = [p for p in (primary.price_max, secondary.price_max) if p is not None]
        values = mins + maxes
        if not values:
            return None, None

        low, high = min(values), max(values)
        if low == high:
            return (low if mins else None), (high if maxes else None)
        return low, high

    def _merge_venue(self, primary: Venue, secondary: Venue) -> Venue:
        marker = self.settings.placeholder_address_marker
        address = primary.address
        if (not address or marker in address) and secondary.address:
            address = secondary.address

        return Venue(
            name=secondary.name if len(secondary.name) > len(primary.name) else primary.name,
            address=address,
            locality=primary.locality or secondary.locality or self.settings.default_locality,
        )

    @staticmethod
    def _merge_stats(primary: EventStats, secondary: EventStats) -> EventStats:
        return primary.model_copy(
            update={
                "view_count": primary.view_count + secondary.view_count,
                "favourite_count": primary.favourite_count + secondary.favourite_count,
                "clickthrough_count": primary.clickthrough_count + secondary.clickthrough_count,
            }
        )


# ============================================================================
# MODULE-LEVEL HELPERS
# ============================================================================


def select_primary_event(a: AnyEvent, b: AnyEvent) -> AnyEvent:
    """Pick the merge primary using the packaged reference data."""
    return MergeResolver().select_primary_event(a, b)


def merge_events(primary: Event, secondary: Event, now: Optional[datetime] = None) -> Event:
    """Merge two listings using the application settings."""
    return MergeResolver().merge_events(primary, secondary, now=now)
