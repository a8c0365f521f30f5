"""
Ingestion boundary validation.

Raw records handed over by scrapers or exports are loose dictionaries. This
module is the single place where they are checked and turned into Event
models, so everything downstream can assume well-formed input.

Inverted or unrounded price ranges are repaired rather than rejected.
Records that fail validation are rejected with their errors and counted;
they never raise.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable

from pydantic import ValidationError

from event_catalogue.schemas.event import Event
from event_catalogue.schemas.taxonomy import (
    is_cross_listing_tag,
    is_valid_subcategory,
    resolve_category,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RejectedRecord:
    index: int
    title: str | None
    errors: list[str]


@dataclass
class BoundaryResult:
    events: list[Event] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)
    dropped_subcategories: int = 0
    repaired_prices: int = 0

    @property
    def ok(self) -> bool:
        return not self.rejected

    def to_dict(self) -> dict[str, Any]:
        return {
            "accepted": len(self.events),
            "rejected": len(self.rejected),
            "dropped_subcategories": self.dropped_subcategories,
            "repaired_prices": self.repaired_prices,
        }


def _normalise_price(value: Any) -> Any:
    """Round to cents; negatives become None. Non-numeric values are left to validation."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    if math.isnan(value) or value < 0:
        return None
    return round(float(value), 2)


def _repair_prices(data: dict[str, Any]) -> bool:
    """Normalise ``price_min``/``price_max`` in place; True when anything changed."""
    before = (data.get("price_min"), data.get("price_max"))
    for key in ("price_min", "price_max"):
        if key in data:
            data[key] = _normalise_price(data[key])

    low, high = data.get("price_min"), data.get("price_max")
    if isinstance(low, float) and isinstance(high, float) and low > high:
        data["price_min"], data["price_max"] = high, low

    return (data.get("price_min"), data.get("price_max")) != before


def _prepare(record: dict[str, Any], source: str | None, result: BoundaryResult) -> dict[str, Any]:
    """Light shaping of a raw record before model validation; prices are repaired, not rejected."""
    data = dict(record)

    if "category" in data and isinstance(data["category"], str):
        data["category"] = resolve_category(data["category"])

    if "subcategories" not in data and data.get("subcategory"):
        data["subcategories"] = [data.pop("subcategory")]
    data.pop("subcategory", None)

    category = data.get("category")
    if category is not None and isinstance(data.get("subcategories"), list):
        kept = [
            s
            for s in data["subcategories"]
            if is_valid_subcategory(category, s) or is_cross_listing_tag(category, s)
        ]
        result.dropped_subcategories += len(data["subcategories"]) - len(kept)
        data["subcategories"] = kept

    if _repair_prices(data):
        result.repaired_prices += 1

    if source:
        data.setdefault("primary_source", source)
        data.setdefault("sources", [source])
        external_id = data.pop("source_id", None)
        if external_id is not None:
            data.setdefault("source_ids", {source: str(external_id)})

    return data


def _format_errors(error: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(p) for p in e['loc']) or '<record>'}: {e['msg']}"
        for e in error.errors()
    ]


def parse_events(raw_records: Iterable[Any], source: str | None = None) -> BoundaryResult:
    """
    Validate raw records into Events.

    Args:
        raw_records: Dicts as produced by a scraper or a JSON export.
        source: When given, attributed as the records' source; a raw
            ``source_id`` key becomes the external id for that source.

    Returns:
        BoundaryResult with the accepted events and the rejected records.
    """
    result = BoundaryResult()

    for index, record in enumerate(raw_records):
        if not isinstance(record, dict):
            result.rejected.append(
                RejectedRecord(index=index, title=None, errors=["record is not an object"])
            )
            continue

        try:
            event = Event.model_validate(_prepare(record, source, result))
        except ValidationError as ve:
            rejected = RejectedRecord(
                index=index,
                title=record.get("title"),
                errors=_format_errors(ve),
            )
            result.rejected.append(rejected)
            logger.warning(f"Rejected record #{index} ({rejected.title!r}): {'; '.join(rejected.errors)}")
            continue

        result.events.append(event)

    if result.rejected:
        logger.info(f"Boundary validation: {len(result.events)} accepted, {len(result.rejected)} rejected")
    return result
