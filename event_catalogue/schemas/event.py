# event_catalogue/schemas/event.py
"""
Canonical Event Schema for the event catalogue.

Events scraped from heterogeneous sources (ticketing platforms, venue sites,
municipal listings) are normalised into this model. It is the record that the
dedup engine projects, the merge resolver produces and the vectoriser encodes.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from event_catalogue.schemas.taxonomy import (
    Category,
    is_cross_listing_tag,
    is_valid_subcategory,
)

PLACEHOLDER_DESCRIPTION = "No description available"
PLACEHOLDER_ADDRESS = "TBA"


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# VENUE & STATS
# ============================================================================


class Venue(BaseModel):
    """
    Where the event takes place.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    address: str = PLACEHOLDER_ADDRESS
    locality: Optional[str] = Field(
        default=None,
        description="Suburb / locality used for location filtering",
    )


class EventStats(BaseModel):
    """
    Engagement counters and derived popularity.
    """

    model_config = ConfigDict(validate_assignment=True)

    view_count: int = Field(default=0, ge=0)
    favourite_count: int = Field(default=0, ge=0)
    clickthrough_count: int = Field(default=0, ge=0)

    category_popularity_percentile: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Rank of the raw popularity score within the event's category",
    )
    raw_popularity_score: Optional[float] = Field(default=None, ge=0.0)
    last_popularity_update: Optional[datetime] = None

    @property
    def total_interactions(self) -> int:
        return self.view_count + self.favourite_count + self.clickthrough_count


# ============================================================================
# EVENT
# ============================================================================


class Event(BaseModel):
    """
    Canonical event record.

    Invariants:
    - exactly one category
    - subcategories belong to that category (or are cross-listing tags left
      behind by a cross-category merge)
    - price_min <= price_max when both are present
    - is_free implies no positive price
    """

    model_config = ConfigDict(
        validate_assignment=True,
        json_schema_extra={
            "example": {
                "id": "evt_hamilton_2025",
                "title": "Hamilton",
                "category": "theatre",
                "subcategories": ["Musicals"],
                "start_date": "2025-12-15T19:30:00Z",
                "venue": {
                    "name": "Princess Theatre",
                    "address": "163 Spring St",
                    "locality": "Melbourne",
                },
                "price_min": 79.9,
                "price_max": 299.9,
                "primary_source": "marriner",
                "sources": ["marriner"],
                "source_ids": {"marriner": "hamilton"},
            }
        },
    )

    # Identity
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = Field(..., min_length=1)
    description: str = PLACEHOLDER_DESCRIPTION

    # Classification
    category: Category = Category.OTHER
    subcategories: list[str] = Field(default_factory=list)

    # When / where
    start_date: datetime
    end_date: Optional[datetime] = None
    venue: Venue = Field(default_factory=Venue)

    # Pricing
    price_min: Optional[float] = Field(default=None, ge=0.0)
    price_max: Optional[float] = Field(default=None, ge=0.0)
    price_details: Optional[str] = None
    is_free: bool = False

    # Links & media
    booking_url: str = ""
    booking_urls: dict[str, str] = Field(default_factory=dict)
    image_url: Optional[str] = None
    video_url: Optional[str] = None

    # Extra details
    accessibility: list[str] = Field(default_factory=list)
    age_restriction: Optional[str] = None
    duration: Optional[str] = None

    # Provenance
    sources: list[str] = Field(default_factory=list)
    primary_source: str = ""
    source_ids: dict[str, str] = Field(default_factory=dict)
    merged_from: list[str] = Field(default_factory=list)

    # Engagement
    stats: EventStats = Field(default_factory=EventStats)

    # Lifecycle
    first_seen: datetime = Field(default_factory=_utc_now)
    last_updated: datetime = Field(default_factory=_utc_now)
    is_archived: bool = False
    archived_at: Optional[datetime] = None

    @field_validator(
        "start_date",
        "end_date",
        "first_seen",
        "last_updated",
        "archived_at",
        mode="after",
    )
    @classmethod
    def normalise_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_utc(v)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v):
        """Accept category values case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_invariants(self) -> "Event":
        for subcategory in self.subcategories:
            if not (
                is_valid_subcategory(self.category, subcategory)
                or is_cross_listing_tag(self.category, subcategory)
            ):
                raise ValueError(
                    f"Subcategory '{subcategory}' is not valid for category "
                    f"'{self.category.value}'"
                )

        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_max < self.price_min
        ):
            raise ValueError("price_max cannot be less than price_min")

        if self.is_free and ((self.price_min or 0) > 0 or (self.price_max or 0) > 0):
            raise ValueError("A free event cannot carry a positive price")

        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")

        return self

    # ------------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------------

    @property
    def end_or_start(self) -> datetime:
        """End date, or start date for single-session events."""
        return self.end_date or self.start_date

    @property
    def source(self) -> str:
        """The source this record is attributed to."""
        if self.primary_source:
            return self.primary_source
        return self.sources[0] if self.sources else ""

    @property
    def external_id(self) -> Optional[str]:
        """External id of the record at its primary source."""
        return self.source_ids.get(self.source)

    def to_dedup(self) -> "EventForDedup":
        """Project this event into the read-only dedup view."""
        return EventForDedup(
            id=self.id,
            title=self.title,
            venue=self.venue,
            start_date=self.start_date,
            end_date=self.end_date,
            source=self.source,
            category=self.category,
            price_min=self.price_min,
            price_max=self.price_max,
            price_details=self.price_details,
            description=self.description,
            image_url=self.image_url,
            accessibility=tuple(self.accessibility),
        )


# ============================================================================
# DEDUP VIEW
# ============================================================================


class EventForDedup(BaseModel):
    """
    Read projection of an Event used by the dedup engine.

    Immutable for the duration of a dedup pass. Required dedup fields
    (title, venue name, start date) may be missing here; the detector skips
    such records instead of failing.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    venue: Venue = Field(default_factory=Venue)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    source: str = ""
    category: Category = Category.OTHER
    price_min: Optional[float] = None
    price_max: Optional[float] = None
    price_details: Optional[str] = None
    description: str = ""
    image_url: Optional[str] = None
    accessibility: tuple[str, ...] = ()

    @field_validator("start_date", "end_date", mode="after")
    @classmethod
    def normalise_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_utc(v)

    @property
    def is_complete(self) -> bool:
        """True when the record carries everything the detector needs."""
        return bool(self.title and self.title.strip() and self.venue.name and self.start_date)


class DuplicateMatch(BaseModel):
    """
    A detected duplicate pair.

    Produced fresh on every pass and consumed immediately by the merge step.
    The pair is unordered: which event is ``event1`` carries no meaning.
    """

    model_config = ConfigDict(frozen=True)

    event1_id: str
    event2_id: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str = ""

    @property
    def pair(self) -> frozenset[str]:
        return frozenset((self.event1_id, self.event2_id))

    def other(self, event_id: str) -> str:
        """Return the id paired with ``event_id``."""
        if event_id == self.event1_id:
            return self.event2_id
        if event_id == self.event2_id:
            return self.event1_id
        raise ValueError(f"Event '{event_id}' is not part of this match")
