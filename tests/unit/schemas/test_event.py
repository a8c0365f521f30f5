"""
Unit tests for the canonical Event schema and the dedup projections.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from event_catalogue.schemas.event import (
    PLACEHOLDER_DESCRIPTION,
    DuplicateMatch,
    Event,
    EventForDedup,
    EventStats,
    Venue,
)
from event_catalogue.schemas.taxonomy import Category

START = datetime(2025, 12, 15, 19, 30, tzinfo=timezone.utc)


class TestEventDefaults:
    """Defaults and coercion."""

    def test_minimal_event(self):
        """Only title and start date are required."""
        event = Event(title="Open Mic", start_date=START)
        assert event.category == Category.OTHER
        assert event.description == PLACEHOLDER_DESCRIPTION
        assert event.venue.address == "TBA"
        assert len(event.id) == 32

    def test_naive_datetimes_become_utc(self):
        """Naive timestamps are interpreted as UTC."""
        event = Event(title="Open Mic", start_date=datetime(2025, 12, 15, 19, 30))
        assert event.start_date.tzinfo == timezone.utc

    def test_category_is_case_insensitive(self):
        """Category values are accepted regardless of case."""
        event = Event(title="Hamilton", start_date=START, category="THEATRE")
        assert event.category == Category.THEATRE

    def test_empty_title_rejected(self):
        """A title is mandatory."""
        with pytest.raises(ValidationError):
            Event(title="", start_date=START)


class TestEventInvariants:
    """Model-level invariants."""

    def test_subcategory_must_belong_to_category(self):
        """A music subcategory is not valid on a theatre event."""
        with pytest.raises(ValidationError, match="not valid for category"):
            Event(
                title="Hamilton",
                start_date=START,
                category=Category.THEATRE,
                subcategories=["Jazz & Blues"],
            )

    def test_cross_listing_tag_allowed(self):
        """Another category's value may be kept as a cross-listing tag."""
        event = Event(
            title="Hamilton",
            start_date=START,
            category=Category.THEATRE,
            subcategories=["Musicals", "music"],
        )
        assert event.subcategories == ["Musicals", "music"]

    def test_fallback_category_is_not_a_cross_listing_tag(self):
        """'other' is never kept as a tag."""
        with pytest.raises(ValidationError):
            Event(title="Hamilton", start_date=START, category=Category.THEATRE, subcategories=["other"])

    def test_price_order(self):
        """price_max may not be below price_min."""
        with pytest.raises(ValidationError, match="price_max"):
            Event(title="Hamilton", start_date=START, price_min=100.0, price_max=50.0)

    def test_free_event_cannot_have_price(self):
        """A free event cannot carry a positive price."""
        with pytest.raises(ValidationError, match="free"):
            Event(title="Picnic", start_date=START, is_free=True, price_min=10.0)

    def test_free_event_with_zero_price(self):
        """A zero price is compatible with is_free."""
        event = Event(title="Picnic", start_date=START, is_free=True, price_min=0.0)
        assert event.is_free

    def test_end_before_start(self):
        """end_date may not precede start_date."""
        with pytest.raises(ValidationError, match="end_date"):
            Event(title="Hamilton", start_date=START, end_date=START - timedelta(days=1))

    def test_assignment_is_validated(self):
        """Invariants also hold on attribute assignment."""
        event = Event(title="Hamilton", start_date=START, price_min=50.0, price_max=80.0)
        with pytest.raises(ValidationError):
            event.price_max = 10.0

    def test_negative_counts_rejected(self):
        """Engagement counters are non-negative."""
        with pytest.raises(ValidationError):
            EventStats(view_count=-1)


class TestEventConvenience:
    """Derived properties and projections."""

    def test_end_or_start(self):
        """Single-session events end when they start."""
        event = Event(title="Hamilton", start_date=START)
        assert event.end_or_start == START
        event.end_date = START + timedelta(days=3)
        assert event.end_or_start == START + timedelta(days=3)

    def test_source_and_external_id(self, create_event):
        """The attributed source and its external id are exposed."""
        event = create_event(source="ticketmaster", external_id="tm-1")
        assert event.source == "ticketmaster"
        assert event.external_id == "tm-1"

    def test_source_falls_back_to_sources_list(self):
        """Without a primary source the first listed source is used."""
        event = Event(title="Hamilton", start_date=START, sources=["whatson", "feverup"])
        assert event.source == "whatson"

    def test_to_dedup(self, create_event):
        """The dedup projection carries the comparison fields."""
        event = create_event(accessibility=["Wheelchair access"])
        view = event.to_dedup()
        assert isinstance(view, EventForDedup)
        assert view.id == event.id
        assert view.source == "marriner"
        assert view.venue.name == "Princess Theatre"
        assert view.accessibility == ("Wheelchair access",)

    def test_total_interactions(self):
        """total_interactions sums all counters."""
        stats = EventStats(view_count=10, favourite_count=2, clickthrough_count=3)
        assert stats.total_interactions == 15


class TestEventForDedup:
    """Completeness of dedup projections."""

    def test_complete(self):
        """Title, venue name and start date make a record complete."""
        view = EventForDedup(id="a", title="Hamilton", venue=Venue(name="Princess"), start_date=START)
        assert view.is_complete

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"title": "", "venue": Venue(name="Princess"), "start_date": START},
            {"title": "   ", "venue": Venue(name="Princess"), "start_date": START},
            {"title": "Hamilton", "start_date": START},
            {"title": "Hamilton", "venue": Venue(name="Princess")},
        ],
    )
    def test_incomplete(self, kwargs):
        """Missing any required dedup field makes a record incomplete."""
        assert not EventForDedup(id="a", **kwargs).is_complete


class TestDuplicateMatch:
    """DuplicateMatch helpers."""

    def test_other(self):
        """other() returns the partner id."""
        match = DuplicateMatch(event1_id="a", event2_id="b", confidence=0.9)
        assert match.other("a") == "b"
        assert match.other("b") == "a"

    def test_other_unknown_id(self):
        """other() rejects ids outside the pair."""
        match = DuplicateMatch(event1_id="a", event2_id="b", confidence=0.9)
        with pytest.raises(ValueError):
            match.other("c")

    def test_pair_is_unordered(self):
        """The pair is the same regardless of orientation."""
        m1 = DuplicateMatch(event1_id="a", event2_id="b", confidence=0.9)
        m2 = DuplicateMatch(event1_id="b", event2_id="a", confidence=0.9)
        assert m1.pair == m2.pair

    def test_confidence_bounds(self):
        """Confidence is bounded to [0, 1]."""
        with pytest.raises(ValidationError):
            DuplicateMatch(event1_id="a", event2_id="b", confidence=1.2)
