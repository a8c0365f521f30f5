"""
Shared pytest fixtures for the event catalogue test suite.

Provides factory fixtures for events, users and interactions, plus empty
in-memory stores. All timestamps are fixed so rankings are reproducible.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import pytest

from event_catalogue.schemas.event import Event, EventStats, Venue
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.schemas.user import (
    InteractionType,
    PriceRange,
    User,
    UserInteraction,
    UserPreferences,
)
from event_catalogue.storage import InMemoryEventStore, InMemoryInteractionStore

NOW = datetime(2025, 12, 1, 12, 0, tzinfo=timezone.utc)
SHOW_DATE = datetime(2025, 12, 15, 19, 30, tzinfo=timezone.utc)
FIRST_SEEN = datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    """Fixed reference time used by date-sensitive tests."""
    return NOW


@pytest.fixture
def create_event():
    """
    Return a function that creates Event objects with sensible defaults.

    Defaults describe a Hamilton listing at the Princess Theatre scraped from
    the marriner source. Every field can be overridden via keyword arguments.

    Example:
        event = create_event(title="Phantom", source="ticketmaster")
    """

    def _create_event(
        title: str = "Hamilton",
        venue_name: str = "Princess Theatre",
        start_date: Optional[datetime] = None,
        source: str = "marriner",
        external_id: Optional[str] = None,
        locality: Optional[str] = "Melbourne",
        address: str = "163 Spring St",
        stats: Optional[EventStats] = None,
        **kwargs,
    ) -> Event:
        event_id = kwargs.pop("id", uuid.uuid4().hex)
        defaults = {
            "id": event_id,
            "title": title,
            "category": Category.THEATRE,
            "subcategories": ["Musicals"],
            "start_date": start_date or SHOW_DATE,
            "venue": Venue(name=venue_name, address=address, locality=locality),
            "price_min": 79.9,
            "price_max": 299.9,
            "primary_source": source,
            "sources": [source],
            "source_ids": {source: external_id or event_id},
            "stats": stats or EventStats(),
            "first_seen": FIRST_SEEN,
            "last_updated": FIRST_SEEN,
        }
        defaults.update(kwargs)
        return Event(**defaults)

    return _create_event


@pytest.fixture
def sample_event(create_event):
    """Return a single default test event."""
    return create_event()


@pytest.fixture
def hamilton_listings(create_event):
    """
    Return the same Hamilton season as listed by three sources.

    Titles, venue spellings and sources differ; dates are identical.
    """
    return [
        create_event(
            title="Hamilton",
            venue_name="Princess Theatre",
            source="marriner",
            external_id="hamilton",
        ),
        create_event(
            title="Hamilton - The Musical",
            venue_name="Princess Theatre Melbourne",
            source="ticketmaster",
            external_id="tm-1001",
            price_min=65.0,
            price_max=250.0,
            address="TBA",
        ),
        create_event(
            title="HAMILTON",
            venue_name="Princess Theatre, Melbourne VIC",
            source="whatson",
            external_id="wo-77",
            description="A" * 150,
        ),
    ]


@pytest.fixture
def create_user():
    """
    Return a function that creates User objects.

    Example:
        user = create_user(category_weights={Category.MUSIC: 1.0})
    """

    def _create_user(
        category_weights: Optional[dict] = None,
        selected_categories: Optional[list] = None,
        selected_subcategories: Optional[list] = None,
        price_range: Optional[PriceRange] = None,
        popularity_preference: float = 0.5,
        locations: Optional[list] = None,
        **kwargs,
    ) -> User:
        preferences = UserPreferences(
            category_weights=category_weights or {},
            selected_categories=selected_categories or [],
            selected_subcategories=selected_subcategories or [],
            price_range=price_range or PriceRange(),
            popularity_preference=popularity_preference,
            locations=locations if locations is not None else ["Melbourne"],
        )
        return User(preferences=preferences, **kwargs)

    return _create_user


@pytest.fixture
def create_interaction():
    """Return a function that creates UserInteraction objects (default: favourite at NOW)."""

    def _create_interaction(
        user_id: str,
        event_id: str,
        interaction_type: InteractionType = InteractionType.FAVOURITE,
        timestamp: Optional[datetime] = None,
        **kwargs,
    ) -> UserInteraction:
        return UserInteraction(
            user_id=user_id,
            event_id=event_id,
            interaction_type=interaction_type,
            timestamp=timestamp or NOW,
            **kwargs,
        )

    return _create_interaction


@pytest.fixture
def event_store():
    """Return an empty in-memory event store."""
    return InMemoryEventStore()


@pytest.fixture
def interaction_store():
    """Return an empty in-memory interaction store."""
    return InMemoryInteractionStore()
