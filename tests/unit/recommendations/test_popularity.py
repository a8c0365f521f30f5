"""
Unit tests for popularity scoring and category percentiles.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from event_catalogue.recommendations.popularity import PopularityScorer
from event_catalogue.schemas.event import EventStats
from event_catalogue.schemas.taxonomy import Category

FIRST_SEEN = datetime(2025, 11, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def scorer():
    return PopularityScorer()


class TestVenueCapacity:
    """Venue capacity estimates."""

    @pytest.mark.parametrize(
        "name, capacity",
        [
            ("Princess Theatre", 1500),
            ("marvel stadium", 56000),
            ("Geelong Stadium", 50000),
            ("Showgrounds Arena", 50000),
            ("Hisense Arena", 15000),
            ("Brunswick Town Hall", 1500),
            ("The Basement Bar", 400),
            ("Somewhere", 800),
            (None, 800),
        ],
    )
    def test_estimates(self, scorer, name, capacity):
        """Known venues, then keyword rules, then the default."""
        assert scorer.estimate_venue_capacity(name) == capacity


class TestRawScore:
    """Raw popularity."""

    def test_formula(self, scorer, create_event):
        """Engagement plus scale signals, halved after one horizon of listing."""
        event = create_event(stats=EventStats(view_count=10, favourite_count=2, clickthrough_count=1))
        now = FIRST_SEEN + timedelta(days=30)

        expected = (2 * 5 + 1 * 3 + 10 * 0.5 + math.log10(1501) * 2 + math.log10(299.9)) / 2
        assert scorer.calculate_raw_popularity_score(event, now) == pytest.approx(expected)

    def test_multi_source_bonus(self, scorer, create_event):
        """Listings carried by several sources score higher."""
        single = create_event()
        multi = create_event(sources=["marriner", "ticketmaster", "whatson"])
        now = FIRST_SEEN
        assert scorer.calculate_raw_popularity_score(multi, now) - scorer.calculate_raw_popularity_score(
            single, now
        ) == pytest.approx(3 * 1.5)

    def test_cheap_tickets_add_no_price_signal(self, scorer, create_event):
        """Only prices above the floor count."""
        cheap = create_event(price_min=20.0, price_max=40.0)
        assert scorer.cold_start_popularity_score(cheap) == pytest.approx(math.log10(1501) * 3)

    def test_cold_start(self, scorer, create_event):
        """Cold-start scores use capacity, price and sources only."""
        event = create_event(stats=EventStats(favourite_count=100))
        expected = math.log10(1501) * 3 + math.log10(299.9) * 2
        assert scorer.cold_start_popularity_score(event) == pytest.approx(expected)

    def test_monotonic_in_engagement(self, scorer, create_event):
        """More favourites never lower the score."""
        scores = [
            scorer.calculate_raw_popularity_score(create_event(stats=EventStats(favourite_count=n)), FIRST_SEEN)
            for n in (0, 1, 5, 20)
        ]
        assert scores == sorted(scores)


class TestCategoryPercentiles:
    """Percentile refresh."""

    def test_percentiles_within_category(self, scorer, create_event, now):
        """Events are ranked within their own category."""
        low = create_event(stats=EventStats(favourite_count=0))
        mid = create_event(stats=EventStats(favourite_count=5))
        high = create_event(stats=EventStats(favourite_count=10))
        solo = create_event(category=Category.MUSIC, subcategories=[])

        result = scorer.update_category_percentiles([high, solo, low, mid], now)

        assert low.stats.category_popularity_percentile == 0.0
        assert mid.stats.category_popularity_percentile == 0.5
        assert high.stats.category_popularity_percentile == 1.0
        assert solo.stats.category_popularity_percentile == 0.5
        assert result.updated == 4
        assert result.per_category == {Category.THEATRE: 3, Category.MUSIC: 1}
        assert high.stats.raw_popularity_score > low.stats.raw_popularity_score
        assert high.stats.last_popularity_update == now

    def test_update_store_persists(self, scorer, event_store, create_event, now):
        """Store refreshes write the new stats back."""
        a = create_event(stats=EventStats(favourite_count=1))
        b = create_event(stats=EventStats(favourite_count=9))
        event_store.save(a)
        event_store.save(b)

        result = scorer.update_store(event_store, now)

        assert result.to_dict() == {"updated": 2, "per_category": {"theatre": 2}}
        assert event_store.get(b.id).stats.category_popularity_percentile == 1.0
        assert event_store.get(a.id).stats.category_popularity_percentile == 0.0


class TestCompareToCategory:
    """Position against the category average."""

    def test_above(self, scorer, create_event):
        """A high percentile sits above a low average."""
        event = create_event(stats=EventStats(category_popularity_percentile=0.9))
        peers = [
            create_event(stats=EventStats(category_popularity_percentile=0.2)),
            create_event(stats=EventStats(category_popularity_percentile=0.4)),
        ]

        comparison = scorer.compare_to_category(event, peers)

        assert comparison.category_average == pytest.approx(0.3)
        assert comparison.compared_to_average == "above"

    def test_within_band_is_average(self, scorer, create_event):
        """Within ±0.1 of the average counts as average."""
        event = create_event(stats=EventStats(category_popularity_percentile=0.55))
        peers = [create_event(stats=EventStats(category_popularity_percentile=0.5))]
        assert scorer.compare_to_category(event, peers).compared_to_average == "average"

    def test_missing_percentile_and_no_peers(self, scorer, create_event):
        """A missing percentile counts as 0.5; no peers means average."""
        comparison = scorer.compare_to_category(create_event(), [])
        assert comparison.percentile == 0.5
        assert comparison.compared_to_average == "average"
