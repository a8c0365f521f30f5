"""
Unit tests for the similarity primitives.
"""

from datetime import datetime, timedelta, timezone

import pytest

from event_catalogue.configs import DedupSettings
from event_catalogue.ingestion.deduplication import DuplicateDetector
from event_catalogue.ingestion.similarity import (
    SimilarityScorer,
    character_jaccard,
    dice_coefficient,
)
from event_catalogue.schemas.event import EventForDedup, Venue

START = datetime(2025, 12, 15, 19, 30, tzinfo=timezone.utc)


def _view(event_id="a", title="Hamilton", venue="Princess Theatre", start=START, end=None, source="marriner"):
    return EventForDedup(
        id=event_id,
        title=title,
        venue=Venue(name=venue),
        start_date=start,
        end_date=end,
        source=source,
    )


@pytest.fixture
def scorer():
    return SimilarityScorer()


class TestDice:
    """Sørensen–Dice over character bigrams."""

    def test_identical(self):
        """Identical strings score 1."""
        assert dice_coefficient("hamilton", "hamilton") == 1.0

    def test_partial(self):
        """One shared bigram out of four each."""
        assert dice_coefficient("night", "nacht") == pytest.approx(0.25)

    def test_whitespace_ignored(self):
        """Whitespace is removed before bigrams are taken."""
        assert dice_coefficient("swan lake", "swanlake") == 1.0

    def test_too_short(self):
        """Strings shorter than two characters have no bigrams."""
        assert dice_coefficient("a", "b") == 0.0
        assert dice_coefficient("", "ab") == 0.0

    def test_repeated_bigrams_counted_as_multiset(self):
        """Repeated bigrams only match as often as they occur on both sides."""
        # "aaaa" has bigrams {aa: 3}, "aa" has {aa: 1}
        assert dice_coefficient("aaaa", "aa") == pytest.approx(2 * 1 / (3 + 1))

    def test_symmetric(self):
        """Dice is symmetric."""
        assert dice_coefficient("phantom opera", "opera phantom") == dice_coefficient(
            "opera phantom", "phantom opera"
        )


class TestCharacterJaccard:
    """Character-set Jaccard."""

    def test_values(self):
        """Shared characters over all characters."""
        assert character_jaccard("abc", "abd") == pytest.approx(2 / 4)
        assert character_jaccard("", "") == 1.0
        assert character_jaccard("abc", "xyz") == 0.0


class TestBucketKey:
    """Bucket keys."""

    def test_first_three_tokens(self, scorer):
        """The key is the first three significant tokens."""
        assert scorer.bucket_key("Cirque du Soleil Kooza Melbourne 2025") == "cirque du soleil"

    def test_stop_words_skipped(self, scorer):
        """Stop words do not count towards the key."""
        assert scorer.bucket_key("The Phantom of the Opera - Live!") == "phantom opera"

    def test_empty(self, scorer):
        """Titles made only of stop words have no key."""
        assert scorer.bucket_key("The Show") == ""


class TestQuickReject:
    """Character-overlap pre-filter."""

    def test_equal_titles_never_rejected(self, scorer):
        """Equal normalised titles pass."""
        assert not scorer.quick_reject("Hamilton", "HAMILTON!")

    def test_substring_never_rejected(self, scorer):
        """A title contained in the other passes."""
        assert not scorer.quick_reject("Hamilton", "Hamilton - The Musical")

    def test_disjoint_titles_rejected(self, scorer):
        """Titles sharing few characters are rejected."""
        assert scorer.quick_reject("Hamilton", "Swan Lake")

    def test_filter_does_not_change_matches(self, create_event):
        """On a mixed catalogue the pre-filter only skips pairs full scoring would not match."""
        show = START + timedelta(days=3)
        listings = [
            ("Hamilton", "Princess Theatre", "marriner", START),
            ("Hamilton - The Musical", "Princess Theatre Melbourne", "ticketmaster", START),
            ("HAMILTON", "Princess Theatre, Melbourne VIC", "whatson", show),
            ("Moulin Rouge! The Musical", "Regent Theatre", "marriner", START),
            ("Moulin Rouge", "Regent Theatre", "ticketmaster", show),
            ("Oz Comedy Gala", "Athenaeum Theatre", "marriner", START),
            ("Oz Hip Hop", "Athenaeum Theatre", "ticketmaster", START),
            ("Swan Lake", "State Theatre", "whatson", START),
            ("Swan Song", "State Theatre", "marriner", START),
            ("The Phantom of the Opera", "Her Majesty's Theatre", "ticketmaster", START),
            ("Opera Gala", "Her Majesty's Theatre", "whatson", START),
        ]
        views = [
            create_event(title=title, venue_name=venue, source=source, start_date=start).to_dedup()
            for title, venue, source, start in listings
        ]

        filtered = DuplicateDetector().detect(views)
        unfiltered = DuplicateDetector(settings=DedupSettings(quick_reject_threshold=0.0)).detect(views)

        assert filtered.quick_rejected > 0
        assert unfiltered.quick_rejected == 0
        assert unfiltered.pairs_scored > filtered.pairs_scored
        assert {m.pair for m in filtered.matches} == {m.pair for m in unfiltered.matches}
        assert len(filtered.matches) == 4


class TestComponentScores:
    """Title, venue and date components."""

    def test_title_substring_score(self, scorer):
        """Substring titles score the substring constant."""
        assert scorer.title_similarity("Hamilton", "Hamilton - The Musical") == 0.95

    def test_empty_side_scores_zero(self, scorer):
        """A name that normalises to nothing does not count as a substring match."""
        assert scorer.venue_similarity("--", "Princess Theatre") == 0.0
        assert scorer.title_similarity("The Show", "Hamilton") == 0.0
        assert scorer.title_similarity("Hamilton", "The Show") == 0.0

    def test_venue_suffix_variants_are_equal(self, scorer):
        """Venue spellings that differ only in suffixes are identical."""
        assert scorer.venue_similarity("Princess Theatre", "Princess Theatre, Melbourne VIC") == 1.0

    def test_overlapping_ranges(self, scorer):
        """Intersecting date ranges score 1."""
        season = _view(start=START, end=START + timedelta(days=30))
        night = _view(start=START + timedelta(days=10))
        assert scorer.date_overlap(season, night) == 1.0

    @pytest.mark.parametrize(
        "days, expected",
        [(0, 1.0), (10, 0.85), (14, 0.85), (20, 0.5), (28, 0.5), (29, 0.0), (60, 0.0)],
    )
    def test_date_bands(self, scorer, days, expected):
        """Gaps score by band: within the window, within twice the window, beyond."""
        other = _view(start=START + timedelta(days=days))
        assert scorer.date_overlap(_view(), other) == expected

    def test_missing_start_date(self, scorer):
        """A record without a start date has no date overlap."""
        assert scorer.date_overlap(_view(), _view(start=None)) == 0.0

    def test_window_from_settings(self):
        """The date window is configurable."""
        scorer = SimilarityScorer(settings=DedupSettings(date_window_days=3))
        other = _view(start=START + timedelta(days=5))
        assert scorer.date_overlap(_view(), other) == 0.5


class TestMatchScore:
    """Overall weighted score."""

    def test_exact_duplicate(self, scorer):
        """Same title, date and venue score 1."""
        score, breakdown = scorer.match_score(
            _view("a"), _view("b", venue="Princess Theatre Melbourne", source="ticketmaster")
        )
        assert score == pytest.approx(1.0)
        assert breakdown == "t:100 d:100 v:100"

    def test_date_drift(self, scorer):
        """A 10-day drift keeps the pair above the threshold."""
        score, breakdown = scorer.match_score(_view("a"), _view("b", start=START + timedelta(days=10)))
        assert score == pytest.approx(0.5 + 0.3 * 0.85 + 0.2)
        assert "d:85" in breakdown
        assert score >= scorer.settings.overall_threshold

    def test_symmetric_and_bounded(self, scorer):
        """Scores are symmetric and within [0, 1]."""
        a = _view("a", title="Hamilton", venue="Princess Theatre")
        b = _view("b", title="Hamilton the Musical", venue="Her Majesty's", start=START + timedelta(days=20))
        s_ab, _ = scorer.match_score(a, b)
        s_ba, _ = scorer.match_score(b, a)
        assert s_ab == pytest.approx(s_ba)
        assert 0.0 <= s_ab <= 1.0

    def test_weights_are_normalised(self):
        """Scores are divided by the total weight."""
        scorer = SimilarityScorer(settings=DedupSettings(title_weight=1.0, date_weight=1.0, venue_weight=1.0))
        score, _ = scorer.match_score(_view("a"), _view("b"))
        assert score == pytest.approx(1.0)
