"""
Similarity primitives for duplicate detection.

All scores are in [0, 1]. Title and venue similarity share one scheme:
exact normalised match 1.0, substring match ``substring_score`` (0.95),
otherwise the Sørensen–Dice coefficient over character bigrams.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Optional

from event_catalogue.configs import DedupSettings, get_settings
from event_catalogue.ingestion.normalization.text import TextNormaliser
from event_catalogue.schemas.event import EventForDedup


def dice_coefficient(first: str, second: str) -> float:
    """
    Sørensen–Dice coefficient over character bigrams.

    Whitespace is removed before bigrams are taken and repeated bigrams are
    counted as a multiset. Identical strings score 1.0; a string shorter than
    two characters has no bigrams and scores 0.0 against anything else.

    Example:
        >>> round(dice_coefficient("night", "nacht"), 2)
        0.25
    """
    first = "".join(first.split())
    second = "".join(second.split())

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i : i + 2] for i in range(len(first) - 1))
    second_bigrams = Counter(second[i : i + 2] for i in range(len(second) - 1))
    intersection = sum((first_bigrams & second_bigrams).values())

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def character_jaccard(first: str, second: str) -> float:
    """Jaccard similarity of the two strings' character sets."""
    chars1, chars2 = set(first), set(second)
    union = chars1 | chars2
    if not union:
        return 1.0
    return len(chars1 & chars2) / len(union)


class SimilarityScorer:
    """
    Pairwise scoring of dedup projections.

    Args:
        normaliser: TextNormaliser used for titles and venues.
        settings: Thresholds, weights and the date window.
    """

    def __init__(
        self,
        normaliser: Optional[TextNormaliser] = None,
        settings: Optional[DedupSettings] = None,
    ):
        self.normaliser = normaliser or TextNormaliser()
        self.settings = settings or get_settings().DEDUP

    # ========================================================================
    # BUCKETING
    # ========================================================================

    def bucket_key(self, title: Optional[str]) -> str:
        """
        First three significant tokens of the normalised title.

        Example:
            "The Phantom of the Opera - Live!" -> "phantom opera"
        """
        return " ".join(self.normaliser.tokens(title)[:3])

    def quick_reject(self, title1: str, title2: str) -> bool:
        """
        Cheap pre-filter run before full scoring.

        Returns False when the normalised titles are equal or one contains
        the other. Otherwise returns True (skip the pair) when the Jaccard
        similarity of their character sets is below the quick-reject
        threshold. This is a heuristic: it is not guaranteed that no rejected
        pair could have cleared the overall threshold.
        """
        n1 = self.normaliser.normalise_title(title1)
        n2 = self.normaliser.normalise_title(title2)

        if n1 == n2 or n1 in n2 or n2 in n1:
            return False

        return character_jaccard(n1, n2) < self.settings.quick_reject_threshold

    # ========================================================================
    # COMPONENT SCORES
    # ========================================================================

    def _scheme(self, n1: str, n2: str) -> float:
        if n1 == n2:
            return 1.0
        # an empty string is a substring of everything
        if not n1 or not n2:
            return 0.0
        if n1 in n2 or n2 in n1:
            return self.settings.substring_score
        return dice_coefficient(n1, n2)

    def title_similarity(self, title1: str, title2: str) -> float:
        return self._scheme(
            self.normaliser.normalise_title(title1),
            self.normaliser.normalise_title(title2),
        )

    def venue_similarity(self, venue1: str, venue2: str) -> float:
        return self._scheme(
            self.normaliser.normalise_venue(venue1),
            self.normaliser.normalise_venue(venue2),
        )

    def date_overlap(self, event1: EventForDedup, event2: EventForDedup) -> float:
        """
        Score how compatible two events' date ranges are.

        Returns:
            1.0 if the [start, end] intervals intersect (missing end = start),
            near_date_score if the smallest gap between boundary timestamps is
            within the window, extended_date_score within twice the window,
            otherwise 0.0.
        """
        if event1.start_date is None or event2.start_date is None:
            return 0.0

        s1 = event1.start_date
        e1 = event1.end_date or s1
        s2 = event2.start_date
        e2 = event2.end_date or s2

        if s1 <= e2 and s2 <= e1:
            return 1.0

        window = timedelta(days=self.settings.date_window_days)
        min_gap = min(
            _abs_delta(s1, s2),
            _abs_delta(e1, e2),
            _abs_delta(s1, e2),
            _abs_delta(s2, e1),
        )

        if min_gap <= window:
            return self.settings.near_date_score
        if min_gap <= window * 2:
            return self.settings.extended_date_score
        return 0.0

    # ========================================================================
    # OVERALL
    # ========================================================================

    def match_score(
        self, event1: EventForDedup, event2: EventForDedup
    ) -> tuple[float, str]:
        """
        Weighted overall score and a human-readable breakdown.

        Returns:
            (score, breakdown) where breakdown looks like "t:100 d:85 v:100".
        """
        s = self.settings
        title = self.title_similarity(event1.title, event2.title)
        date = self.date_overlap(event1, event2)
        venue = self.venue_similarity(event1.venue.name, event2.venue.name)

        total_weight = s.title_weight + s.date_weight + s.venue_weight
        score = (
            title * s.title_weight + date * s.date_weight + venue * s.venue_weight
        ) / total_weight

        breakdown = f"t:{title * 100:.0f} d:{date * 100:.0f} v:{venue * 100:.0f}"
        return min(score, 1.0), breakdown


def _abs_delta(a: datetime, b: datetime) -> timedelta:
    return abs(a - b)
