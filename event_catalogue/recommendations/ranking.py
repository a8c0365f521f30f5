"""
Ranking surfaces.

The ranker is stateless: every method takes its candidate events and the
reference time explicitly, so results are reproducible for a fixed ``now``.

Surfaces:
- personalised: content similarity, popularity alignment, novelty, urgency
- trending: engagement, engagement velocity, soon-to-occur
- hidden gems: high intrinsic score, little engagement so far
- similar events: nearest neighbours inside one category
- rising stars: below-top-percentile events with fast-growing engagement
- popular in category: top-percentile events of one category
"""

import logging
import math
from datetime import datetime
from typing import Iterable, Optional, Sequence

import numpy as np

from event_catalogue.configs import RankingSettings, get_settings
from event_catalogue.recommendations.popularity import PopularityScorer
from event_catalogue.recommendations.vector_math import cosine_similarity
from event_catalogue.recommendations.vectoriser import FeatureExtractor
from event_catalogue.schemas.event import Event
from event_catalogue.schemas.features import ScoredEvent, ScoreExplanation, UserProfile
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.schemas.user import User

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


def _days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / _SECONDS_PER_DAY


def _top(scored: list[ScoredEvent], limit: Optional[int]) -> list[ScoredEvent]:
    # stable order: score descending, then event id
    scored.sort(key=lambda s: (-s.score, s.event_id))
    return scored if limit is None else scored[:limit]


class Ranker:
    """
    Scores and orders candidate events for each recommendation surface.

    Args:
        extractor: Feature extractor for event vectors.
        popularity: Scorer used for cold-start raw scores.
        settings: Ranking weights, thresholds and pool sizes.
    """

    def __init__(
        self,
        extractor: Optional[FeatureExtractor] = None,
        popularity: Optional[PopularityScorer] = None,
        settings: Optional[RankingSettings] = None,
    ):
        self.extractor = extractor or FeatureExtractor()
        self.popularity = popularity or PopularityScorer()
        self.settings = settings or get_settings().RANKING

    # ========================================================================
    # SIGNALS
    # ========================================================================

    def temporal_urgency(self, event: Event, now: datetime) -> float:
        """``1 / (1 + days_until / horizon)``; started events score 1."""
        days_until = max(0.0, _days_between(now, event.start_date))
        return 1.0 / (1.0 + days_until / self.settings.urgency_horizon_days)

    def popularity_alignment(self, event: Event, user: User) -> float:
        """Mainstream users favour popular events, niche users favour obscure ones."""
        s = self.settings
        preference = user.preferences.popularity_preference
        percentile = event.stats.category_popularity_percentile or 0.0
        if preference > s.mainstream_threshold:
            return percentile
        if preference < s.niche_threshold:
            return 1.0 - percentile
        return 0.5

    def novelty(self, event_vector: np.ndarray, recent_favourite_vectors: Sequence[np.ndarray]) -> float:
        """Distance from the closest recent favourite, scaled by diversity preference."""
        if not recent_favourite_vectors:
            return 0.0
        closest = max(cosine_similarity(event_vector, v) for v in recent_favourite_vectors)
        return (1.0 - closest) * self.settings.diversity_preference

    def engagement_total(self, event: Event) -> float:
        s = self.settings
        stats = event.stats
        return (
            stats.view_count * s.engagement_view_weight
            + stats.favourite_count * s.engagement_favourite_weight
            + stats.clickthrough_count * s.engagement_clickthrough_weight
        )

    def engagement_score(self, event: Event) -> float:
        """Weighted engagement saturated into [0, 1)."""
        total = self.engagement_total(event)
        return total / (total + self.settings.engagement_saturation)

    def engagement_velocity(self, event: Event, now: datetime) -> float:
        """
        Sigmoid of engagement per day listed.

        Events listed inside the trending window get a boost; events first
        seen at ``now`` (or later) score a neutral 0.5.
        """
        s = self.settings
        days_listed = _days_between(event.first_seen, now)
        if days_listed <= 0:
            return 0.5

        per_day = self.engagement_total(event) / days_listed
        velocity = 1.0 / (1.0 + math.exp(-per_day * s.velocity_scale))
        if days_listed <= s.trending_window_days:
            velocity *= s.velocity_boost
        return velocity

    def raw_score(self, event: Event) -> float:
        """Stored raw popularity, else the cold-start estimate."""
        stored = event.stats.raw_popularity_score
        if stored is not None:
            return stored
        return self.popularity.cold_start_popularity_score(event)

    # ========================================================================
    # PERSONALISED
    # ========================================================================

    def explain(self, profile: UserProfile, explanation: ScoreExplanation) -> str:
        s = self.settings
        if explanation.content_similarity > s.strong_match_threshold:
            if profile.dominant_categories:
                label = profile.dominant_categories[0].label
                return f"Strong match with your interests in {label}"
            return "Strong match with your interests"
        if explanation.content_similarity > s.good_match_threshold:
            return "Good match based on your preferences"
        if explanation.novelty > s.novelty_reason_threshold:
            return "Something new to explore!"
        return "Recommended for you"

    def score_event_for_user(
        self,
        profile: UserProfile,
        event: Event,
        user: User,
        recent_favourite_vectors: Sequence[np.ndarray],
        now: datetime,
        event_vector: Optional[np.ndarray] = None,
    ) -> ScoredEvent:
        """
        Personalised score of one event.

        ``0.6 * content + 0.2 * popularity alignment + 0.1 * novelty
        + 0.1 * urgency`` with the default weights.
        """
        s = self.settings
        if event_vector is None:
            event_vector = self.extractor.extract_event_features(event).full_vector

        explanation = ScoreExplanation(
            content_similarity=cosine_similarity(profile.user_vector, event_vector),
            popularity_alignment=self.popularity_alignment(event, user),
            novelty=self.novelty(event_vector, recent_favourite_vectors),
            temporal_urgency=self.temporal_urgency(event, now),
        )
        explanation.reason = self.explain(profile, explanation)

        score = (
            s.content_weight * explanation.content_similarity
            + s.popularity_weight * explanation.popularity_alignment
            + s.novelty_weight * explanation.novelty
            + s.temporal_weight * explanation.temporal_urgency
        )
        return ScoredEvent(
            event_id=event.id,
            score=score,
            reason=explanation.reason,
            explanation=explanation,
        )

    @staticmethod
    def matches_location(event: Event, user: User) -> bool:
        """Events without a locality are never excluded."""
        locations = {loc.lower() for loc in user.preferences.locations}
        if not locations or not event.venue.locality:
            return True
        return event.venue.locality.lower() in locations

    def rank_personalised(
        self,
        profile: UserProfile,
        user: User,
        candidates: Iterable[Event],
        recent_favourite_vectors: Sequence[np.ndarray],
        now: datetime,
        exclude_ids: Optional[set[str]] = None,
        limit: Optional[int] = None,
    ) -> list[ScoredEvent]:
        s = self.settings
        exclude_ids = exclude_ids or set()

        pool = [e for e in candidates if self.matches_location(e, user)]
        pool = pool[: s.personalised_pool_size]

        scored = [
            self.score_event_for_user(profile, event, user, recent_favourite_vectors, now)
            for event in pool
            if event.id not in exclude_ids
        ]
        logger.debug(f"Scored {len(scored)} of {len(pool)} candidates for user {user.id}")
        return _top(scored, limit)

    # ========================================================================
    # NON-PERSONALISED SURFACES
    # ========================================================================

    def trending_score(self, event: Event, now: datetime) -> float:
        s = self.settings
        return (
            s.trending_engagement_weight * self.engagement_score(event)
            + s.trending_velocity_weight * self.engagement_velocity(event, now)
            + s.trending_recency_weight * self.temporal_urgency(event, now)
        )

    def rank_trending(
        self, candidates: Iterable[Event], now: datetime, limit: Optional[int] = None
    ) -> list[ScoredEvent]:
        pool = list(candidates)[: self.settings.trending_pool_size]
        scored = [
            ScoredEvent(event_id=e.id, score=self.trending_score(e, now), reason="Trending now")
            for e in pool
        ]
        return _top(scored, limit)

    def is_hidden_gem(self, event: Event) -> bool:
        s = self.settings
        return (
            event.stats.favourite_count < s.hidden_gem_max_favourites
            and event.stats.view_count < s.hidden_gem_max_views
            and self.raw_score(event) >= s.hidden_gem_min_raw_score
        )

    def rank_hidden_gems(
        self, candidates: Iterable[Event], limit: Optional[int] = None
    ) -> list[ScoredEvent]:
        """
        Every candidate is filtered before ranking, so gems listed late in the
        season are never cut off. The result is capped at ``hidden_gem_pool_size``.
        """
        cap = self.settings.hidden_gem_pool_size
        scored = [
            ScoredEvent(event_id=e.id, score=self.raw_score(e), reason="Hidden gem")
            for e in candidates
            if self.is_hidden_gem(e)
        ]
        return _top(scored, cap if limit is None else min(limit, cap))

    def rank_similar(
        self, target: Event, candidates: Iterable[Event], limit: Optional[int] = None
    ) -> list[ScoredEvent]:
        """Same-category neighbours of ``target`` by cosine similarity."""
        s = self.settings
        pool = [e for e in candidates if e.id != target.id and e.category == target.category]
        pool = pool[: s.similar_pool_size]

        target_vector = self.extractor.extract_event_features(target).full_vector
        scored = [
            ScoredEvent(
                event_id=e.id,
                score=cosine_similarity(
                    target_vector, self.extractor.extract_event_features(e).full_vector
                ),
                reason=f"Similar to {target.title}",
            )
            for e in pool
        ]
        return _top(scored, limit if limit is not None else s.similar_limit)

    def is_rising_star(self, event: Event) -> bool:
        s = self.settings
        percentile = event.stats.category_popularity_percentile
        return (
            percentile is not None
            and percentile < s.rising_star_max_percentile
            and event.stats.favourite_count >= s.rising_star_min_favourites
        )

    def rank_rising_stars(
        self, candidates: Iterable[Event], now: datetime, limit: Optional[int] = None
    ) -> list[ScoredEvent]:
        scored = [
            ScoredEvent(
                event_id=e.id,
                score=self.engagement_velocity(e, now),
                reason="Rising star",
            )
            for e in candidates
            if self.is_rising_star(e)
        ]
        return _top(scored, limit)

    def rank_popular_in_category(
        self,
        candidates: Iterable[Event],
        category: Category,
        limit: Optional[int] = None,
        min_percentile: Optional[float] = None,
    ) -> list[ScoredEvent]:
        """
        Top-percentile events of one category.

        Ordered by percentile descending, then start date; events without a
        percentile never qualify.
        """
        if min_percentile is None:
            min_percentile = self.settings.popular_min_percentile
        popular = [
            e
            for e in candidates
            if e.category == category
            and e.stats.category_popularity_percentile is not None
            and e.stats.category_popularity_percentile >= min_percentile
        ]
        popular.sort(key=lambda e: (-e.stats.category_popularity_percentile, e.start_date, e.id))
        if limit is not None:
            popular = popular[:limit]
        return [
            ScoredEvent(
                event_id=e.id,
                score=e.stats.category_popularity_percentile,
                reason=f"Popular in {category.label}",
            )
            for e in popular
        ]
