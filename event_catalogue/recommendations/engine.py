"""
Recommendation Engine.

Facade that pulls candidates from the stores and hands them to the ranker.
All surfaces only consider upcoming, non-archived events.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from event_catalogue.configs import Settings, get_settings
from event_catalogue.recommendations.popularity import PopularityScorer
from event_catalogue.recommendations.ranking import Ranker
from event_catalogue.recommendations.user_profile import UserProfileBuilder
from event_catalogue.recommendations.vectoriser import FeatureExtractor
from event_catalogue.schemas.features import ScoredEvent
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.schemas.user import User
from event_catalogue.storage.base import EventStore, InteractionStore

logger = logging.getLogger(__name__)


class RecommendationEngine:
    """
    Recommendation surfaces over an event store and an interaction log.

    Args:
        events: Event store.
        interactions: Interaction log.
        settings: Application settings; the cached settings by default.

    Example:
        >>> engine = RecommendationEngine(InMemoryEventStore(), InMemoryInteractionStore())
        >>> engine.trending(limit=10)
        []
    """

    def __init__(
        self,
        events: EventStore,
        interactions: InteractionStore,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.events = events
        self.interactions = interactions
        self.settings = settings.RANKING

        self.extractor = FeatureExtractor(settings=settings.FEATURES)
        self.profiles = UserProfileBuilder(
            interactions, events, extractor=self.extractor, settings=settings.PROFILE
        )
        self.ranker = Ranker(
            extractor=self.extractor,
            popularity=PopularityScorer(settings=settings.POPULARITY),
            settings=settings.RANKING,
        )

    def _limit(self, limit: Optional[int]) -> int:
        return limit if limit is not None else self.settings.default_limit

    def for_you(
        self,
        user: User,
        limit: Optional[int] = None,
        category: Optional[Category] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredEvent]:
        """Personalised feed, excluding events the user already favourited."""
        now = now or datetime.now(timezone.utc)
        profile = self.profiles.compute_user_profile(user.id, user, now)

        favourite_ids = self.interactions.recent_favourites(
            user.id, self.settings.recent_favourites_limit
        )
        favourite_vectors = [
            v.full_vector
            for v in self.extractor.extract_many(self.events.get_many(favourite_ids)).values()
        ]

        results = self.ranker.rank_personalised(
            profile,
            user,
            self.events.upcoming(now, category=category),
            favourite_vectors,
            now,
            exclude_ids=self.interactions.favourited_event_ids(user.id),
            limit=self._limit(limit),
        )
        logger.info(
            f"For-you feed for {user.id}: {len(results)} events "
            f"(confidence={profile.confidence:.2f}, interactions={profile.interaction_count})"
        )
        return results

    def trending(
        self,
        limit: Optional[int] = None,
        category: Optional[Category] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredEvent]:
        now = now or datetime.now(timezone.utc)
        candidates = self.events.upcoming(
            now, category=category, limit=self.settings.trending_pool_size
        )
        return self.ranker.rank_trending(candidates, now, limit=self._limit(limit))

    def hidden_gems(
        self,
        limit: Optional[int] = None,
        category: Optional[Category] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredEvent]:
        now = now or datetime.now(timezone.utc)
        candidates = self.events.upcoming(now, category=category)
        return self.ranker.rank_hidden_gems(candidates, limit=self._limit(limit))

    def similar_to(
        self,
        event_id: str,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredEvent]:
        """Upcoming same-category events closest to ``event_id``; [] when unknown."""
        now = now or datetime.now(timezone.utc)
        target = self.events.get(event_id)
        if target is None:
            logger.debug(f"similar_to: unknown event {event_id}")
            return []

        candidates = self.events.upcoming(now, category=target.category)
        return self.ranker.rank_similar(target, candidates, limit=limit)

    def rising_stars(
        self,
        limit: Optional[int] = None,
        category: Optional[Category] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredEvent]:
        now = now or datetime.now(timezone.utc)
        candidates = self.events.upcoming(now, category=category)
        return self.ranker.rank_rising_stars(candidates, now, limit=self._limit(limit))

    def popular_in_category(
        self,
        category: Category,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[ScoredEvent]:
        """Upcoming events in the top percentiles of ``category``."""
        now = now or datetime.now(timezone.utc)
        candidates = self.events.upcoming(now, category=category)
        return self.ranker.rank_popular_in_category(candidates, category, limit=self._limit(limit))
