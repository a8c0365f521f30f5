"""
User Profile Builder.

A profile lives in the same space as event vectors. It blends two sources:

- explicit: onboarding preferences encoded with the event feature weights
- implicit: the decayed, type-weighted average of the vectors of events the
  user recently interacted with

New users (no usable interactions) get the explicit vector alone with a
fixed low confidence. The blended vector is L2-normalised.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np

from event_catalogue.configs import ProfileSettings, get_settings
from event_catalogue.recommendations.vector_math import normalise_vector
from event_catalogue.recommendations.vectoriser import FeatureExtractor
from event_catalogue.schemas.features import InteractionVector, UserProfile
from event_catalogue.schemas.taxonomy import Category
from event_catalogue.schemas.user import User
from event_catalogue.storage.base import EventStore, InteractionStore

logger = logging.getLogger(__name__)


class UserProfileBuilder:
    """
    Builds user profiles from preferences and interaction history.

    Args:
        interactions: Interaction log.
        events: Event store used to resolve interacted events.
        extractor: Feature extractor shared with the ranking engine.
        settings: Decay, blend and confidence parameters.
    """

    def __init__(
        self,
        interactions: InteractionStore,
        events: EventStore,
        extractor: Optional[FeatureExtractor] = None,
        settings: Optional[ProfileSettings] = None,
    ):
        self.interactions = interactions
        self.events = events
        self.extractor = extractor or FeatureExtractor()
        self.settings = settings or get_settings().PROFILE

    # ========================================================================
    # EXPLICIT
    # ========================================================================

    def build_user_vector_from_preferences(self, user: User) -> np.ndarray:
        """
        Encode onboarding choices in the event feature layout.

        Pure function of ``user.preferences``.
        """
        ex = self.extractor
        fs = ex.settings
        prefs = user.preferences
        vector = np.zeros(ex.dimension)

        for i, category in enumerate(ex.categories):
            vector[ex.category_slice.start + i] = (
                prefs.category_weights.get(category, 0.0) * fs.category_weight
            )

        selected_categories = set(prefs.selected_categories)
        selected_subcategories = set(prefs.selected_subcategories)
        for i, (category, subcategory) in enumerate(ex.subcategories):
            if category in selected_categories and subcategory in selected_subcategories:
                vector[ex.subcategory_slice.start + i] = fs.subcategory_weight

        vector[ex.price_index] = ex.normalise_price(prefs.price_range.midpoint) * fs.price_weight
        vector[ex.venue_index] = self.settings.neutral_venue_preference * fs.venue_weight
        vector[ex.free_index] = (1.0 if prefs.price_range.max == 0 else 0.0) * fs.free_weight
        vector[ex.popularity_index] = prefs.popularity_preference * fs.popularity_weight

        return vector

    # ========================================================================
    # IMPLICIT
    # ========================================================================

    def interaction_weight(self, interaction_type: str, days_since: float) -> float:
        """Type weight times ``0.5 ** (days_since / half_life)``."""
        type_weight = self.settings.interaction_weights.get(interaction_type, 0.0)
        decay = 0.5 ** (max(days_since, 0.0) / self.settings.decay_half_life_days)
        return type_weight * decay

    def confidence_for(self, count: int) -> float:
        return min(count / self.settings.confidence_saturation, 1.0)

    def build_user_vector_from_interactions(
        self, user_id: str, now: Optional[datetime] = None
    ) -> Optional[InteractionVector]:
        """
        Weighted average of recently interacted events' vectors.

        Uses up to ``max_interactions`` of the most recent interactions inside
        the lookback window. Unfavourites contribute negatively; the sum is
        divided by the total absolute weight and negative components are
        clamped to 0.

        Returns:
            InteractionVector, or None when there is no usable interaction.
        """
        now = now or datetime.now(timezone.utc)
        s = self.settings
        since = now - timedelta(days=s.lookback_days)

        interactions = self.interactions.recent_for_user(
            user_id, since=since, limit=s.max_interactions
        )
        if not interactions:
            return None

        event_ids = list(dict.fromkeys(i.event_id for i in interactions))
        vectors = self.extractor.extract_many(self.events.get_many(event_ids))

        weighted_sum = np.zeros(self.extractor.dimension)
        total_weight = 0.0
        count = 0

        for interaction in interactions:
            event_vector = vectors.get(interaction.event_id)
            if event_vector is None:
                continue

            days_since = (now - interaction.timestamp).total_seconds() / 86400
            weight = self.interaction_weight(interaction.interaction_type.value, days_since)
            if weight == 0:
                continue

            weighted_sum += event_vector.full_vector * weight
            total_weight += abs(weight)
            count += 1

        if count == 0 or total_weight == 0:
            logger.debug(f"No resolvable interactions for user {user_id}")
            return None

        vector = np.clip(weighted_sum / total_weight, 0.0, None)
        return InteractionVector(
            vector=vector,
            count=count,
            confidence=self.confidence_for(count),
        )

    # ========================================================================
    # PROFILE
    # ========================================================================

    def compute_user_profile(
        self, user_id: str, user: User, now: Optional[datetime] = None
    ) -> UserProfile:
        """Blend explicit and implicit vectors into a unit-length profile."""
        now = now or datetime.now(timezone.utc)
        s = self.settings
        explicit = self.build_user_vector_from_preferences(user)
        implicit = self.build_user_vector_from_interactions(user_id, now)

        if implicit is None:
            blended = explicit
            confidence = s.cold_start_confidence
            count = 0
        else:
            blended = s.explicit_weight * explicit + (1 - s.explicit_weight) * implicit.vector
            confidence = implicit.confidence
            count = implicit.count

        user_vector = normalise_vector(blended)

        return UserProfile(
            user_id=user_id,
            user_vector=user_vector,
            confidence=confidence,
            interaction_count=count,
            dominant_categories=self._dominant_categories(user_vector),
            dominant_subcategories=self._dominant_subcategories(user_vector),
            last_updated=now,
        )

    @staticmethod
    def _top_indices(values: np.ndarray, limit: int) -> list[int]:
        ranked = sorted(
            (i for i, v in enumerate(values) if v > 0),
            key=lambda i: (-values[i], i),
        )
        return ranked[:limit]

    def _dominant_categories(self, vector: np.ndarray) -> list[Category]:
        ex = self.extractor
        block = vector[ex.category_slice]
        return [
            ex.categories[i]
            for i in self._top_indices(block, self.settings.max_dominant_categories)
        ]

    def _dominant_subcategories(self, vector: np.ndarray) -> list[str]:
        ex = self.extractor
        block = vector[ex.subcategory_slice]
        return [
            ex.subcategories[i][1]
            for i in self._top_indices(block, self.settings.max_dominant_subcategories)
        ]
