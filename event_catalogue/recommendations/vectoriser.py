"""
Feature Extractor.

Maps an event into a fixed-dimension, pre-weighted numeric vector:

    [ category one-hot | subcategory multi-hot | price | venue tier | is_free | popularity ]

Each block is multiplied by its feature weight before concatenation so that
plain cosine similarity on the full vector reproduces the weighted distance
(category > subcategory > popularity > price / venue). The layout is derived
from the taxonomy module, so every vector built in the process shares one
dimensionality.
"""

import math
from typing import Iterable, Optional

import numpy as np

from event_catalogue.configs import Config, FeatureSettings, ReferenceData, get_settings
from event_catalogue.schemas.event import Event
from event_catalogue.schemas.features import EventVector
from event_catalogue.schemas.taxonomy import (
    Category,
    all_categories,
    flattened_subcategories,
)


class FeatureExtractor:
    """
    Event vectoriser.

    Args:
        reference_data: Venue tier table and keyword rules.
        settings: Feature weights and price scale.
    """

    def __init__(
        self,
        reference_data: Optional[ReferenceData] = None,
        settings: Optional[FeatureSettings] = None,
    ):
        self.settings = settings or get_settings().FEATURES
        self.reference_data = reference_data or Config.load_reference_data()

        self.categories: tuple[Category, ...] = all_categories()
        self.subcategories: tuple[tuple[Category, str], ...] = flattened_subcategories()
        self._venue_tiers = {
            name.lower(): tier for name, tier in self.reference_data.venue_tiers.items()
        }

    # ========================================================================
    # LAYOUT
    # ========================================================================

    @property
    def category_slice(self) -> slice:
        return slice(0, len(self.categories))

    @property
    def subcategory_slice(self) -> slice:
        start = len(self.categories)
        return slice(start, start + len(self.subcategories))

    @property
    def price_index(self) -> int:
        return self.subcategory_slice.stop

    @property
    def venue_index(self) -> int:
        return self.price_index + 1

    @property
    def free_index(self) -> int:
        return self.price_index + 2

    @property
    def popularity_index(self) -> int:
        return self.price_index + 3

    @property
    def dimension(self) -> int:
        """Length of every full_vector this extractor produces."""
        return self.popularity_index + 1

    # ========================================================================
    # SCALAR FEATURES
    # ========================================================================

    def normalise_price(self, price: Optional[float], is_free: bool = False) -> float:
        """
        Log-scale a price into [0, 1].

        ``log10(price + 1) / log10(ceiling + 1)``, capped at 1. Free events
        and missing or zero prices map to 0.

        Example:
            >>> round(FeatureExtractor().normalise_price(50.0), 3)
            0.632
        """
        if is_free or not price or price <= 0:
            return 0.0
        scaled = math.log10(price + 1) / math.log10(self.settings.price_ceiling + 1)
        return min(scaled, 1.0)

    def venue_tier(self, venue_name: Optional[str]) -> float:
        """
        Venue tier in [0, 1]: known-venue table, then keyword rules, then neutral.
        """
        if not venue_name:
            return self.settings.neutral_venue_tier

        name_lower = venue_name.strip().lower()
        known = self._venue_tiers.get(name_lower)
        if known is not None:
            return known

        for rule in self.reference_data.venue_tier_keywords:
            if rule.matches(name_lower):
                return rule.value

        return self.settings.neutral_venue_tier

    # ========================================================================
    # EXTRACTION
    # ========================================================================

    def extract_event_features(self, event: Event) -> EventVector:
        """Encode one event. The scalar fields of the result are unweighted."""
        s = self.settings

        category_vector = np.array(
            [s.category_weight if c == event.category else 0.0 for c in self.categories]
        )

        active = set(event.subcategories)
        subcategory_vector = np.array(
            [
                s.subcategory_weight if (c == event.category and sub in active) else 0.0
                for c, sub in self.subcategories
            ]
        )

        price = self.normalise_price(event.price_min, event.is_free)
        tier = self.venue_tier(event.venue.name)
        popularity = event.stats.category_popularity_percentile or 0.0

        full_vector = np.concatenate(
            [
                category_vector,
                subcategory_vector,
                [
                    price * s.price_weight,
                    tier * s.venue_weight,
                    (1.0 if event.is_free else 0.0) * s.free_weight,
                    popularity * s.popularity_weight,
                ],
            ]
        )

        return EventVector(
            event_id=event.id,
            category_vector=category_vector,
            subcategory_vector=subcategory_vector,
            price_normalised=price,
            venue_tier=tier,
            is_free=event.is_free,
            popularity_percentile=popularity,
            full_vector=full_vector,
        )

    def extract_many(self, events: Iterable[Event]) -> dict[str, EventVector]:
        """Vectorise a batch, keyed by event id."""
        return {e.id: self.extract_event_features(e) for e in events}
