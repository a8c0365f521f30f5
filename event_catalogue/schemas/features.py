# event_catalogue/schemas/features.py
"""
Derived, ephemeral records of the recommendation engine.

These are recomputed whenever their inputs change and are never persisted,
so they are plain dataclasses holding numpy arrays rather than validated
pydantic models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import numpy as np

from event_catalogue.schemas.taxonomy import Category


@dataclass
class EventVector:
    """Weighted feature encoding of one event."""

    event_id: str
    category_vector: np.ndarray
    subcategory_vector: np.ndarray
    price_normalised: float
    venue_tier: float
    is_free: bool
    popularity_percentile: float
    full_vector: np.ndarray

    @property
    def dimension(self) -> int:
        return int(self.full_vector.shape[0])


@dataclass
class InteractionVector:
    """Implicit preference vector built from a user's interaction history."""

    vector: np.ndarray
    count: int
    confidence: float


@dataclass
class UserProfile:
    """Blended, unit-normalised user preference vector."""

    user_id: str
    user_vector: np.ndarray
    confidence: float
    interaction_count: int
    dominant_categories: list[Category] = field(default_factory=list)
    dominant_subcategories: list[str] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    @property
    def is_cold_start(self) -> bool:
        return self.interaction_count == 0


@dataclass
class ScoreExplanation:
    """Per-signal breakdown of a personalised score."""

    content_similarity: float
    popularity_alignment: float
    novelty: float
    temporal_urgency: float
    reason: str = ""


@dataclass
class ScoredEvent:
    """An event id with its ranking score, as handed to presentation layers."""

    event_id: str
    score: float
    reason: str = ""
    explanation: Optional[ScoreExplanation] = None
