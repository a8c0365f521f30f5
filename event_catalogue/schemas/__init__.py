"""Pydantic schemas and derived records of the event catalogue."""

from .event import (
    PLACEHOLDER_ADDRESS,
    PLACEHOLDER_DESCRIPTION,
    DuplicateMatch,
    Event,
    EventForDedup,
    EventStats,
    Venue,
)
from .features import (
    EventVector,
    InteractionVector,
    ScoredEvent,
    ScoreExplanation,
    UserProfile,
)
from .taxonomy import (
    FALLBACK_CATEGORY,
    SUBCATEGORIES,
    Category,
    flattened_subcategories,
    get_subcategories,
    is_cross_listing_tag,
    is_valid_subcategory,
    resolve_category,
)
from .user import (
    InteractionSource,
    InteractionType,
    PriceRange,
    User,
    UserInteraction,
    UserPreferences,
)

__all__ = [
    "PLACEHOLDER_ADDRESS",
    "PLACEHOLDER_DESCRIPTION",
    "DuplicateMatch",
    "Event",
    "EventForDedup",
    "EventStats",
    "Venue",
    "EventVector",
    "InteractionVector",
    "ScoredEvent",
    "ScoreExplanation",
    "UserProfile",
    "FALLBACK_CATEGORY",
    "SUBCATEGORIES",
    "Category",
    "flattened_subcategories",
    "get_subcategories",
    "is_cross_listing_tag",
    "is_valid_subcategory",
    "resolve_category",
    "InteractionSource",
    "InteractionType",
    "PriceRange",
    "User",
    "UserInteraction",
    "UserPreferences",
]
