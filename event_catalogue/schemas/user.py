# event_catalogue/schemas/user.py
"""
User and interaction schemas.

Users carry explicit onboarding preferences; interactions form an append-only
log of what they viewed, favourited or clicked through.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from event_catalogue.schemas.taxonomy import Category


class InteractionType(str, Enum):
    """Kinds of user engagement with an event."""

    VIEW = "view"
    FAVOURITE = "favourite"
    UNFAVOURITE = "unfavourite"
    CLICKTHROUGH = "clickthrough"


class InteractionSource(str, Enum):
    """Surface on which the interaction happened."""

    SEARCH = "search"
    RECOMMENDATION = "recommendation"
    CATEGORY_BROWSE = "category_browse"
    HOMEPAGE = "homepage"
    DIRECT = "direct"
    SIMILAR_EVENTS = "similar_events"


class PriceRange(BaseModel):
    """Price band the user is comfortable with."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(default=0.0, ge=0.0)
    max: float = Field(default=500.0, ge=0.0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "PriceRange":
        if self.max < self.min:
            raise ValueError("price range max cannot be less than min")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class UserPreferences(BaseModel):
    """
    Explicit onboarding choices.

    ``category_weights`` maps a category to an interest weight in [0, 1];
    categories absent from the map carry no explicit interest.
    """

    selected_categories: list[Category] = Field(default_factory=list)
    selected_subcategories: list[str] = Field(default_factory=list)
    category_weights: dict[Category, float] = Field(default_factory=dict)
    price_range: PriceRange = Field(default_factory=PriceRange)
    popularity_preference: float = Field(default=0.5, ge=0.0, le=1.0)
    locations: list[str] = Field(default_factory=lambda: ["Melbourne"])

    @field_validator("category_weights")
    @classmethod
    def validate_weights(cls, v: dict[Category, float]) -> dict[Category, float]:
        for category, weight in v.items():
            if not 0.0 <= weight <= 1.0:
                raise ValueError(
                    f"Category weight for '{category.value}' must be between 0 and 1"
                )
        return v


class User(BaseModel):
    """A catalogue user."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    email: str = ""
    name: Optional[str] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)


class UserInteraction(BaseModel):
    """A single immutable entry of the interaction log."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    event_id: str
    interaction_type: InteractionType
    source: InteractionSource = InteractionSource.DIRECT
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None

    @field_validator("timestamp", mode="after")
    @classmethod
    def normalise_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
