"""Configuration loader for the event catalogue."""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from event_catalogue.configs.settings import get_settings
from event_catalogue.exceptions import ReferenceDataError

settings = get_settings()


class KeywordRule(BaseModel):
    """Maps any of a set of venue-name keywords to a value."""

    keywords: list[str] = Field(min_length=1)
    value: float

    def matches(self, name_lower: str) -> bool:
        """Return True if any keyword occurs in the lowercased name."""
        return any(keyword in name_lower for keyword in self.keywords)


class ReferenceData(BaseModel):
    """Lookup tables loaded from reference_data.yaml."""

    source_priority: dict[str, int] = Field(default_factory=dict)
    stop_words: list[str] = Field(default_factory=list)
    venue_suffixes: list[str] = Field(default_factory=list)
    venue_tiers: dict[str, float] = Field(default_factory=dict)
    venue_tier_keywords: list[KeywordRule] = Field(default_factory=list)
    venue_capacities: dict[str, int] = Field(default_factory=dict)
    venue_capacity_keywords: list[KeywordRule] = Field(default_factory=list)

    def priority_of(self, source: str | None) -> int:
        """Return the trust ranking of a source (0 for unknown sources)."""
        if not source:
            return 0
        return self.source_priority.get(source.lower(), 0)


class Config:
    """Configuration for the event catalogue."""

    # 1. Setup Base Paths
    CONFIG_DIR = Path(__file__).parent.resolve()
    PROJECT_ROOT = settings.BASE_DIR

    # 2. Define File Paths
    REFERENCE_DATA_PATH = settings.REFERENCE_DATA_PATH

    @classmethod
    @lru_cache
    def load_reference_data(cls) -> ReferenceData:
        """Load and cache the YAML reference tables."""
        return load_reference_data_from(cls.REFERENCE_DATA_PATH)


def load_reference_data_from(path: Path) -> ReferenceData:
    """
    Parse a reference data YAML file.

    Raises:
        ReferenceDataError: If the file is missing or does not match the schema.
    """
    if not path.exists():
        raise ReferenceDataError(f"Missing reference data at {path}")

    with open(path, encoding="utf-8") as f:
        content = yaml.safe_load(f) or {}

    try:
        return ReferenceData.model_validate(content)
    except ValidationError as e:
        raise ReferenceDataError(f"Invalid reference data in {path}: {e}") from e
