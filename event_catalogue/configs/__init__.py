"""Settings (pydantic-settings) and YAML reference data."""

from .config import Config, KeywordRule, ReferenceData, load_reference_data_from
from .settings import (
    DedupSettings,
    FeatureSettings,
    NormaliserSettings,
    PopularitySettings,
    ProfileSettings,
    RankingSettings,
    Settings,
    get_settings,
)

__all__ = [
    "Config",
    "KeywordRule",
    "ReferenceData",
    "load_reference_data_from",
    "DedupSettings",
    "FeatureSettings",
    "NormaliserSettings",
    "PopularitySettings",
    "ProfileSettings",
    "RankingSettings",
    "Settings",
    "get_settings",
]
