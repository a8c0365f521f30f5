"""
Recommendations: event vectors, user profiles, popularity and ranking.
"""

from .engine import RecommendationEngine
from .popularity import CategoryComparison, PopularityScorer, PopularityUpdateResult
from .ranking import Ranker
from .user_profile import UserProfileBuilder
from .vector_math import cosine_similarity, euclidean_distance, normalise_vector
from .vectoriser import FeatureExtractor

__all__ = [
    "RecommendationEngine",
    "CategoryComparison",
    "PopularityScorer",
    "PopularityUpdateResult",
    "Ranker",
    "UserProfileBuilder",
    "cosine_similarity",
    "euclidean_distance",
    "normalise_vector",
    "FeatureExtractor",
]
