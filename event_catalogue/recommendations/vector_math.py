"""
Vector maths on feature vectors.

Feature vectors are pre-weighted, so plain cosine similarity reflects the
intended importance of category > subcategory > popularity > price / venue.
"""

from typing import Sequence, Union

import numpy as np

from event_catalogue.exceptions import VectorDimensionError

VectorLike = Union[np.ndarray, Sequence[float]]


def _as_pair(a: VectorLike, b: VectorLike) -> tuple[np.ndarray, np.ndarray]:
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise VectorDimensionError(va.size, vb.size)
    return va, vb


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """
    Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        VectorDimensionError: If the vectors differ in length.
    """
    va, vb = _as_pair(a, b)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    # rounding can push parallel vectors a hair past 1
    return max(-1.0, min(1.0, similarity))


def euclidean_distance(a: VectorLike, b: VectorLike) -> float:
    """
    Euclidean distance between two equal-length vectors.

    Raises:
        VectorDimensionError: If the vectors differ in length.
    """
    va, vb = _as_pair(a, b)
    return float(np.linalg.norm(va - vb))


def normalise_vector(vector: VectorLike) -> np.ndarray:
    """Scale to unit L2 norm; a zero vector is returned unchanged."""
    v = np.asarray(vector, dtype=float)
    magnitude = np.linalg.norm(v)
    if magnitude == 0:
        return v.copy()
    return v / magnitude
