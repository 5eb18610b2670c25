"""Pairwise similarity between two rating vectors.

A vector is a mapping from key to rating: item -> value when comparing two
users, user -> value when comparing two items. Every metric returns 0.0 when
the similarity is undefined (too little overlap, zero variance, zero
magnitude, empty union), never NaN.
"""

from __future__ import annotations

from typing import Callable, Dict, Mapping

import numpy as np

from .base import InvalidConfiguration

RatingVector = Mapping[int, float]


def _co_rated(a: RatingVector, b: RatingVector) -> tuple[np.ndarray, np.ndarray]:
    # sorted keys keep the result independent of argument and insertion order
    keys = sorted(a.keys() & b.keys())
    x = np.array([a[key] for key in keys], dtype=np.float64)
    y = np.array([b[key] for key in keys], dtype=np.float64)
    return x, y


def _magnitude(v: RatingVector) -> float:
    values = np.array([v[key] for key in sorted(v)], dtype=np.float64)
    return float(np.sqrt(np.sum(values * values)))


def pearson_similarity(a: RatingVector, b: RatingVector) -> float:
    x, y = _co_rated(a, b)
    if x.size < 2:
        return 0.0

    # zero variance is checked on the raw values, not the centred ones
    if np.ptp(x) == 0.0 or np.ptp(y) == 0.0:
        return 0.0

    x_c = x - x.mean()
    y_c = y - y.mean()
    denom = float(np.sqrt(np.sum(x_c * x_c))) * float(np.sqrt(np.sum(y_c * y_c)))
    if denom == 0.0:
        return 0.0

    return float(np.clip(np.sum(x_c * y_c) / denom, -1.0, 1.0))


def cosine_similarity(a: RatingVector, b: RatingVector) -> float:
    x, y = _co_rated(a, b)
    if x.size == 0:
        return 0.0

    denom = _magnitude(a) * _magnitude(b)
    if denom == 0.0:
        return 0.0

    return float(np.clip(np.sum(x * y) / denom, -1.0, 1.0))


def jaccard_similarity(a: RatingVector, b: RatingVector) -> float:
    union = a.keys() | b.keys()
    if not union:
        return 0.0
    return len(a.keys() & b.keys()) / len(union)


SIMILARITY_FUNCTIONS: Dict[str, Callable[[RatingVector, RatingVector], float]] = {
    "pearson": pearson_similarity,
    "cosine": cosine_similarity,
    "jaccard": jaccard_similarity,
}


def get_similarity_function(metric: str) -> Callable[[RatingVector, RatingVector], float]:
    """Resolve a metric name, failing fast on anything unknown."""
    name = metric.strip().lower() if isinstance(metric, str) else metric
    try:
        return SIMILARITY_FUNCTIONS[name]
    except (KeyError, TypeError):
        raise InvalidConfiguration(
            f"Unknown similarity metric: {metric!r} "
            f"(expected one of {', '.join(SIMILARITY_FUNCTIONS)})"
        ) from None


def similarity(a: RatingVector, b: RatingVector, metric: str = "pearson") -> float:
    return get_similarity_function(metric)(a, b)
