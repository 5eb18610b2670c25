from typing import Mapping, Sequence

import numpy as np


def _relevant(true_ratings: Mapping[int, float], threshold: float) -> set[int]:
    return {item for item, rating in true_ratings.items() if rating >= threshold}


def precision_at_k(
    ranked_items: Sequence[int],
    true_ratings: Mapping[int, float],
    k: int = 10,
    threshold: float = 4.0,
) -> float | None:
    """Compute Precision@K with binary relevance.

    Parameters
    ----------
    ranked_items : sequence of int
        Product IDs ordered by predicted score (descending). Only the first
        *k* entries are used.
    true_ratings : mapping of int to float
        Held-out rating per product ID. Products absent from it are
        non-relevant.
    k : int
        Cut-off position.
    threshold : float
        Minimum rating to count as relevant.

    Returns
    -------
    float | None
        Hits divided by ``min(k, number of relevant products)``, so a user
        with fewer than *k* relevant products can still reach 1.0. None when
        the user has no relevant product.
    """
    relevant = _relevant(true_ratings, threshold)
    if not relevant or k <= 0:
        return None

    hits = sum(1 for item in list(ranked_items)[:k] if item in relevant)
    return hits / min(k, len(relevant))


def recall_at_k(
    ranked_items: Sequence[int],
    true_ratings: Mapping[int, float],
    k: int = 10,
    threshold: float = 4.0,
) -> float | None:
    """Compute Recall@K with binary relevance; None without relevant products."""
    relevant = _relevant(true_ratings, threshold)
    if not relevant:
        return None

    hits = sum(1 for item in list(ranked_items)[:k] if item in relevant)
    return hits / len(relevant)


def ndcg_at_k(
    ranked_items: Sequence[int],
    true_ratings: Mapping[int, float],
    k: int = 10,
) -> float:
    """Compute NDCG@K using held-out ratings as graded gains (0.0 without ratings)."""
    gains = np.array([true_ratings.get(item, 0.0) for item in list(ranked_items)[:k]], dtype=np.float64)
    dcg = float(np.sum(gains / np.log2(np.arange(2, gains.size + 2))))

    ideal = np.sort(np.fromiter(true_ratings.values(), dtype=np.float64))[::-1][:k]
    idcg = float(np.sum(ideal / np.log2(np.arange(2, ideal.size + 2))))

    if idcg == 0.0:
        return 0.0
    return dcg / idcg
