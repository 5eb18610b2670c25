from __future__ import annotations

from abc import ABC
from typing import List, Tuple

import numpy as np

from .base import Recommendation, RecommenderModel
from .rating_index import RatingIndex


class HeuristicRanker(RecommenderModel, ABC):
    """Base class for engines ranking items straight from a RatingIndex."""

    source: str = ""

    def __init__(self, index: RatingIndex) -> None:
        self.index = index

    @staticmethod
    def rank_order(ids: np.ndarray, scores: np.ndarray) -> np.ndarray:
        """Return positions sorted by score descending, then id ascending."""
        if ids.size == 0:
            return np.array([], dtype=np.int64)
        # lexsort uses the last key as the primary one
        return np.lexsort((ids, -scores))

    @classmethod
    def top_k_pairs(
        cls,
        ids: np.ndarray,
        scores: np.ndarray,
        k: int,
    ) -> List[Tuple[int, float]]:
        """Return the top-k (id, score) pairs with deterministic tie-breaks."""
        if k <= 0:
            return []
        order = cls.rank_order(ids, scores)[:k]
        return [(int(ids[i]), float(scores[i])) for i in order]

    def top_n_from_scores(
        self,
        item_ids: np.ndarray,
        scores: np.ndarray,
        n: int,
        seen: set[int] | None = None,
    ) -> List[Recommendation]:
        """Return top-n unseen items by score (descending)."""
        seen = seen or set()

        if item_ids.size == 0 or n <= 0:
            return []

        work_scores = scores.astype(np.float64, copy=True)
        if seen:
            seen_mask = np.isin(item_ids, np.fromiter(seen, dtype=item_ids.dtype))
            work_scores[seen_mask] = -np.inf

        valid_mask = np.isfinite(work_scores)
        ids = item_ids[valid_mask]
        work_scores = work_scores[valid_mask]

        return [
            Recommendation(item_id=int(ids[i]), score=float(work_scores[i]), source=self.source)
            for i in self.rank_order(ids, work_scores)[:n]
        ]
