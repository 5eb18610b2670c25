from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping, Tuple

import numpy as np

from .base import InvalidConfiguration, Recommendation, RecommenderModel
from .collaborative_filtering import ItemBasedCF, UserBasedCF
from .heuristic_base import HeuristicRanker
from .popularity import PopularityEngine
from .similarity import get_similarity_function

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Tuple[float, float, float] = (0.50, 0.35, 0.15)


def min_max_normalize(recs: List[Recommendation]) -> Dict[int, float]:
    """Map an engine's pool scores onto [0, 1]; a flat pool maps to 1.0."""
    if not recs:
        return {}
    scores = np.array([r.score for r in recs], dtype=np.float64)
    lo, hi = float(scores.min()), float(scores.max())
    if hi == lo:
        return {r.item_id: 1.0 for r in recs}
    return {r.item_id: (r.score - lo) / (hi - lo) for r in recs}


class HybridRecommender(RecommenderModel):
    """Weighted blend of user-CF, item-CF and popularity rankings.

    Each engine is asked for an oversized pool (``pool_factor * n``), its
    scores are min-max normalized over that pool, and the blended score is
    ``w_user_cf * u + w_item_cf * i + w_popularity * p``, a missing vote
    counting as 0. Weights are stored divided by their sum, so only their
    proportions matter.
    """

    def __init__(
        self,
        user_cf: UserBasedCF,
        item_cf: ItemBasedCF,
        popularity: PopularityEngine,
        pool_factor: int = 3,
    ) -> None:
        if pool_factor < 1:
            raise InvalidConfiguration(f"pool_factor must be at least 1, got {pool_factor}")
        self.user_cf = user_cf
        self.item_cf = item_cf
        self.popularity = popularity
        self.pool_factor = int(pool_factor)
        self._weights: Tuple[float, float, float] = DEFAULT_WEIGHTS
        self.set_weights(*DEFAULT_WEIGHTS)

    @property
    def weights(self) -> Tuple[float, float, float]:
        return self._weights

    def set_weights(self, w_user_cf: float, w_item_cf: float, w_popularity: float) -> None:
        """Replace the blend weights; the previous ones stay on failure."""
        raw = (float(w_user_cf), float(w_item_cf), float(w_popularity))
        if any(not math.isfinite(w) or w < 0.0 for w in raw):
            raise InvalidConfiguration(f"Hybrid weights must be finite and non-negative, got {raw}")
        total = sum(raw)
        if total == 0.0:
            raise InvalidConfiguration("Hybrid weights must not all be zero")

        self._weights = (raw[0] / total, raw[1] / total, raw[2] / total)
        logger.debug(
            "Hybrid weights set to user_cf=%.3f item_cf=%.3f popularity=%.3f",
            *self._weights,
        )

    def recommend(
        self,
        user_id: int,
        user_rated: Mapping[int, float] | None,
        n: int = 10,
        metric: str = "pearson",
    ) -> List[Recommendation]:
        get_similarity_function(metric)
        if n <= 0:
            return []

        pool = self.pool_factor * n
        w_user, w_item, w_pop = self._weights

        pools = []
        if w_user > 0.0:
            pools.append((w_user, self.user_cf.recommend(user_id, pool, metric)))
        if w_item > 0.0:
            pools.append((w_item, self.item_cf.recommend(user_id, pool)))
        if w_pop > 0.0:
            pools.append((w_pop, self.popularity.recommend(user_id, user_rated, pool)))

        excluded = set(user_rated or {}) | set(self.user_cf.index.user_ratings(user_id))
        blended: Dict[int, float] = {}
        voters: Dict[int, List[str]] = {}
        for weight, recs in pools:
            if not recs:
                continue
            source = recs[0].source
            for item_id, norm_score in min_max_normalize(recs).items():
                if item_id in excluded:
                    continue
                blended[item_id] = blended.get(item_id, 0.0) + weight * norm_score
                voters.setdefault(item_id, []).append(source)

        item_ids = np.fromiter(blended.keys(), dtype=np.int64, count=len(blended))
        scores = np.fromiter(blended.values(), dtype=np.float64, count=len(blended))
        return [
            Recommendation(
                item_id=int(item_ids[i]),
                score=float(scores[i]),
                source="+".join(voters[int(item_ids[i])]),
            )
            for i in HeuristicRanker.rank_order(item_ids, scores)[:n]
        ]

    def recommend_for_user(
        self,
        user_id: int,
        n: int = 10,
        metric: str | None = None,
    ) -> List[Recommendation]:
        user_rated = self.user_cf.index.user_ratings(user_id)
        return self.recommend(user_id, user_rated, n, metric or self.user_cf.default_metric)
