from __future__ import annotations

import logging
from typing import Dict, List, Tuple

import numpy as np

from .base import InvalidConfiguration, Recommendation
from .heuristic_base import HeuristicRanker
from .rating_index import RatingIndex
from .similarity import get_similarity_function

logger = logging.getLogger(__name__)


class UserBasedCF(HeuristicRanker):
    """User-User Collaborative Filtering.

    Predicts a score for every item rated by the target's nearest neighbors
    as the similarity-weighted average of their ratings. Only neighbors with
    positive similarity contribute, so predictions stay on the rating scale.

    Parameters
    ----------
    index : RatingIndex
        Shared, read-only rating index.
    n_neighbors : int
        Size of the neighbor pool consulted by ``recommend`` (independent of
        the number of requested recommendations).
    default_metric : str
        Metric used by ``recommend_for_user`` when none is given.
    """

    source = "user_cf"

    def __init__(
        self,
        index: RatingIndex,
        n_neighbors: int = 5,
        default_metric: str = "pearson",
    ) -> None:
        super().__init__(index)
        if n_neighbors < 0:
            raise InvalidConfiguration(f"n_neighbors must be non-negative, got {n_neighbors}")
        get_similarity_function(default_metric)
        self.n_neighbors = int(n_neighbors)
        self.default_metric = default_metric

    def find_similar_users(
        self,
        user_id: int,
        k: int,
        metric: str = "pearson",
    ) -> List[Tuple[int, float]]:
        """Return the k users most similar to ``user_id`` as (user_id, similarity)."""
        sim_func = get_similarity_function(metric)

        target = self.index.user_ratings(user_id)
        if not target or k <= 0:
            return []

        other_ids = self.index.user_ids
        other_ids = other_ids[other_ids != user_id]
        sims = np.array(
            [sim_func(target, self.index.user_ratings(int(uid))) for uid in other_ids],
            dtype=np.float64,
        )
        return self.top_k_pairs(other_ids, sims, k)

    def recommend(
        self,
        user_id: int,
        n: int = 10,
        metric: str = "pearson",
    ) -> List[Recommendation]:
        neighbors = self.find_similar_users(user_id, self.n_neighbors, metric)
        if n <= 0 or not neighbors:
            return []

        target = self.index.user_ratings(user_id)
        numerator: Dict[int, float] = {}
        denominator: Dict[int, float] = {}

        for neighbor_id, sim in neighbors:
            # negative weights would invert predictions
            if sim <= 0.0:
                continue
            for item_id, rating in self.index.user_ratings(neighbor_id).items():
                if item_id in target:
                    continue
                numerator[item_id] = numerator.get(item_id, 0.0) + sim * rating
                denominator[item_id] = denominator.get(item_id, 0.0) + abs(sim)

        item_ids = np.array([iid for iid, d in denominator.items() if d > 0.0], dtype=np.int64)
        scores = np.array(
            [numerator[int(iid)] / denominator[int(iid)] for iid in item_ids],
            dtype=np.float64,
        )
        return self.top_n_from_scores(item_ids, scores, n, seen=set(target))

    def recommend_for_user(
        self,
        user_id: int,
        n: int = 10,
        metric: str | None = None,
    ) -> List[Recommendation]:
        return self.recommend(user_id, n, metric or self.default_metric)


class ItemBasedCF(HeuristicRanker):
    """Item-Item Collaborative Filtering.

    The item-item similarity matrix is computed once, over all rated items,
    when the engine is built. A candidate's score is the similarity-weighted
    average of the target user's own ratings on the items positively similar
    to it.

    Parameters
    ----------
    index : RatingIndex
        Shared, read-only rating index.
    metric : str
        Similarity function: 'pearson', 'cosine' or 'jaccard'.
    n_neighbors : int | None
        If set, a rated item only votes for the candidates among its
        ``n_neighbors`` most similar items. None consults every rated item.
    """

    source = "item_cf"

    def __init__(
        self,
        index: RatingIndex,
        metric: str = "cosine",
        n_neighbors: int | None = None,
    ) -> None:
        super().__init__(index)
        sim_func = get_similarity_function(metric)
        if n_neighbors is not None and n_neighbors < 0:
            raise InvalidConfiguration(f"n_neighbors must be non-negative, got {n_neighbors}")

        self.metric = metric
        self.n_neighbors = n_neighbors

        self.item_ids = index.item_ids
        self._item_to_idx: Dict[int, int] = {
            iid: i for i, iid in enumerate(self.item_ids.tolist())
        }

        n_items = self.item_ids.size
        logger.debug("Computing %s similarity matrix for %d items...", metric, n_items)
        sim_matrix = np.zeros((n_items, n_items), dtype=np.float64)
        vectors = [index.item_ratings(int(iid)) for iid in self.item_ids]
        for i in range(n_items):
            for j in range(i + 1, n_items):
                sim = sim_func(vectors[i], vectors[j])
                sim_matrix[i, j] = sim
                sim_matrix[j, i] = sim

        np.fill_diagonal(sim_matrix, 0.0)  # zero out self-similarity
        sim_matrix.setflags(write=False)
        self.sim_matrix = sim_matrix

        # vote_mask[j, c]: rated item j is allowed to vote for candidate c
        if n_neighbors is None:
            vote_mask = np.ones((n_items, n_items), dtype=bool)
        else:
            vote_mask = np.zeros((n_items, n_items), dtype=bool)
            for i in range(n_items):
                for neighbor_id, _ in self._neighbors(i, n_neighbors):
                    vote_mask[i, self._item_to_idx[neighbor_id]] = True
        vote_mask.setflags(write=False)
        self._vote_mask = vote_mask

    def _neighbors(self, idx: int, k: int) -> List[Tuple[int, float]]:
        others = np.arange(self.item_ids.size) != idx
        return self.top_k_pairs(self.item_ids[others], self.sim_matrix[idx][others], k)

    def get_most_similar_items(self, item_id: int, k: int = 10) -> List[Tuple[int, float]]:
        """Return the k items most similar to ``item_id`` as (item_id, similarity)."""
        idx = self._item_to_idx.get(item_id)
        if idx is None or k <= 0:
            return []
        return self._neighbors(idx, k)

    def recommend(self, user_id: int, n: int = 10) -> List[Recommendation]:
        rated = self.index.user_ratings(user_id)
        if n <= 0 or not rated:
            return []

        rated_idx = np.array(
            [self._item_to_idx[iid] for iid in sorted(rated)], dtype=np.int64
        )
        rated_values = np.array([rated[iid] for iid in sorted(rated)], dtype=np.float64)

        # (n_items, n_rated): similarity of every candidate to each rated item
        sims = self.sim_matrix[:, rated_idx]
        weights = np.where((sims > 0.0) & self._vote_mask[rated_idx, :].T, sims, 0.0)

        numerator = weights @ rated_values
        denominator = np.abs(weights).sum(axis=1)

        candidates = denominator > 0.0
        scores = np.zeros_like(numerator)
        scores[candidates] = numerator[candidates] / denominator[candidates]

        return self.top_n_from_scores(
            self.item_ids[candidates],
            scores[candidates],
            n,
            seen=set(rated),
        )

    def recommend_for_user(
        self,
        user_id: int,
        n: int = 10,
        metric: str | None = None,
    ) -> List[Recommendation]:
        # item-item similarities are fixed at construction
        del metric
        return self.recommend(user_id, n)
