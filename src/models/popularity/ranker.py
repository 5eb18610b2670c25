from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping

import numpy as np
import pandas as pd

from src.models.base import Recommendation
from src.models.heuristic_base import HeuristicRanker
from src.models.rating_index import RatingIndex

logger = logging.getLogger(__name__)


class PopularityEngine(HeuristicRanker):
    """Rank catalog items by mean rating, then rating count, then id."""

    source = "popularity"

    def __init__(self, index: RatingIndex, catalog: pd.DataFrame | None = None) -> None:
        """Aggregate item popularity statistics from the rating index.

        Parameters
        ----------
        index : RatingIndex
            Shared, read-only rating index.
        catalog : pd.DataFrame | None
            Product catalog (ProductID, Name, Category, Price). Defines the
            ranked universe; without it every rated item is ranked and no
            item has a category.
        """
        super().__init__(index)

        R, _, item_ids = index.to_csr()
        rating_sum = np.asarray(R.sum(axis=0)).ravel()
        rating_count = R.getnnz(axis=0)
        safe_count = np.where(rating_count == 0, 1, rating_count)
        average = rating_sum / safe_count

        self._average: Dict[int, float] = {
            int(iid): float(avg) for iid, avg in zip(item_ids, average)
        }
        self._count: Dict[int, int] = {
            int(iid): int(cnt) for iid, cnt in zip(item_ids, rating_count)
        }

        if catalog is not None and "ProductID" in catalog.columns:
            universe = catalog.drop_duplicates("ProductID", keep="last")
            ranking = pd.DataFrame({
                "ProductID": universe["ProductID"].astype(int).to_numpy(),
                "Category": (
                    universe["Category"].astype(str).to_numpy()
                    if "Category" in universe.columns
                    else None
                ),
            })
        else:
            ranking = pd.DataFrame({"ProductID": item_ids.astype(int), "Category": None})

        ranking["average"] = ranking["ProductID"].map(self._average).fillna(0.0).astype(float)
        ranking["count"] = ranking["ProductID"].map(self._count).fillna(0).astype(int)
        self._ranking = ranking.sort_values(
            by=["average", "count", "ProductID"],
            ascending=[False, False, True],
            kind="mergesort",
        ).reset_index(drop=True)

        logger.debug("Ranked %d items by popularity", len(self._ranking))

    def get_average_rating(self, item_id: int) -> float:
        return self._average.get(item_id, 0.0)

    def get_rating_count(self, item_id: int) -> int:
        return self._count.get(item_id, 0)

    def recommend(
        self,
        user_id: int,
        user_rated: Mapping[int, float] | None,
        n: int = 10,
    ) -> List[Recommendation]:
        """Globally popular items the user has not rated yet.

        ``user_id == 0`` or an id unknown to the index disables
        personalization: ``user_rated`` is then ignored.
        """
        if user_id == 0 or user_id not in self.index:
            excluded: set[int] = set()
        else:
            excluded = set(user_rated or {})
        return self._top_n(self._ranking, excluded, n)

    def recommend_by_category(
        self,
        category: str,
        excluded_item_ids: Iterable[int] = (),
        n: int = 10,
    ) -> List[Recommendation]:
        """Popular items of an exact (case-sensitive) category."""
        in_category = self._ranking[self._ranking["Category"] == category]
        return self._top_n(in_category, set(excluded_item_ids), n)

    def recommend_for_user(
        self,
        user_id: int,
        n: int = 10,
        metric: str | None = None,
    ) -> List[Recommendation]:
        del metric
        return self.recommend(user_id, self.index.user_ratings(user_id), n)

    def _top_n(self, ranking: pd.DataFrame, excluded: set[int], n: int) -> List[Recommendation]:
        if n <= 0 or ranking.empty:
            return []
        if excluded:
            ranking = ranking[~ranking["ProductID"].isin(excluded)]
        top = ranking.head(n)
        return [
            Recommendation(item_id=int(pid), score=float(avg), source=self.source)
            for pid, avg in zip(top["ProductID"], top["average"])
        ]
