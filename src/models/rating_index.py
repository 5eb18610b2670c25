from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Tuple

import numpy as np
import pandas as pd
from scipy import sparse

logger = logging.getLogger(__name__)

_EMPTY: Mapping[int, float] = MappingProxyType({})


class RatingIndex:
    """Read-only user->item and item->user views over one rating set.

    Both views are built together from the same triples and exposed as
    ``MappingProxyType`` so no engine can mutate them. At most one rating is
    kept per (user, item) pair: when the input holds duplicates, the one
    seen last wins.
    """

    def __init__(self, triples: Iterable[Tuple[int, int, float]]) -> None:
        by_user: Dict[int, Dict[int, float]] = {}
        for user_id, item_id, value in triples:
            by_user.setdefault(int(user_id), {})[int(item_id)] = float(value)

        by_item: Dict[int, Dict[int, float]] = {}
        for user_id in sorted(by_user):
            for item_id, value in by_user[user_id].items():
                by_item.setdefault(item_id, {})[user_id] = value

        self._by_user = MappingProxyType(
            {uid: MappingProxyType(items) for uid, items in sorted(by_user.items())}
        )
        self._by_item = MappingProxyType(
            {iid: MappingProxyType(users) for iid, users in sorted(by_item.items())}
        )
        self._n_ratings = sum(len(items) for items in by_user.values())

        logger.debug(
            "Built rating index: %d users, %d items, %d ratings",
            len(self._by_user),
            len(self._by_item),
            self._n_ratings,
        )

    @classmethod
    def from_frame(
        cls,
        ratings: pd.DataFrame,
        user_col: str = "UserID",
        item_col: str = "ProductID",
        rating_col: str = "Rating",
    ) -> "RatingIndex":
        """Build the index from a ratings frame; later duplicate rows overwrite earlier ones."""
        if ratings.empty:
            return cls([])
        return cls(
            zip(
                ratings[user_col].astype(int).tolist(),
                ratings[item_col].astype(int).tolist(),
                ratings[rating_col].astype(float).tolist(),
            )
        )

    @property
    def by_user(self) -> Mapping[int, Mapping[int, float]]:
        return self._by_user

    @property
    def by_item(self) -> Mapping[int, Mapping[int, float]]:
        return self._by_item

    @property
    def user_ids(self) -> np.ndarray:
        return np.fromiter(self._by_user.keys(), dtype=np.int64, count=len(self._by_user))

    @property
    def item_ids(self) -> np.ndarray:
        return np.fromiter(self._by_item.keys(), dtype=np.int64, count=len(self._by_item))

    @property
    def n_ratings(self) -> int:
        return self._n_ratings

    def __len__(self) -> int:
        return self._n_ratings

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._by_user

    def has_item(self, item_id: int) -> bool:
        return item_id in self._by_item

    def user_ratings(self, user_id: int) -> Mapping[int, float]:
        """Ratings of ``user_id`` (item -> value); empty for unknown users."""
        return self._by_user.get(user_id, _EMPTY)

    def item_ratings(self, item_id: int) -> Mapping[int, float]:
        """Ratings of ``item_id`` (user -> value); empty for unknown items."""
        return self._by_item.get(item_id, _EMPTY)

    def to_frame(self) -> pd.DataFrame:
        rows = [
            (uid, iid, value)
            for uid, items in self._by_user.items()
            for iid, value in items.items()
        ]
        return pd.DataFrame(rows, columns=["UserID", "ProductID", "Rating"])

    def to_csr(self) -> Tuple[sparse.csr_matrix, np.ndarray, np.ndarray]:
        """Return the user x item rating matrix with its row and column ids.

        Rows follow ``user_ids`` and columns follow ``item_ids`` (both
        ascending). Absent ratings are structural zeros.
        """
        user_ids = self.user_ids
        item_ids = self.item_ids
        user_to_idx = {uid: i for i, uid in enumerate(user_ids.tolist())}
        item_to_idx = {iid: i for i, iid in enumerate(item_ids.tolist())}

        row, col, data = [], [], []
        for uid, items in self._by_user.items():
            for iid, value in items.items():
                row.append(user_to_idx[uid])
                col.append(item_to_idx[iid])
                data.append(value)

        R = sparse.csr_matrix(
            (np.asarray(data, dtype=np.float64), (np.asarray(row, dtype=np.int64), np.asarray(col, dtype=np.int64))),
            shape=(len(user_ids), len(item_ids)),
            dtype=np.float64,
        )
        return R, user_ids, item_ids
