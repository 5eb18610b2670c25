from dataclasses import dataclass

import numpy as np
import pandas as pd

from src.models.rating_index import RatingIndex


@dataclass(frozen=True, kw_only=True)
class DatasetStats:
    n_users: int
    n_products: int
    n_ratings: int
    n_rated_cells: int
    density: float
    sparsity: float
    rating_distribution: dict[int, int]


def dataset_statistics(
    index: RatingIndex,
    products: pd.DataFrame,
    ratings: pd.DataFrame | None = None,
) -> DatasetStats:
    """Summarize the user x product matrix.

    ``n_ratings`` counts the loaded rating rows (duplicates included) when
    ``ratings`` is given, otherwise the rated cells of ``index``. Density is
    always the fraction of (user, product) cells holding a rating, so a
    re-rated pair counts once there. Ratings are bucketed by the integer part
    of their value.
    """
    n_users = len(index.by_user)
    n_products = len(products)
    n_cells = n_users * n_products
    n_rated_cells = index.n_ratings
    density = n_rated_cells / n_cells if n_cells else 0.0

    R, _, _ = index.to_csr()
    buckets = np.floor(R.data).astype(np.int64)
    values, counts = np.unique(buckets, return_counts=True)

    return DatasetStats(
        n_users=n_users,
        n_products=n_products,
        n_ratings=len(ratings) if ratings is not None else n_rated_cells,
        n_rated_cells=n_rated_cells,
        density=float(density),
        sparsity=float(1.0 - density),
        rating_distribution={int(v): int(c) for v, c in zip(values, counts)},
    )
