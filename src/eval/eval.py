import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from src.eval.metrics import ndcg_at_k, precision_at_k, recall_at_k
from src.models.base import RecommenderModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class Metrics:
    ndcg: float
    precision: float
    recall: float
    n_users: int
    n_skipped: int


def holdout_split(
    ratings: pd.DataFrame,
    test_fraction: float = 0.2,
    seed: int = 42,
    user_col: str = "UserID",
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Per-user random hold-out split.

    For every user with at least two ratings, ``round(test_fraction * n)``
    ratings (at least one, at most ``n - 1``) are moved to the test frame.
    Users with a single rating stay entirely in train. The split only
    depends on ``seed``.
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(f"test_fraction must be in (0, 1), got {test_fraction}")

    rng = np.random.default_rng(seed)
    test_idx = []
    for _, group in ratings.groupby(user_col, sort=True):
        n = len(group)
        if n < 2:
            continue
        n_test = min(n - 1, max(1, int(round(test_fraction * n))))
        test_idx.extend(rng.choice(group.index.to_numpy(), size=n_test, replace=False).tolist())

    test_mask = ratings.index.isin(test_idx)
    return ratings[~test_mask].copy(), ratings[test_mask].copy()


def evaluate(
    model: RecommenderModel,
    test_ratings: pd.DataFrame,
    k: int = 10,
    threshold: float = 4.0,
    metric: str | None = None,
) -> Metrics:
    """Evaluate a recommender built on training ratings against a held-out set.

    Parameters
    ----------
    model : RecommenderModel
        An engine whose rating index holds the training ratings only.
    test_ratings : pd.DataFrame
        Held-out interactions (UserID, ProductID, Rating) used as ground truth.
    k : int
        Cut-off position for all metrics.
    threshold : float
        Binary relevance threshold for Precision@K and Recall@K.
    metric : str | None
        Similarity metric forwarded to the engine.

    Returns
    -------
    Metrics
        NDCG@K, Precision@K and Recall@K averaged across test users with at
        least one relevant held-out product.
    """
    ground_truth = {
        int(user_id): dict(zip(group["ProductID"].astype(int), group["Rating"].astype(float)))
        for user_id, group in test_ratings.groupby("UserID")
    }
    predictions = model.predict(ground_truth.keys(), k=k, metric=metric)

    ndcg_scores = []
    precision_scores = []
    recall_scores = []
    n_skipped = 0

    for user_id, recs in predictions.items():
        true_ratings = ground_truth[user_id]
        ranked_item_ids = [r.item_id for r in recs]

        precision = precision_at_k(ranked_item_ids, true_ratings, k=k, threshold=threshold)
        recall = recall_at_k(ranked_item_ids, true_ratings, k=k, threshold=threshold)
        if precision is None or recall is None:
            n_skipped += 1
            continue

        ndcg_scores.append(ndcg_at_k(ranked_item_ids, true_ratings, k=k))
        precision_scores.append(precision)
        recall_scores.append(recall)

    if n_skipped > 0:
        logger.warning(
            "Skipped %d/%d users with no relevant items in test set",
            n_skipped,
            len(predictions),
        )

    def _mean(values: list[float]) -> float:
        return float(np.mean(values)) if values else 0.0

    return Metrics(
        ndcg=_mean(ndcg_scores),
        precision=_mean(precision_scores),
        recall=_mean(recall_scores),
        n_users=len(precision_scores),
        n_skipped=n_skipped,
    )
