"""Run the product recommendation engines on a ratings/catalog dataset.

Usage examples
--------------
Collaborative filtering:
    python -m src.run_recommender --mode user_cf --user 1 --metric pearson
    python -m src.run_recommender --mode item_cf --user 1 --item-metric cosine
    python -m src.run_recommender --mode similar_users --user 1 --metric jaccard
    python -m src.run_recommender --mode similar_items --item 101

Popularity and hybrid:
    python -m src.run_recommender --mode popularity --user 0
    python -m src.run_recommender --mode category --category Books
    python -m src.run_recommender --mode hybrid --user 1 --weights 0.6,0.3,0.1

Dataset inspection and offline evaluation:
    python -m src.run_recommender --mode catalog
    python -m src.run_recommender --mode profile --user 3
    python -m src.run_recommender --mode stats
    python -m src.run_recommender --mode evaluate --engine hybrid --k 3
    python -m src.run_recommender --mode demo --user 1
"""

from __future__ import annotations

import argparse
import logging
from typing import Iterable

import pandas as pd

from data.loader import load_dataset
from data.stats import dataset_statistics
from src.eval.eval import evaluate, holdout_split
from src.models import (
    HybridRecommender,
    InvalidConfiguration,
    ItemBasedCF,
    PopularityEngine,
    RatingIndex,
    Recommendation,
    RecommenderModel,
    UserBasedCF,
)

logger = logging.getLogger(__name__)

ENGINES = ["user_cf", "item_cf", "popularity", "hybrid"]
METRICS = ["pearson", "cosine", "jaccard"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Product recommendations with user-CF, item-CF, popularity and hybrid engines.",
    )

    parser.add_argument(
        "--mode",
        type=str,
        default="hybrid",
        choices=[
            "user_cf",
            "item_cf",
            "popularity",
            "category",
            "hybrid",
            "similar_users",
            "similar_items",
            "catalog",
            "profile",
            "stats",
            "evaluate",
            "demo",
        ],
        help="Operation to run.",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding ratings.csv and products.csv (bundled sample by default).",
    )
    parser.add_argument(
        "--user",
        type=int,
        default=None,
        help="Target user id (default 1; 0 = global for popularity). Category mode excludes this user's items only when given.",
    )
    parser.add_argument("--item", type=int, default=101, help="Product id for similar_items.")
    parser.add_argument("--category", type=str, default="Electronics", help="Exact category for category mode.")
    parser.add_argument("--n", type=int, default=5, help="Number of recommendations or neighbors.")
    parser.add_argument(
        "--metric",
        type=str,
        default="pearson",
        choices=METRICS,
        help="User-user similarity metric.",
    )
    parser.add_argument(
        "--item-metric",
        type=str,
        default="cosine",
        choices=METRICS,
        help="Item-item similarity metric (fixed when the item engine is built).",
    )
    parser.add_argument(
        "--neighbors",
        type=int,
        default=5,
        help="Neighbor pool size for user-based CF.",
    )
    parser.add_argument(
        "--item-neighbors",
        type=int,
        default=None,
        help="Neighbor pool size for item-based CF (default: all rated items vote).",
    )
    parser.add_argument(
        "--weights",
        type=str,
        default=None,
        help="Comma-separated hybrid weights user_cf,item_cf,popularity (e.g. 0.5,0.35,0.15).",
    )
    parser.add_argument(
        "--pool-factor",
        type=int,
        default=3,
        help="Hybrid candidate pool size as a multiple of --n.",
    )
    parser.add_argument(
        "--engine",
        type=str,
        default="hybrid",
        choices=ENGINES,
        help="Engine evaluated by evaluate mode.",
    )
    parser.add_argument("--k", type=int, default=5, help="Top-k cutoff for evaluate mode.")
    parser.add_argument("--threshold", type=float, default=4.0, help="Relevance threshold for evaluate mode.")
    parser.add_argument("--test-fraction", type=float, default=0.2, help="Held-out fraction per user.")
    parser.add_argument("--seed", type=int, default=42, help="Hold-out split seed.")

    return parser.parse_args(argv)


def parse_weights(raw: str) -> tuple[float, float, float]:
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3:
        raise InvalidConfiguration(f"Expected three comma-separated weights, got {raw!r}")
    try:
        return float(parts[0]), float(parts[1]), float(parts[2])
    except ValueError:
        raise InvalidConfiguration(f"Weights must be numbers, got {raw!r}") from None


def build_engines(
    index: RatingIndex,
    products: pd.DataFrame,
    args: argparse.Namespace,
) -> dict[str, RecommenderModel]:
    user_cf = UserBasedCF(index, n_neighbors=args.neighbors, default_metric=args.metric)
    item_cf = ItemBasedCF(index, metric=args.item_metric, n_neighbors=args.item_neighbors)
    popularity = PopularityEngine(index, products)
    hybrid = HybridRecommender(user_cf, item_cf, popularity, pool_factor=args.pool_factor)
    if args.weights:
        hybrid.set_weights(*parse_weights(args.weights))

    return {
        "user_cf": user_cf,
        "item_cf": item_cf,
        "popularity": popularity,
        "hybrid": hybrid,
    }


def log_recommendations(recs: Iterable[Recommendation], products: pd.DataFrame) -> None:
    names = dict(zip(products["ProductID"], products["Name"]))
    recs = list(recs)
    if not recs:
        logger.info("No recommendations available.")
        return
    for rank, rec in enumerate(recs, start=1):
        logger.info(
            "#%d  %-40s score=%.4f  [%s]",
            rank,
            names.get(rec.item_id, f"Product {rec.item_id}"),
            rec.score,
            rec.source,
        )


def log_profile(index: RatingIndex, products: pd.DataFrame, user_id: int) -> None:
    names = dict(zip(products["ProductID"], products["Name"]))
    rated = index.user_ratings(user_id)
    logger.info("Profile: user %d", user_id)
    if not rated:
        logger.info("No ratings found for this user.")
        return
    for item_id, value in rated.items():
        logger.info("  %-40s %.1f", names.get(item_id, f"Product {item_id}"), value)


def run_evaluation(dataset, args: argparse.Namespace) -> None:
    train_ratings, test_ratings = holdout_split(
        dataset.ratings,
        test_fraction=args.test_fraction,
        seed=args.seed,
    )
    train_index = RatingIndex.from_frame(train_ratings)
    engine = build_engines(train_index, dataset.products, args)[args.engine]

    logger.info(
        "Evaluating %s on %d held-out ratings (%d train)...",
        engine.__class__.__name__,
        len(test_ratings),
        len(train_ratings),
    )
    metrics = evaluate(
        engine,
        test_ratings,
        k=args.k,
        threshold=args.threshold,
        metric=args.metric,
    )
    logger.info("=== Offline Evaluation ===")
    logger.info("Engine: %s", args.engine)
    logger.info("Users evaluated=%d, skipped=%d", metrics.n_users, metrics.n_skipped)
    logger.info("NDCG@%d:      %.5f", args.k, metrics.ndcg)
    logger.info("Precision@%d: %.5f", args.k, metrics.precision)
    logger.info("Recall@%d:    %.5f", args.k, metrics.recall)


def log_similar_users(user_cf: UserBasedCF, user_id: int, k: int, metric: str) -> None:
    for neighbor_id, sim in user_cf.find_similar_users(user_id, k, metric):
        logger.info("User %-3d similarity=%+.4f", neighbor_id, sim)


def log_similar_items(item_cf: ItemBasedCF, products: pd.DataFrame, item_id: int, k: int) -> None:
    names = dict(zip(products["ProductID"], products["Name"]))
    for neighbor_id, sim in item_cf.get_most_similar_items(item_id, k):
        logger.info("%-40s similarity=%+.4f", names.get(neighbor_id, f"Product {neighbor_id}"), sim)


def run_demo(
    engines: dict[str, RecommenderModel],
    index: RatingIndex,
    products: pd.DataFrame,
    user_id: int,
    args: argparse.Namespace,
) -> None:
    """Walk one user through every engine: profile, four recommendation lists, neighbors."""
    user_cf: UserBasedCF = engines["user_cf"]
    item_cf: ItemBasedCF = engines["item_cf"]
    popularity: PopularityEngine = engines["popularity"]
    hybrid: HybridRecommender = engines["hybrid"]
    rated = index.user_ratings(user_id)

    log_profile(index, products, user_id)
    sections = [
        (f"User-based CF ({args.metric})", user_cf.recommend(user_id, args.n, args.metric)),
        (f"Item-based CF ({args.item_metric})", item_cf.recommend(user_id, args.n)),
        ("Popularity", popularity.recommend(user_id, rated, args.n)),
        ("Hybrid", hybrid.recommend(user_id, rated, args.n, args.metric)),
    ]
    for title, recs in sections:
        logger.info("=== %s recommendations for user %d ===", title, user_id)
        log_recommendations(recs, products)

    logger.info("=== Users similar to user %d (%s) ===", user_id, args.metric)
    log_similar_users(user_cf, user_id, args.n, args.metric)
    logger.info("=== Products similar to product %d ===", args.item)
    log_similar_items(item_cf, products, args.item, args.n)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    dataset = load_dataset(args.data_dir)
    index, products = dataset.index, dataset.products
    user_id = 1 if args.user is None else args.user

    if args.mode == "evaluate":
        run_evaluation(dataset, args)
        return

    if args.mode == "stats":
        stats = dataset_statistics(index, products, dataset.ratings)
        logger.info("Total users: %d", stats.n_users)
        logger.info("Total products: %d", stats.n_products)
        logger.info("Total ratings: %d (%d distinct user/product pairs)", stats.n_ratings, stats.n_rated_cells)
        logger.info("Matrix density: %.1f%% (sparsity: %.1f%%)", stats.density * 100, stats.sparsity * 100)
        for stars, count in stats.rating_distribution.items():
            logger.info("  %d stars: %s (%d)", stars, "#" * count, count)
        return

    if args.mode == "profile":
        log_profile(index, products, user_id)
        return

    engines = build_engines(index, products, args)
    user_cf: UserBasedCF = engines["user_cf"]
    item_cf: ItemBasedCF = engines["item_cf"]
    popularity: PopularityEngine = engines["popularity"]
    hybrid: HybridRecommender = engines["hybrid"]

    if args.mode == "demo":
        run_demo(engines, index, products, user_id, args)
        return

    if args.mode == "catalog":
        for row in products.itertuples(index=False):
            logger.info(
                "%-5d %-40s %-12s $%8.2f  %.1f (%d ratings)",
                row.ProductID,
                row.Name,
                row.Category,
                row.Price,
                popularity.get_average_rating(row.ProductID),
                popularity.get_rating_count(row.ProductID),
            )
        return

    if args.mode == "similar_users":
        log_similar_users(user_cf, user_id, args.n, args.metric)
        return

    if args.mode == "similar_items":
        log_similar_items(item_cf, products, args.item, args.n)
        return

    if args.mode == "category":
        # no exclusion unless a user was asked for explicitly
        excluded = index.user_ratings(args.user) if args.user else {}
        logger.info("=== Top %s products ===", args.category)
        log_recommendations(popularity.recommend_by_category(args.category, excluded, args.n), products)
        return

    if args.mode == "user_cf":
        recs = user_cf.recommend(user_id, args.n, args.metric)
    elif args.mode == "item_cf":
        recs = item_cf.recommend(user_id, args.n)
    elif args.mode == "popularity":
        recs = popularity.recommend(user_id, index.user_ratings(user_id), args.n)
    else:
        logger.info(
            "Hybrid weights: user_cf=%.2f item_cf=%.2f popularity=%.2f",
            *hybrid.weights,
        )
        recs = hybrid.recommend(user_id, index.user_ratings(user_id), args.n, args.metric)

    logger.info("=== %s recommendations for user %d ===", args.mode, user_id)
    log_recommendations(recs, products)


if __name__ == "__main__":
    main()
