from src.models.base import InvalidConfiguration, Recommendation, RecommenderModel
from src.models.collaborative_filtering import ItemBasedCF, UserBasedCF
from src.models.hybrid import HybridRecommender
from src.models.popularity import PopularityEngine
from src.models.rating_index import RatingIndex
from src.models.similarity import (
    SIMILARITY_FUNCTIONS,
    cosine_similarity,
    get_similarity_function,
    jaccard_similarity,
    pearson_similarity,
    similarity,
)

__all__ = [
    "RecommenderModel",
    "Recommendation",
    "InvalidConfiguration",
    "RatingIndex",
    "SIMILARITY_FUNCTIONS",
    "similarity",
    "get_similarity_function",
    "pearson_similarity",
    "cosine_similarity",
    "jaccard_similarity",
    "UserBasedCF",
    "ItemBasedCF",
    "PopularityEngine",
    "HybridRecommender",
]
