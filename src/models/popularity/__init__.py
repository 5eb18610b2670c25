from .ranker import PopularityEngine

__all__ = [
    "PopularityEngine",
]
