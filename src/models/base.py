from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable


class InvalidConfiguration(ValueError):
    """Raised when an engine is configured with unusable parameters."""


@dataclass(frozen=True, kw_only=True)
class Recommendation:
    item_id: int
    score: float
    source: str = ""


class RecommenderModel(ABC):

    @abstractmethod
    def recommend_for_user(
        self,
        user_id: int,
        n: int = 10,
        metric: str | None = None,
    ) -> list[Recommendation]:
        """Produce top-N recommendations for a single user.

        Parameters
        ----------
        user_id : int
            Target user. Unknown users yield an empty list.
        n : int
            Maximum number of recommendations.
        metric : str | None
            Similarity metric name, or None for the engine default.
            Engines that do not compare users ignore it.

        Returns
        -------
        list[Recommendation]
            Recommendations sorted by score descending (ties by ascending
            item id), never containing an item the user already rated.
        """
        ...

    def predict(
        self,
        user_ids: Iterable[int],
        k: int = 10,
        metric: str | None = None,
    ) -> dict[int, list[Recommendation]]:
        """Produce top-K recommendations for each user in ``user_ids``."""
        return {
            int(uid): self.recommend_for_user(int(uid), n=k, metric=metric)
            for uid in user_ids
        }
