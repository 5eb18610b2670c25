import pandas as pd
import pytest

from src.eval.eval import evaluate, holdout_split
from src.models.base import Recommendation, RecommenderModel


class PerfectModel(RecommenderModel):
    """Stub model that returns products sorted by their true test rating."""

    def __init__(self, test_ratings: pd.DataFrame):
        self._test = test_ratings

    def recommend_for_user(self, user_id, n=10, metric=None):
        group = self._test[self._test["UserID"] == user_id].nlargest(n, "Rating")
        return [
            Recommendation(item_id=int(row.ProductID), score=float(row.Rating))
            for row in group.itertuples()
        ]


class ConstantModel(RecommenderModel):
    """Stub model that recommends the same products to everyone."""

    def __init__(self, item_ids):
        self._recs = [
            Recommendation(item_id=iid, score=float(len(item_ids) - i))
            for i, iid in enumerate(item_ids)
        ]

    def recommend_for_user(self, user_id, n=10, metric=None):
        return self._recs[:n]


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def sample_ratings():
    return pd.DataFrame({
        "UserID":    [1, 1, 1, 1, 1, 2, 2, 2, 2, 3],
        "ProductID": [101, 102, 103, 104, 105, 101, 102, 103, 104, 101],
        "Rating":    [5.0, 3.0, 4.0, 2.0, 4.5, 4.0, 2.0, 5.0, 1.0, 3.0],
    })


@pytest.fixture
def sample_test_ratings():
    return pd.DataFrame({
        "UserID":    [1, 1, 2, 2, 3],
        "ProductID": [30, 40, 10, 50, 20],
        "Rating":    [5.0, 4.0, 5.0, 1.0, 3.0],
    })


# ── Tests ─────────────────────────────────────────────────────────────────────

def test_holdout_split_is_deterministic_and_complete(sample_ratings):
    # act
    train_a, test_a = holdout_split(sample_ratings, test_fraction=0.2, seed=7)
    train_b, test_b = holdout_split(sample_ratings, test_fraction=0.2, seed=7)

    # assert
    pd.testing.assert_frame_equal(test_a, test_b)
    pd.testing.assert_frame_equal(train_a, train_b)
    assert len(train_a) + len(test_a) == len(sample_ratings)
    assert set(train_a.index).isdisjoint(test_a.index)


def test_holdout_split_keeps_every_user_in_train(sample_ratings):
    # act
    train, test = holdout_split(sample_ratings, test_fraction=0.5, seed=1)

    # assert
    assert set(train["UserID"]) == {1, 2, 3}
    # single-rating user 3 is never held out
    assert 3 not in set(test["UserID"])
    assert test.groupby("UserID").size().to_dict() == {1: 2, 2: 2}


def test_holdout_split_rejects_bad_fraction(sample_ratings):
    # act / assert
    with pytest.raises(ValueError):
        holdout_split(sample_ratings, test_fraction=1.0)


def test_perfect_model_achieves_ideal_scores(sample_test_ratings):
    # arrange
    model = PerfectModel(sample_test_ratings)

    # act
    result = evaluate(model, sample_test_ratings, k=2)

    # assert — user 3 has no relevant product and is skipped
    assert result.ndcg == pytest.approx(1.0)
    assert result.precision == pytest.approx(1.0)
    assert result.recall == pytest.approx(1.0)
    assert result.n_users == 2
    assert result.n_skipped == 1


def test_constant_model_metrics(sample_test_ratings):
    # arrange — only user 2's product 10 is ever hit
    model = ConstantModel([10, 20])

    # act
    result = evaluate(model, sample_test_ratings, k=2)

    # assert
    assert result.precision == pytest.approx(0.5)
    assert result.recall == pytest.approx(0.5)
