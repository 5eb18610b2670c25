import numpy as np
import pytest

from src.models.base import InvalidConfiguration
from src.models.similarity import (
    SIMILARITY_FUNCTIONS,
    cosine_similarity,
    get_similarity_function,
    jaccard_similarity,
    pearson_similarity,
    similarity,
)


@pytest.mark.parametrize("metric", ["pearson", "cosine", "jaccard"])
def test_similarity_is_symmetric(metric):
    # arrange
    a = {1: 5.0, 2: 3.0, 3: 4.0, 7: 1.0}
    b = {3: 2.0, 1: 4.0, 2: 2.5, 4: 1.0}

    # act
    ab = similarity(a, b, metric)
    ba = similarity(b, a, metric)

    # assert
    assert ab == ba


def test_pearson_perfect_positive_correlation():
    # arrange
    a = {101: 5.0, 102: 3.0}
    b = {101: 4.0, 102: 2.0}

    # act
    result = pearson_similarity(a, b)

    # assert
    assert result == pytest.approx(1.0)


def test_pearson_perfect_negative_correlation():
    # arrange
    a = {101: 1.0, 102: 5.0, 103: 3.0}
    b = {101: 5.0, 102: 1.0, 103: 3.0}

    # act
    result = pearson_similarity(a, b)

    # assert
    assert result == pytest.approx(-1.0)


def test_pearson_single_co_rated_item_is_zero():
    # arrange
    a = {101: 5.0, 102: 3.0}
    b = {101: 4.0, 103: 2.0}

    # act
    result = pearson_similarity(a, b)

    # assert — fewer than two co-rated items: undefined → 0
    assert result == 0.0


def test_pearson_zero_variance_is_zero():
    # arrange
    a = {101: 3.0, 102: 3.0, 103: 3.0}
    b = {101: 4.0, 102: 5.0, 103: 1.0}

    # act
    result = pearson_similarity(a, b)

    # assert
    assert result == 0.0


def test_cosine_uses_full_vector_magnitudes():
    # arrange
    a = {101: 3.0, 102: 4.0}
    b = {101: 3.0}

    # act
    result = cosine_similarity(a, b)

    # assert — 9 / (5 * 3)
    assert result == pytest.approx(0.6)


def test_cosine_identical_vectors():
    # arrange
    a = {101: 2.0, 102: 4.0, 103: 1.0}

    # act
    result = cosine_similarity(a, dict(a))

    # assert
    assert result == pytest.approx(1.0)


def test_jaccard_intersection_over_union():
    # arrange
    a = {1: 5.0, 2: 1.0, 3: 2.0}
    b = {2: 4.0, 3: 4.0, 4: 4.0}

    # act
    result = jaccard_similarity(a, b)

    # assert — {2, 3} / {1, 2, 3, 4}
    assert result == pytest.approx(0.5)


@pytest.mark.parametrize("metric", ["pearson", "cosine", "jaccard"])
def test_no_overlap_is_zero(metric):
    # arrange
    a = {101: 5.0, 102: 3.0}
    b = {103: 4.0, 104: 2.0}

    # act
    result = similarity(a, b, metric)

    # assert
    assert result == 0.0


@pytest.mark.parametrize("metric", ["pearson", "cosine", "jaccard"])
def test_empty_vectors_are_zero(metric):
    # act
    result = similarity({}, {}, metric)

    # assert
    assert result == 0.0


def test_values_stay_within_metric_ranges():
    # arrange
    rng = np.random.default_rng(7)

    for _ in range(200):
        keys_a = rng.choice(20, size=rng.integers(0, 12), replace=False)
        keys_b = rng.choice(20, size=rng.integers(0, 12), replace=False)
        a = {int(k): float(rng.integers(1, 6)) for k in keys_a}
        b = {int(k): float(rng.integers(1, 6)) for k in keys_b}

        # act
        pearson = pearson_similarity(a, b)
        cosine = cosine_similarity(a, b)
        jaccard = jaccard_similarity(a, b)

        # assert
        assert -1.0 <= pearson <= 1.0
        assert -1.0 <= cosine <= 1.0
        assert 0.0 <= jaccard <= 1.0
        assert all(np.isfinite([pearson, cosine, jaccard]))


def test_metric_names_are_case_insensitive():
    # act
    func = get_similarity_function("  Cosine ")

    # assert
    assert func is SIMILARITY_FUNCTIONS["cosine"]


@pytest.mark.parametrize("metric", ["euclidean", "", None])
def test_unknown_metric_raises(metric):
    # act / assert
    with pytest.raises(InvalidConfiguration):
        get_similarity_function(metric)


@pytest.mark.parametrize("value", [1.1, 1.4, 2.3, 3.7, 4.9])
def test_pearson_constant_decimal_ratings_are_exactly_zero(value):
    # arrange
    a = {i: value for i in range(7)}
    b = {i: float(i % 3 + 1) for i in range(7)}

    # act
    result = pearson_similarity(a, b)

    # assert
    assert result == 0.0
    assert pearson_similarity(b, a) == 0.0
