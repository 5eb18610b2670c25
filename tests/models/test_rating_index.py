import numpy as np
import pandas as pd
import pytest

from src.models.rating_index import RatingIndex


@pytest.fixture
def sample_ratings():
    return pd.DataFrame({
        "UserID":    [1, 1, 2, 2, 2, 3],
        "ProductID": [101, 102, 101, 102, 103, 103],
        "Rating":    [5.0, 3.0, 4.0, 2.0, 5.0, 5.0],
    })


def test_views_are_consistent(sample_ratings):
    # act
    index = RatingIndex.from_frame(sample_ratings)

    # assert
    for user_id, items in index.by_user.items():
        for item_id, value in items.items():
            assert index.by_item[item_id][user_id] == value
    assert index.n_ratings == 6
    assert len(index) == 6
    assert sum(len(users) for users in index.by_item.values()) == 6


def test_ids_are_sorted(sample_ratings):
    # act
    index = RatingIndex.from_frame(sample_ratings.iloc[::-1])

    # assert
    np.testing.assert_array_equal(index.user_ids, [1, 2, 3])
    np.testing.assert_array_equal(index.item_ids, [101, 102, 103])


def test_later_duplicate_overwrites_earlier():
    # arrange
    ratings = pd.DataFrame({
        "UserID":    [1, 1, 1],
        "ProductID": [101, 102, 101],
        "Rating":    [2.0, 4.0, 5.0],
    })

    # act
    index = RatingIndex.from_frame(ratings)

    # assert
    assert index.user_ratings(1)[101] == 5.0
    assert index.item_ratings(101) == {1: 5.0}
    assert index.n_ratings == 2


def test_views_are_read_only(sample_ratings):
    # arrange
    index = RatingIndex.from_frame(sample_ratings)

    # act / assert
    with pytest.raises(TypeError):
        index.by_user[9] = {}
    with pytest.raises(TypeError):
        index.user_ratings(1)[103] = 1.0
    with pytest.raises(TypeError):
        index.item_ratings(101)[3] = 1.0


def test_unknown_entities_yield_empty_mappings(sample_ratings):
    # arrange
    index = RatingIndex.from_frame(sample_ratings)

    # act / assert
    assert len(index.user_ratings(99)) == 0
    assert len(index.item_ratings(999)) == 0
    assert 99 not in index
    assert 1 in index
    assert index.has_item(103)
    assert not index.has_item(999)


def test_empty_frame_builds_empty_index():
    # act
    index = RatingIndex.from_frame(pd.DataFrame(columns=["UserID", "ProductID", "Rating"]))

    # assert
    assert index.n_ratings == 0
    assert index.user_ids.size == 0
    R, _, _ = index.to_csr()
    assert R.shape == (0, 0)


def test_to_csr_matches_ratings(sample_ratings):
    # arrange
    index = RatingIndex.from_frame(sample_ratings)

    # act
    R, user_ids, item_ids = index.to_csr()

    # assert
    dense = R.toarray()
    assert dense.shape == (3, 3)
    assert dense[list(user_ids).index(2), list(item_ids).index(103)] == 5.0
    assert dense[list(user_ids).index(3), list(item_ids).index(101)] == 0.0
    assert R.nnz == 6


def test_to_frame_round_trips_ratings(sample_ratings):
    # arrange
    index = RatingIndex.from_frame(sample_ratings)

    # act
    frame = index.to_frame()

    # assert
    pd.testing.assert_frame_equal(
        frame.sort_values(["UserID", "ProductID"]).reset_index(drop=True),
        sample_ratings.sort_values(["UserID", "ProductID"]).reset_index(drop=True),
        check_dtype=False,
    )
