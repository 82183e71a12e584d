from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from movie_recommender.data import load_ratings, split_ratings
from movie_recommender.errors import UnknownKeyError
from movie_recommender.mf.dataset import EncodedRating, RatingDataset, build_dataset, fit_encoders


def test_load_ratings_reads_floats_and_drops_extra_columns(tmp_path: Path) -> None:
    csv = tmp_path / "ratings.csv"
    csv.write_text("userId,movieId,rating,timestamp\n1,31,2.5,1260759144\n1,1029,3,1260759179\n")

    df = load_ratings(csv)

    assert list(df.columns) == ["userId", "movieId", "rating"]
    assert all(df[c].dtype == np.float64 for c in df.columns)
    assert df.iloc[1].tolist() == [1.0, 1029.0, 3.0]


def test_load_ratings_binds_columns_by_position(tmp_path: Path) -> None:
    csv = tmp_path / "r.csv"
    csv.write_text("user,item,label\n6,10,4\n6,11,1\n")

    df = load_ratings(csv)

    assert list(df.columns) == ["userId", "movieId", "rating"]
    assert df.values.tolist() == [[6.0, 10.0, 4.0], [6.0, 11.0, 1.0]]


def test_load_ratings_rejects_bad_files(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_ratings(tmp_path / "missing.csv")

    no_rating = tmp_path / "no_rating.csv"
    no_rating.write_text("userId,movieId\n1,2\n")
    with pytest.raises(ValueError):
        load_ratings(no_rating)

    blank = tmp_path / "blank.csv"
    blank.write_text("userId,movieId,rating\n1,2,\n")
    with pytest.raises(ValueError):
        load_ratings(blank)


def test_split_ratings_partitions_rows() -> None:
    df = pd.DataFrame({"userId": range(20), "movieId": range(20), "rating": [1.0, 2.0, 3.0, 4.0, 5.0] * 4})
    split = split_ratings(df, test_size=0.25, random_state=0)
    assert len(split.train) == 15 and len(split.test) == 5
    assert set(split.train["userId"]) | set(split.test["userId"]) == set(range(20))


def test_build_dataset_preserves_order(two_item_ratings: pd.DataFrame) -> None:
    users, items = fit_encoders(two_item_ratings)
    ds = build_dataset(two_item_ratings, users, items)

    assert len(ds) == len(two_item_ratings)
    assert ds[0] == EncodedRating(user_idx=0, item_idx=0, rating=4.0)
    assert ds[1] == EncodedRating(user_idx=0, item_idx=1, rating=1.0)
    assert ds[3] == EncodedRating(user_idx=1, item_idx=2, rating=2.0)
    assert [r.rating for r in list(ds)[:4]] == [4.0, 1.0, 5.0, 2.0]


def test_build_dataset_unknown_policy(two_item_ratings: pd.DataFrame) -> None:
    users, items = fit_encoders(two_item_ratings)
    test_df = pd.DataFrame(
        [("6", "10", 3.0), ("99", "10", 4.0), ("7", "404", 1.0)],
        columns=["userId", "movieId", "rating"],
    )

    with pytest.raises(UnknownKeyError):
        build_dataset(test_df, users, items)

    ds = build_dataset(test_df, users, items, on_unknown="skip")
    assert len(ds) == 1
    assert ds[0] == EncodedRating(user_idx=0, item_idx=0, rating=3.0)


def test_rating_dataset_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError):
        RatingDataset(np.array([0, 1]), np.array([0]), np.array([1.0, 2.0]))
