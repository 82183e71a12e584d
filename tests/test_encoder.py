from __future__ import annotations

import numpy as np
import pytest

from movie_recommender.errors import IndexOutOfRangeError, UnknownKeyError
from movie_recommender.mf.encoder import IdEncoder


def test_indices_follow_first_seen_order_and_are_dense() -> None:
    keys = ["b", "a", "b", "c", "a", "d"]
    enc = IdEncoder(kind="userId").fit(keys)

    assert enc.size() == len(set(keys)) == 4
    assert [enc.encode(k) for k in ["b", "a", "c", "d"]] == [0, 1, 2, 3]
    assert sorted(enc.encode(k) for k in set(keys)) == list(range(enc.size()))


def test_encode_is_idempotent() -> None:
    enc = IdEncoder().fit([3.0, 1.0, 2.0])
    first = [enc.encode(k) for k in [3.0, 1.0, 2.0]]
    second = [enc.encode(k) for k in [3.0, 1.0, 2.0]]
    assert first == second


def test_unknown_key_raises_without_allocating() -> None:
    enc = IdEncoder(kind="movieId").fit([10.0, 11.0])

    with pytest.raises(UnknownKeyError) as excinfo:
        enc.encode(99.0)

    assert isinstance(excinfo.value, KeyError)
    assert "movieId" in str(excinfo.value)
    assert enc.size() == 2
    assert 99.0 not in enc


def test_numpy_float_keys_match_python_numbers() -> None:
    enc = IdEncoder().fit(np.array([6.0, 7.0, 6.0]))
    assert enc.encode(6) == 0
    assert enc.encode(np.float64(7.0)) == 1
    assert enc.decode(0) == 6.0


def test_decode_round_trip_and_out_of_range() -> None:
    enc = IdEncoder().fit(["x", "y"])
    assert [enc.decode(enc.encode(k)) for k in ["x", "y"]] == ["x", "y"]
    with pytest.raises(IndexOutOfRangeError):
        enc.decode(2)
    with pytest.raises(IndexOutOfRangeError):
        enc.decode(-1)


def test_encode_many_and_refit_rejected() -> None:
    enc = IdEncoder().fit([5.0, 4.0])
    np.testing.assert_array_equal(enc.encode_many([4.0, 5.0, 4.0]), np.array([1, 0, 1]))
    with pytest.raises(RuntimeError):
        enc.fit([1.0])


def test_from_classes_rebuilds_same_mapping() -> None:
    enc = IdEncoder().fit(["m3", "m1", "m2"])
    rebuilt = IdEncoder.from_classes(enc.classes_)
    assert [rebuilt.encode(k) for k in ["m3", "m1", "m2"]] == [0, 1, 2]

    with pytest.raises(ValueError):
        IdEncoder.from_classes(["a", "a"])
