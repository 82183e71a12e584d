from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest
import torch

from movie_recommender.mf.dataset import build_dataset, fit_encoders
from movie_recommender.mf.store import MFArtifacts, load_model, save_model
from movie_recommender.mf.train import MFTrainConfig, train_mf


@pytest.fixture()
def trained(two_item_ratings: pd.DataFrame):
    users, items = fit_encoders(two_item_ratings)
    ds = build_dataset(two_item_ratings, users, items)
    cfg = MFTrainConfig(rank=3, iterations=5, learning_rate=0.05, use_bias=True)
    model = train_mf(ds, cfg, n_users=users.size(), n_items=items.size())
    return model, users, items, cfg


def test_round_trip_reproduces_predictions(trained, tmp_path: Path) -> None:
    model, users, items, cfg = trained
    artifacts = save_model(model, users, items, tmp_path / "mf", train_config=cfg.to_dict(), metrics={"rmse": 0.5})
    assert artifacts.exist()

    loaded, users2, items2 = load_model(tmp_path / "mf")

    assert loaded.rank == model.rank and loaded.use_bias is True
    assert list(users2.classes_) == list(users.classes_)
    assert list(items2.classes_) == list(items.classes_)
    for u in range(model.n_users):
        for i in range(model.n_items):
            assert loaded.predict(u, i) == model.predict(u, i)
    assert torch.equal(loaded.item_factors.weight, model.item_factors.weight)

    meta = json.loads(artifacts.meta_path.read_text())
    assert meta["train_config"]["rank"] == 3
    assert meta["metrics"] == {"rmse": 0.5}


def test_float_keys_survive_round_trip(tmp_path: Path) -> None:
    df = pd.DataFrame({"userId": [6.0, 7.0], "movieId": [10.0, 11.0], "rating": [4.0, 2.0]})
    users, items = fit_encoders(df)
    model = train_mf(build_dataset(df, users, items), MFTrainConfig(rank=2, iterations=2))
    save_model(model, users, items, tmp_path)

    _, users2, items2 = load_model(tmp_path)
    assert users2.encode(6) == users.encode(6.0)
    assert items2.encode(11.0) == 1


def test_missing_artifacts_raise(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_model(tmp_path / "nothing_here")


def test_mismatched_encoders_rejected(trained, tmp_path: Path) -> None:
    model, users, _items, _cfg = trained
    with pytest.raises(ValueError):
        save_model(model, users, users, tmp_path)
    assert not MFArtifacts.in_dir(tmp_path).exist()
