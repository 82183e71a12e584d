from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from movie_recommender.mf.dataset import build_dataset, fit_encoders
from movie_recommender.mf.store import save_model
from movie_recommender.mf.train import MFTrainConfig, train_mf
from movie_recommender.service.app import app


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    df = pd.DataFrame(
        [(6.0, 10.0, 4.0), (6.0, 11.0, 1.0), (7.0, 10.0, 5.0), (7.0, 12.0, 2.0)] * 25,
        columns=["userId", "movieId", "rating"],
    )
    users, items = fit_encoders(df)
    cfg = MFTrainConfig(rank=4, iterations=40, learning_rate=0.05, regularization=0.01)
    model = train_mf(build_dataset(df, users, items), cfg, n_users=users.size(), n_items=items.size())
    save_model(model, users, items, tmp_path / "mf")

    monkeypatch.setenv("MF_ARTIFACTS_DIR", str(tmp_path / "mf"))
    with TestClient(app) as c:
        yield c


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_predict_known_pair(client: TestClient) -> None:
    resp = client.post("/predict", json={"userId": 6, "movieId": 10})
    assert resp.status_code == 200
    body = resp.json()
    assert body["recommend"] is True
    assert body["score"] > 3.5

    resp = client.post("/predict", json={"userId": 6, "movieId": 11})
    assert resp.status_code == 200
    assert resp.json()["recommend"] is False


def test_predict_cold_start_is_404(client: TestClient) -> None:
    resp = client.post("/predict", json={"userId": 404, "movieId": 10})
    assert resp.status_code == 404
    assert "cold-start" in resp.json()["detail"]


def test_recommend_top_k(client: TestClient) -> None:
    resp = client.post("/recommend", json={"userId": 7, "k": 2, "exclude": [12]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["k"] == 2
    assert [r["movieId"] for r in body["results"]] != [] and 12.0 not in [r["movieId"] for r in body["results"]]

    assert client.post("/recommend", json={"userId": 999}).status_code == 404
