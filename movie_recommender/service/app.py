"""FastAPI service entrypoint for the MF movie recommender.

    uvicorn movie_recommender.service.app:app
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException

from ..errors import UnknownKeyError
from ..mf.recommender import MFRecommender
from ..paths import get_repo_root
from ..utils import setup_logging
from .schemas import PredictRequest, PredictResponse, RecommendRequest, RecommendResponse

logger = logging.getLogger(__name__)


def _get_env_path(name: str, default: Path | None) -> Path | None:
    raw = os.getenv(name)
    if raw is None or str(raw).strip() == "":
        return default
    p = Path(str(raw))
    return p if p.is_absolute() else (get_repo_root() / p).resolve()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    repo_root = get_repo_root()
    config_path = _get_env_path("CONFIG_PATH", repo_root / "config.yaml")
    artifacts_dir = _get_env_path("MF_ARTIFACTS_DIR", None)

    logger.info("Starting service with config=%s artifacts=%s", config_path, artifacts_dir or "<from config>")
    # Trains on startup if the artifacts are missing.
    app.state.recommender = MFRecommender(config_path=config_path, artifacts_dir=artifacts_dir)
    yield


app = FastAPI(title="MovieLens Matrix-Factorization Recommender", lifespan=lifespan)


def _recommender(app_: FastAPI) -> MFRecommender:
    rec = getattr(app_.state, "recommender", None)
    if rec is None:
        raise HTTPException(status_code=503, detail="Recommender not initialized")
    return rec


@app.get("/health")
def health() -> dict:
    ok = getattr(app.state, "recommender", None) is not None
    return {"status": "ok" if ok else "not_ready"}


@app.post("/predict", response_model=PredictResponse)
def predict(req: PredictRequest) -> dict:
    """Predicted rating and recommend decision for one (userId, movieId) pair."""
    rec = _recommender(app)
    try:
        pred = rec.predict(req.userId, req.movieId)
    except UnknownKeyError as exc:
        raise HTTPException(status_code=404, detail=f"cold-start: {exc}") from exc

    return {
        "userId": req.userId,
        "movieId": req.movieId,
        "score": pred.score,
        "recommend": pred.recommend,
    }


@app.post("/recommend", response_model=RecommendResponse)
def recommend(req: RecommendRequest) -> dict:
    """Top-k movies for a user by predicted rating."""
    rec = _recommender(app)
    try:
        recs = rec.recommend_items(req.userId, k=int(req.k), exclude=req.exclude)
    except UnknownKeyError as exc:
        raise HTTPException(status_code=404, detail=f"cold-start: {exc}") from exc

    return {
        "userId": req.userId,
        "k": int(req.k),
        "results": [r.__dict__ for r in recs],
    }
