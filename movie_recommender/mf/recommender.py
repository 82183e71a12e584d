from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import torch

from ..paths import ProjectPaths, get_repo_root
from ..utils import config_section, load_yaml
from .predict import SinglePrediction, is_recommended, predict_single
from .store import MFArtifacts, load_meta, load_model


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendedMovie:
    movieId: Any
    score: float
    recommend: bool


class MFRecommender:
    """Read-only MF recommender backed by artifacts on disk.

    Loads the `artifacts.mf_dir` named in the config by default and trains via
    the build pipeline if the artifacts are missing (unless
    allow_train_if_missing=False). The loaded model is never mutated, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        *,
        config_path: Path | None = None,
        artifacts_dir: Path | None = None,
        allow_train_if_missing: bool = True,
    ) -> None:
        repo_root = get_repo_root()
        self.repo_root = repo_root
        self.config_path = Path(config_path).resolve() if config_path else (repo_root / "config.yaml")
        self.artifacts_dir = (
            Path(artifacts_dir).resolve() if artifacts_dir is not None else self._configured_mf_dir()
        )
        self.allow_train_if_missing = bool(allow_train_if_missing)

        self._load_or_build()

    def _configured_mf_dir(self) -> Path:
        """`artifacts.mf_dir` from the config, or `artifacts/mf` when there is no config."""
        if not self.config_path.exists():
            return (self.repo_root / "artifacts" / "mf").resolve()
        artifacts_cfg = config_section(load_yaml(self.config_path), "artifacts")
        paths = ProjectPaths.from_repo_root(
            self.repo_root,
            artifacts_dir=str(artifacts_cfg.get("dir", "artifacts")),
            mf_dir=artifacts_cfg.get("mf_dir"),
        )
        return paths.mf_dir

    def _load_or_build(self) -> None:
        if not MFArtifacts.in_dir(self.artifacts_dir).exist():
            if not self.allow_train_if_missing:
                raise FileNotFoundError(
                    f"MF artifacts missing under {self.artifacts_dir}. Run the build pipeline first."
                )
            # Imported lazily: the pipeline pulls in pandas/sklearn data loading.
            from ..pipelines.mf_build import run_mf_build

            logger.info("MF artifacts not found in %s, training now", self.artifacts_dir)
            run_mf_build(config_path=self.config_path, repo_root=self.repo_root, out_dir=self.artifacts_dir)

        self.model, self.user_encoder, self.item_encoder = load_model(self.artifacts_dir)
        self.meta = load_meta(self.artifacts_dir)
        logger.info(
            "MF recommender loaded: users=%d movies=%d rank=%d artifacts_dir=%s",
            self.user_encoder.size(),
            self.item_encoder.size(),
            self.model.rank,
            self.artifacts_dir,
        )

    def has_user(self, userId: Any) -> bool:
        return self.user_encoder.contains(userId)

    def has_item(self, movieId: Any) -> bool:
        return self.item_encoder.contains(movieId)

    def predict(self, userId: Any, movieId: Any) -> SinglePrediction:
        return predict_single(userId, movieId, self.model, self.user_encoder, self.item_encoder)

    def recommend_items(
        self,
        userId: Any,
        *,
        k: int = 10,
        exclude: Iterable[Any] = (),
    ) -> list[RecommendedMovie]:
        """Top-k movies for a user by predicted rating, skipping `exclude` ids."""
        uidx = self.user_encoder.encode(userId)
        with torch.no_grad():
            scores = self.model.score_all_items(uidx).clone()

        for movieId in exclude:
            if self.item_encoder.contains(movieId):
                scores[self.item_encoder.encode(movieId)] = float("-inf")

        k = min(int(k), int(torch.isfinite(scores).sum()))
        if k <= 0:
            return []
        top = torch.topk(scores, k)
        return [
            RecommendedMovie(
                movieId=self.item_encoder.decode(int(i)),
                score=float(s),
                recommend=is_recommended(float(s)),
            )
            for s, i in zip(top.values.tolist(), top.indices.tolist())
        ]
