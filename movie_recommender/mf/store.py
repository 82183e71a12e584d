"""Persist and reload a trained FactorModel together with its id encoders."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
import torch

from .encoder import IdEncoder
from .model import FactorModel


logger = logging.getLogger(__name__)

MODEL_FILE = "mf_model.pt"
USER_CLASSES_FILE = "user_classes.npy"
ITEM_CLASSES_FILE = "item_classes.npy"
META_FILE = "mf_meta.json"


@dataclass(frozen=True)
class MFArtifacts:
    model_path: Path
    user_classes_path: Path
    item_classes_path: Path
    meta_path: Path

    @classmethod
    def in_dir(cls, artifacts_dir: Path) -> "MFArtifacts":
        d = Path(artifacts_dir)
        return cls(
            model_path=d / MODEL_FILE,
            user_classes_path=d / USER_CLASSES_FILE,
            item_classes_path=d / ITEM_CLASSES_FILE,
            meta_path=d / META_FILE,
        )

    def exist(self) -> bool:
        return self.model_path.exists() and self.user_classes_path.exists() and self.item_classes_path.exists()


def _save_classes(path: Path, encoder: IdEncoder) -> None:
    classes = encoder.classes_
    if classes.dtype == object:
        raise ValueError(f"{encoder.kind} keys must share one numeric or string type to be saved")
    np.save(path, classes, allow_pickle=False)


def save_model(
    model: FactorModel,
    user_encoder: IdEncoder,
    item_encoder: IdEncoder,
    out_dir: Path,
    *,
    train_config: dict[str, Any] | None = None,
    metrics: dict[str, Any] | None = None,
) -> MFArtifacts:
    """Write checkpoint, encoder classes and a JSON meta file into `out_dir`."""
    if user_encoder.size() != model.n_users or item_encoder.size() != model.n_items:
        raise ValueError(
            f"encoder sizes ({user_encoder.size()}, {item_encoder.size()}) do not match "
            f"model shape ({model.n_users}, {model.n_items})"
        )
    out_dir = Path(out_dir).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    artifacts = MFArtifacts.in_dir(out_dir)

    torch.save(
        {
            "state_dict": model.state_dict(),
            "n_users": model.n_users,
            "n_items": model.n_items,
            "rank": model.rank,
            "use_bias": model.use_bias,
        },
        artifacts.model_path,
    )
    _save_classes(artifacts.user_classes_path, user_encoder)
    _save_classes(artifacts.item_classes_path, item_encoder)

    meta = {
        "created_at": datetime.now(timezone.utc).isoformat(),
        "n_users": model.n_users,
        "n_items": model.n_items,
        "rank": model.rank,
        "use_bias": model.use_bias,
        "train_config": train_config or {},
        "metrics": metrics or {},
    }
    artifacts.meta_path.write_text(json.dumps(meta, indent=2, sort_keys=True) + "\n")
    logger.info("Saved MF artifacts to %s", out_dir)
    return artifacts


def load_model(artifacts_dir: Path) -> tuple[FactorModel, IdEncoder, IdEncoder]:
    """Load (model, user_encoder, item_encoder) written by `save_model`."""
    artifacts = MFArtifacts.in_dir(Path(artifacts_dir).resolve())
    if not artifacts.exist():
        raise FileNotFoundError(f"MF artifacts missing under {artifacts_dir}. Run the build pipeline first.")

    ckpt = torch.load(artifacts.model_path, map_location="cpu", weights_only=True)
    model = FactorModel(
        n_users=int(ckpt["n_users"]),
        n_items=int(ckpt["n_items"]),
        rank=int(ckpt["rank"]),
        use_bias=bool(ckpt.get("use_bias", False)),
    )
    model.load_state_dict(ckpt["state_dict"])
    model.eval()

    user_encoder = IdEncoder.from_classes(np.load(artifacts.user_classes_path, allow_pickle=False), kind="userId")
    item_encoder = IdEncoder.from_classes(np.load(artifacts.item_classes_path, allow_pickle=False), kind="movieId")
    if user_encoder.size() != model.n_users or item_encoder.size() != model.n_items:
        raise ValueError(
            f"artifact mismatch: classes ({user_encoder.size()}, {item_encoder.size()}) vs "
            f"checkpoint ({model.n_users}, {model.n_items})"
        )
    return model, user_encoder, item_encoder


def load_meta(artifacts_dir: Path) -> dict[str, Any] | None:
    path = MFArtifacts.in_dir(Path(artifacts_dir)).meta_path
    if not path.exists():
        return None
    obj = json.loads(path.read_text())
    return obj if isinstance(obj, dict) else None
