"""Train, evaluate and persist the matrix-factorization recommender.

    python -m movie_recommender.pipelines.mf_build --config config.yaml
"""

from __future__ import annotations

import argparse
import logging
import numbers
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from ..data import load_ratings, split_ratings
from ..errors import DegenerateMetricError, EmptyDatasetError, InvalidConfigError, UnknownKeyError
from ..mf.dataset import build_dataset, fit_encoders
from ..mf.encoder import IdEncoder
from ..mf.evaluate import EvaluationMetrics, evaluate, format_metrics
from ..mf.model import FactorModel
from ..mf.predict import SinglePrediction, predict_single
from ..mf.store import MFArtifacts, save_model
from ..mf.train import MFTrainConfig, train_mf
from ..paths import ProjectPaths, get_repo_root, resolve_path
from ..utils import ReproducibilityConfig, config_section, load_yaml, set_global_seed, setup_logging


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MFBuildResult:
    model: FactorModel
    user_encoder: IdEncoder
    item_encoder: IdEncoder
    metrics: EvaluationMetrics | None
    sample_prediction: SinglePrediction | None
    artifacts: MFArtifacts


def _coerce(name: str, default: Any, value: Any) -> Any:
    """Cast a YAML/CLI value to the type of the field default, refusing lossy casts."""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise InvalidConfigError(f"mf.{name} must be true or false, got {value!r}")
        return value
    if isinstance(default, int):
        if isinstance(value, numbers.Integral) and not isinstance(value, bool):
            return int(value)
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise InvalidConfigError(f"mf.{name} must be an integer, got {value!r}")
    if isinstance(default, float):
        if isinstance(value, numbers.Real) and not isinstance(value, bool):
            return float(value)
        raise InvalidConfigError(f"mf.{name} must be a number, got {value!r}")
    return value


def mf_config_from_dict(raw: dict[str, Any], overrides: dict[str, Any] | None = None) -> MFTrainConfig:
    """Build an MFTrainConfig from the `mf:` YAML section plus non-None overrides."""
    merged = dict(raw)
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})
    kwargs: dict[str, Any] = {}
    for f in fields(MFTrainConfig):
        if f.name in merged:
            kwargs[f.name] = _coerce(f.name, f.default, merged[f.name])
    unknown = sorted(set(merged) - {f.name for f in fields(MFTrainConfig)})
    if unknown:
        logger.warning("Ignoring unknown mf config keys: %s", unknown)
    return MFTrainConfig(**kwargs)


def run_mf_build(
    *,
    config_path: Path,
    repo_root: Path | None = None,
    out_dir: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> MFBuildResult:
    """Run the full pipeline: load → train → evaluate → sample prediction → persist.

    Evaluation and the sample prediction are reported, not fatal: an empty or
    degenerate test set, or a sample pair unseen in training, is logged and the
    model is still saved.
    """
    repo_root = get_repo_root() if repo_root is None else Path(repo_root).resolve()
    config_path = resolve_path(repo_root, config_path)
    cfg_yaml = load_yaml(config_path)

    dataset_cfg = config_section(cfg_yaml, "dataset")
    artifacts_cfg = config_section(cfg_yaml, "artifacts")
    prediction_cfg = config_section(cfg_yaml, "prediction")

    paths = ProjectPaths.from_repo_root(
        repo_root,
        raw_dir=str(dataset_cfg.get("raw_dir", "data/raw")),
        train_file=str(dataset_cfg.get("train_file", "recommendation-ratings-train.csv")),
        test_file=str(dataset_cfg.get("test_file") or "recommendation-ratings-test.csv"),
        artifacts_dir=str(artifacts_cfg.get("dir", "artifacts")),
        mf_dir=artifacts_cfg.get("mf_dir"),
    )
    train_cfg = mf_config_from_dict(config_section(cfg_yaml, "mf"), overrides)
    set_global_seed(ReproducibilityConfig(seed=train_cfg.random_state))

    # ----- Load -----
    train_df = load_ratings(paths.train_csv)
    if dataset_cfg.get("test_file"):
        test_df = load_ratings(paths.test_csv)
    else:
        test_size = float(dataset_cfg.get("test_size", 0.2))
        logger.info("No test_file configured; holding out %.0f%% of %s", 100 * test_size, paths.train_csv.name)
        split = split_ratings(train_df, test_size=test_size, random_state=train_cfg.random_state)
        train_df, test_df = split.train, split.test

    user_encoder, item_encoder = fit_encoders(train_df)
    train_ds = build_dataset(train_df, user_encoder, item_encoder, on_unknown="raise")
    test_ds = build_dataset(
        test_df,
        user_encoder,
        item_encoder,
        on_unknown=str(dataset_cfg.get("on_unknown_test", "skip")),  # type: ignore[arg-type]
    )

    # ----- Train -----
    model = train_mf(train_ds, train_cfg, n_users=user_encoder.size(), n_items=item_encoder.size())

    # ----- Evaluate -----
    metrics: EvaluationMetrics | None
    try:
        metrics = evaluate(model, test_ds)
        logger.info("\n%s", format_metrics(metrics))
    except (EmptyDatasetError, DegenerateMetricError) as exc:
        logger.error("Evaluation skipped: %s", exc)
        metrics = None

    # ----- Single prediction -----
    sample: SinglePrediction | None = None
    sample_user = prediction_cfg.get("sample_user_id")
    sample_item = prediction_cfg.get("sample_movie_id")
    if sample_user is not None and sample_item is not None:
        try:
            sample = predict_single(float(sample_user), float(sample_item), model, user_encoder, item_encoder)
            logger.info(
                "Movie %s is %srecommended for user %s (score=%.4f)",
                sample_item,
                "" if sample.recommend else "not ",
                sample_user,
                sample.score,
            )
        except UnknownKeyError as exc:
            logger.warning("Sample prediction skipped (cold start): %s", exc)

    # ----- Save -----
    out_dir = paths.mf_dir if out_dir is None else resolve_path(repo_root, out_dir)
    artifacts = save_model(
        model,
        user_encoder,
        item_encoder,
        out_dir,
        train_config=train_cfg.to_dict(),
        metrics=(metrics.to_dict() if metrics is not None else None),
    )

    return MFBuildResult(
        model=model,
        user_encoder=user_encoder,
        item_encoder=item_encoder,
        metrics=metrics,
        sample_prediction=sample,
        artifacts=artifacts,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Train and evaluate the MF movie recommender.")
    p.add_argument("--config", type=Path, default=Path("config.yaml"), help="Path to config YAML.")
    p.add_argument("--out-dir", type=Path, default=None, help="Output directory for artifacts")
    p.add_argument("--rank", type=int, default=None, help="Override latent factor rank")
    p.add_argument("--iterations", type=int, default=None, help="Override number of SGD epochs")
    p.add_argument("--learning-rate", type=float, default=None, help="Override SGD learning rate")
    p.add_argument("--regularization", type=float, default=None, help="Override L2 regularization")
    p.add_argument("--shuffle", action="store_true", default=None, help="Shuffle records every epoch")
    p.add_argument("--log-level", type=str, default="INFO")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    overrides = {
        "rank": args.rank,
        "iterations": args.iterations,
        "learning_rate": args.learning_rate,
        "regularization": args.regularization,
        "shuffle": args.shuffle,
    }
    run_mf_build(config_path=args.config, out_dir=args.out_dir, overrides=overrides)


if __name__ == "__main__":
    main()
