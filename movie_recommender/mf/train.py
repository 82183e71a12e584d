from __future__ import annotations

import logging
import math
import numbers
import time
from dataclasses import asdict, dataclass

import numpy as np
import torch

from ..errors import EmptyDatasetError, IndexOutOfRangeError, InvalidConfigError, TrainingDivergedError
from .dataset import RatingDataset
from .model import FactorModel


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MFTrainConfig:
    rank: int = 32
    iterations: int = 20
    learning_rate: float = 1e-2
    regularization: float = 5e-2
    use_bias: bool = False
    shuffle: bool = False
    init_scale: float = 0.1
    random_state: int = 42
    stop_on_divergence: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def validate_config(cfg: MFTrainConfig) -> None:
    """Raise InvalidConfigError for out-of-range hyperparameters."""
    problems = []
    for name in ("rank", "iterations"):
        value = getattr(cfg, name)
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            problems.append(f"{name} must be an integer, got {value!r}")
    if problems:
        raise InvalidConfigError("; ".join(problems))
    if not cfg.rank > 0:
        problems.append(f"rank must be > 0, got {cfg.rank}")
    if not cfg.iterations > 0:
        problems.append(f"iterations must be > 0, got {cfg.iterations}")
    if not cfg.learning_rate > 0:
        problems.append(f"learning_rate must be > 0, got {cfg.learning_rate}")
    if not cfg.regularization >= 0:
        problems.append(f"regularization must be >= 0, got {cfg.regularization}")
    if not cfg.init_scale > 0:
        problems.append(f"init_scale must be > 0, got {cfg.init_scale}")
    if problems:
        raise InvalidConfigError("; ".join(problems))


def train_mf(
    dataset: RatingDataset,
    cfg: MFTrainConfig,
    *,
    n_users: int | None = None,
    n_items: int | None = None,
) -> FactorModel:
    """Fit a FactorModel with per-record SGD over exactly `cfg.iterations` epochs.

    For every rating (u, i, r):

        e    = r - predict(u, i)
        P[u] += lr * (e * Q[i]     - reg * P[u])
        Q[i] += lr * (e * P[u]_old - reg * Q[i])

    Records are visited in dataset order unless `cfg.shuffle` is set, in which
    case each epoch uses a permutation drawn from a generator seeded with
    `cfg.random_state`. There is no early stopping.

    n_users / n_items default to max index + 1; pass the encoder sizes so the
    factor matrices line up with the encoders.
    """
    validate_config(cfg)
    if len(dataset) == 0:
        raise EmptyDatasetError("Cannot train on an empty dataset")

    n_users = int(dataset.user_idx.max()) + 1 if n_users is None else int(n_users)
    n_items = int(dataset.item_idx.max()) + 1 if n_items is None else int(n_items)
    if int(dataset.user_idx.min()) < 0 or int(dataset.user_idx.max()) >= n_users:
        raise IndexOutOfRangeError(f"training user indices exceed n_users={n_users}")
    if int(dataset.item_idx.min()) < 0 or int(dataset.item_idx.max()) >= n_items:
        raise IndexOutOfRangeError(f"training item indices exceed n_items={n_items}")

    generator = torch.Generator().manual_seed(int(cfg.random_state))
    rng = np.random.default_rng(int(cfg.random_state))

    model = FactorModel(n_users=n_users, n_items=n_items, rank=int(cfg.rank), use_bias=cfg.use_bias)
    model.init_factors(float(cfg.init_scale), generator=generator)
    if cfg.use_bias:
        model.global_bias.fill_(dataset.mean_rating())

    # numpy views share storage with the model's tensors (CPU, no grad).
    P = model.user_factors.weight.numpy()
    Q = model.item_factors.weight.numpy()
    bu = model.user_bias.weight.numpy()[:, 0]
    bi = model.item_bias.weight.numpy()[:, 0]
    mu = float(model.global_bias[0])

    users = dataset.user_idx.tolist()
    items = dataset.item_idx.tolist()
    ratings = dataset.rating.tolist()
    n = len(ratings)
    lr = float(cfg.learning_rate)
    reg = float(cfg.regularization)
    use_bias = bool(cfg.use_bias)

    logger.info(
        "MF training: users=%d items=%d ratings=%d rank=%d iterations=%d lr=%g reg=%g bias=%s shuffle=%s",
        n_users,
        n_items,
        n,
        int(cfg.rank),
        int(cfg.iterations),
        lr,
        reg,
        use_bias,
        cfg.shuffle,
    )
    t0 = time.perf_counter()
    for epoch in range(1, int(cfg.iterations) + 1):
        order = rng.permutation(n).tolist() if cfg.shuffle else range(n)
        # Overflow is checked once per epoch below instead of warning per record.
        with np.errstate(over="ignore", invalid="ignore"):
            sq_err = 0.0
            for k in order:
                u, i, r = users[k], items[k], ratings[k]
                pu = P[u].copy()
                qi = Q[i]
                err = r - (mu + bu[u] + bi[i] + float(pu @ qi))
                sq_err += err * err

                P[u] += lr * (err * qi - reg * pu)
                Q[i] += lr * (err * pu - reg * qi)
                if use_bias:
                    bu[u] += lr * (err - reg * bu[u])
                    bi[i] += lr * (err - reg * bi[i])

        train_rmse = math.sqrt(sq_err / n)
        logger.info("MF epoch=%d/%d train_rmse=%.4f", epoch, int(cfg.iterations), train_rmse)

        if model.has_non_finite() or not math.isfinite(train_rmse):
            msg = (
                f"factor matrices contain NaN/inf after epoch {epoch} "
                f"(learning_rate={lr:g}, regularization={reg:g})"
            )
            if cfg.stop_on_divergence:
                raise TrainingDivergedError(msg)
            logger.warning("Training diverged: %s", msg)

    logger.info("MF training finished in %.2fs", time.perf_counter() - t0)
    return model
