from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass

import numpy as np
import torch

from ..errors import DegenerateMetricError, EmptyDatasetError
from .dataset import RatingDataset
from .model import FactorModel


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationMetrics:
    rmse: float
    r_squared: float
    mae: float
    mse: float
    n: int

    def to_dict(self) -> dict:
        return asdict(self)


def predict_dataset(model: FactorModel, dataset: RatingDataset) -> np.ndarray:
    """Model scores for every record of `dataset`, in dataset order."""
    with torch.no_grad():
        scores = model(torch.from_numpy(dataset.user_idx), torch.from_numpy(dataset.item_idx))
    return scores.numpy().astype(np.float64, copy=False)


def evaluate(model: FactorModel, dataset: RatingDataset) -> EvaluationMetrics:
    """Regression metrics of model predictions against held-out ratings.

    R² is 1 - SSE / SST where SST is the squared deviation of the true ratings
    from their own mean. Raises EmptyDatasetError for an empty dataset and
    DegenerateMetricError when every true rating is identical (SST == 0).
    """
    if len(dataset) == 0:
        raise EmptyDatasetError("Cannot evaluate on an empty dataset")

    y_true = dataset.rating
    y_pred = predict_dataset(model, dataset)
    residual = y_true - y_pred

    sse = float(np.sum(residual**2))
    sst = float(np.sum((y_true - y_true.mean()) ** 2))
    if sst == 0.0:
        raise DegenerateMetricError(
            f"R² is undefined: all {len(dataset)} test ratings equal {float(y_true[0]):g}"
        )

    mse = sse / len(dataset)
    metrics = EvaluationMetrics(
        rmse=math.sqrt(mse),
        r_squared=1.0 - sse / sst,
        mae=float(np.mean(np.abs(residual))),
        mse=mse,
        n=len(dataset),
    )
    logger.info("MF evaluation: n=%d rmse=%.4f r2=%.4f", metrics.n, metrics.rmse, metrics.r_squared)
    return metrics


def format_metrics(metrics: EvaluationMetrics) -> str:
    """Console report for an evaluation run."""
    lines = [
        "=== Evaluation ===",
        f"Ratings evaluated: {metrics.n}",
        f"Root Mean Squared Error: {metrics.rmse:.4f}",
        f"RSquared: {metrics.r_squared:.4f}",
        f"Mean Absolute Error: {metrics.mae:.4f}",
        f"Mean Squared Error: {metrics.mse:.4f}",
    ]
    return "\n".join(lines)
