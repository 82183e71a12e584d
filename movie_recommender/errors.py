"""Error taxonomy for the matrix-factorization recommender.

Each error also derives from the closest builtin so callers that only know
about `KeyError` / `ValueError` / `IndexError` keep working.
"""

from __future__ import annotations


class RecommenderError(Exception):
    """Base class for all recommender errors."""


class InvalidConfigError(RecommenderError, ValueError):
    """Training hyperparameters are out of range."""


class UnknownKeyError(RecommenderError, KeyError):
    """A raw user/item id was never seen during training (cold start)."""

    def __init__(self, key: object, kind: str = "key") -> None:
        super().__init__(key)
        self.key = key
        self.kind = kind

    def __str__(self) -> str:
        return f"Unknown {self.kind}: {self.key!r}"


class IndexOutOfRangeError(RecommenderError, IndexError):
    """A dense index falls outside the factor matrix (programming error)."""


class EmptyDatasetError(RecommenderError, ValueError):
    """A dataset with no records was passed where at least one is required."""


class DegenerateMetricError(RecommenderError, ValueError):
    """A metric is undefined for the given data (e.g. R² with zero variance)."""


class TrainingDivergedError(RecommenderError, ArithmeticError):
    """Factor matrices contain NaN or inf after an epoch."""
