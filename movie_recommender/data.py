from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn import model_selection


logger = logging.getLogger(__name__)

USER_COL = "userId"
ITEM_COL = "movieId"
RATING_COL = "rating"

REQUIRED_COLUMNS: Tuple[str, ...] = (USER_COL, ITEM_COL, RATING_COL)


@dataclass(frozen=True)
class RatingsSplit:
    train: pd.DataFrame
    test: pd.DataFrame


def load_ratings(path: Path) -> pd.DataFrame:
    """Load a comma-separated ratings file.

    Notes
    -----
    The header row is skipped and fields are bound by position: column 0 is
    the user id, column 1 the movie id and column 2 the rating, whatever the
    header calls them. Extra columns (e.g. timestamp) are dropped.

    All three fields are parsed as float64: ids are treated as opaque keys, so
    the same parse must be used for the training and the test file or keys
    will not line up.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ratings file not found: {path}")

    df = pd.read_csv(path, sep=",", header=0)
    if df.shape[1] < len(REQUIRED_COLUMNS):
        raise ValueError(
            f"{path.name} has {df.shape[1]} columns, expected at least {len(REQUIRED_COLUMNS)} "
            f"({', '.join(REQUIRED_COLUMNS)})"
        )
    df = df.iloc[:, : len(REQUIRED_COLUMNS)]
    df.columns = list(REQUIRED_COLUMNS)

    validate_ratings(df, source=path.name)
    logger.info("Loaded %d ratings from %s", len(df), path)
    return df.astype("float64").reset_index(drop=True)


def validate_ratings(df: pd.DataFrame, *, source: str = "ratings") -> None:
    """Validate that required columns exist and hold finite numbers."""
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{source} missing columns: {missing}")

    for col in REQUIRED_COLUMNS:
        values = pd.to_numeric(df[col], errors="coerce").to_numpy(dtype=np.float64)
        bad = ~np.isfinite(values)
        if bad.any():
            raise ValueError(f"{source} has {int(bad.sum())} non-numeric or missing values in column {col!r}")


def split_ratings(
    ratings: pd.DataFrame,
    *,
    test_size: float = 0.2,
    random_state: int = 42,
) -> RatingsSplit:
    """Random train/test split for when only one ratings file is available."""
    validate_ratings(ratings)

    # Stratifying by rating value breaks on tiny inputs where a bucket has a single row.
    stratify = ratings[RATING_COL].astype(str).values
    counts = pd.Series(stratify).value_counts()
    n_test = int(np.ceil(float(test_size) * len(ratings)))
    n_train = len(ratings) - n_test
    if counts.empty or int(counts.min()) < 2 or min(n_test, n_train) < len(counts):
        stratify = None

    train, test = model_selection.train_test_split(
        ratings,
        test_size=float(test_size),
        random_state=int(random_state),
        stratify=stratify,
    )
    return RatingsSplit(train=train.reset_index(drop=True), test=test.reset_index(drop=True))
