from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Literal

import numpy as np
import pandas as pd
from torch.utils.data import Dataset

from ..data import ITEM_COL, RATING_COL, USER_COL
from .encoder import IdEncoder


logger = logging.getLogger(__name__)

OnUnknown = Literal["raise", "skip"]


@dataclass(frozen=True)
class EncodedRating:
    user_idx: int
    item_idx: int
    rating: float


class RatingDataset(Dataset):
    """Ordered (user_idx, item_idx, rating) triples backed by numpy arrays."""

    def __init__(self, user_idx: np.ndarray, item_idx: np.ndarray, rating: np.ndarray) -> None:
        user_idx = np.asarray(user_idx)
        item_idx = np.asarray(item_idx)
        rating = np.asarray(rating)
        if not (len(user_idx) == len(item_idx) == len(rating)):
            raise ValueError(
                f"user_idx/item_idx/rating length mismatch: {len(user_idx)}, {len(item_idx)}, {len(rating)}"
            )
        self.user_idx = user_idx.astype(np.int64, copy=False)
        self.item_idx = item_idx.astype(np.int64, copy=False)
        self.rating = rating.astype(np.float64, copy=False)

    @classmethod
    def from_records(cls, records: list[EncodedRating] | list[tuple[int, int, float]]) -> "RatingDataset":
        rows = [(r.user_idx, r.item_idx, r.rating) if isinstance(r, EncodedRating) else tuple(r) for r in records]
        if not rows:
            return cls(np.empty(0), np.empty(0), np.empty(0))
        u, i, r = zip(*rows)
        return cls(np.asarray(u), np.asarray(i), np.asarray(r))

    def __len__(self) -> int:
        return int(len(self.user_idx))

    def __getitem__(self, i: int) -> EncodedRating:
        return EncodedRating(
            user_idx=int(self.user_idx[i]),
            item_idx=int(self.item_idx[i]),
            rating=float(self.rating[i]),
        )

    def __iter__(self) -> Iterator[EncodedRating]:
        for i in range(len(self)):
            yield self[i]

    def mean_rating(self) -> float:
        if len(self) == 0:
            return 0.0
        return float(self.rating.mean())


def fit_encoders(ratings: pd.DataFrame) -> tuple[IdEncoder, IdEncoder]:
    """Fit user and item encoders on the training ratings (first-seen order)."""
    user_encoder = IdEncoder(kind="userId").fit(ratings[USER_COL].to_numpy())
    item_encoder = IdEncoder(kind="movieId").fit(ratings[ITEM_COL].to_numpy())
    logger.info("Encoders fitted: users=%d items=%d", user_encoder.size(), item_encoder.size())
    return user_encoder, item_encoder


def build_dataset(
    ratings: pd.DataFrame,
    user_encoder: IdEncoder,
    item_encoder: IdEncoder,
    *,
    on_unknown: OnUnknown = "raise",
) -> RatingDataset:
    """Encode raw rating rows into a RatingDataset.

    With on_unknown="skip", rows whose user or movie was not seen by the
    encoders are dropped (and counted in a warning); otherwise the first such
    row raises `UnknownKeyError`.
    """
    if on_unknown not in ("raise", "skip"):
        raise ValueError(f"on_unknown must be 'raise' or 'skip', got {on_unknown!r}")

    users = ratings[USER_COL].to_numpy()
    items = ratings[ITEM_COL].to_numpy()
    values = ratings[RATING_COL].to_numpy(dtype=np.float64)

    if on_unknown == "skip":
        known = np.fromiter(
            (user_encoder.contains(u) and item_encoder.contains(m) for u, m in zip(users, items)),
            dtype=bool,
            count=len(users),
        )
        dropped = int((~known).sum())
        if dropped:
            logger.warning("Dropping %d/%d ratings with ids unseen in training", dropped, len(users))
        users, items, values = users[known], items[known], values[known]

    return RatingDataset(
        user_encoder.encode_many(users),
        item_encoder.encode_many(items),
        values,
    )
