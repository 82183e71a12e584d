from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .encoder import IdEncoder
from .model import FactorModel


# Ratings are on a 1..5 scale; anything that rounds above 3.5 is recommended.
RECOMMEND_THRESHOLD = 3.5


@dataclass(frozen=True)
class SinglePrediction:
    user_key: Any
    item_key: Any
    score: float
    recommend: bool


def is_recommended(score: float) -> bool:
    return round(float(score), 1) > RECOMMEND_THRESHOLD


def predict_single(
    user_key: Any,
    item_key: Any,
    model: FactorModel,
    user_encoder: IdEncoder,
    item_encoder: IdEncoder,
) -> SinglePrediction:
    """Score one raw (user, item) pair and apply the recommend threshold.

    Raises UnknownKeyError (a KeyError) if either id was not seen in training.
    """
    u = user_encoder.encode(user_key)
    i = item_encoder.encode(item_key)
    score = model.predict(u, i)
    return SinglePrediction(user_key=user_key, item_key=item_key, score=score, recommend=is_recommended(score))
