from __future__ import annotations

import sys
from pathlib import Path

import pandas as pd
import pytest

# Ensure `import movie_recommender...` works when pytest uses importlib import mode.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture()
def two_item_ratings() -> pd.DataFrame:
    """User 6 loves movie 10 and dislikes movie 11; user 7 adds a bit of signal."""
    rows = [
        ("6", "10", 4.0),
        ("6", "11", 1.0),
        ("7", "10", 5.0),
        ("7", "12", 2.0),
    ] * 25
    return pd.DataFrame(rows, columns=["userId", "movieId", "rating"])
