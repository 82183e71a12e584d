"""Score a single (userId, movieId) pair with the trained MF model.

    python -m movie_recommender.mf.cli --user-id 6 --movie-id 10
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

from ..errors import UnknownKeyError
from ..utils import setup_logging
from .recommender import MFRecommender


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Predict whether a movie should be recommended to a user")
    p.add_argument("--user-id", type=float, required=True, help="userId as it appears in the ratings file")
    p.add_argument("--movie-id", type=float, default=None, help="movieId to score; omit to list top-k movies")
    p.add_argument("--k", type=int, default=10, help="How many movies to list when --movie-id is omitted")
    p.add_argument("--artifacts-dir", type=Path, default=None, help="Where to read/write MF artifacts")
    p.add_argument("--no-train-if-missing", action="store_true", help="Fail if artifacts are missing")
    return p


def main(argv: list[str] | None = None) -> int:
    setup_logging("INFO")
    args = build_arg_parser().parse_args(argv)
    rec = MFRecommender(
        artifacts_dir=args.artifacts_dir,
        allow_train_if_missing=(not bool(args.no_train_if_missing)),
    )

    try:
        if args.movie_id is not None:
            pred = rec.predict(args.user_id, args.movie_id)
            verdict = "is recommended" if pred.recommend else "is not recommended"
            print(f"\nMovie {args.movie_id:g} {verdict} for user {args.user_id:g} (score={pred.score:.4f})")
        else:
            recs = rec.recommend_items(args.user_id, k=int(args.k))
            print("\n=== Recommended Movies ===")
            if recs:
                print(pd.DataFrame([r.__dict__ for r in recs]).to_string(index=False))
            else:
                print("No recommendations found.")
    except UnknownKeyError as exc:
        print(f"Cold start: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
