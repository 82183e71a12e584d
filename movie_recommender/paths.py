from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


def resolve_path(repo_root: Path, p: Path | str) -> Path:
    """Absolute paths pass through; relative ones are anchored at `repo_root`."""
    p_path = Path(p)
    if not p_path.is_absolute():
        p_path = repo_root / p_path
    return p_path.resolve()


@dataclass(frozen=True)
class ProjectPaths:
    raw_dir: Path
    train_csv: Path
    test_csv: Path
    artifacts_dir: Path
    mf_dir: Path

    @classmethod
    def from_repo_root(
        cls,
        repo_root: Path,
        *,
        raw_dir: Path | str = "data/raw",
        train_file: str = "recommendation-ratings-train.csv",
        test_file: str = "recommendation-ratings-test.csv",
        artifacts_dir: Path | str = "artifacts",
        mf_dir: Path | str | None = None,
    ) -> "ProjectPaths":
        raw_dir_p = resolve_path(repo_root, raw_dir)
        artifacts_dir_p = resolve_path(repo_root, artifacts_dir)
        return cls(
            raw_dir=raw_dir_p,
            train_csv=resolve_path(raw_dir_p, train_file),
            test_csv=resolve_path(raw_dir_p, test_file),
            artifacts_dir=artifacts_dir_p,
            mf_dir=(artifacts_dir_p / "mf") if mf_dir is None else resolve_path(repo_root, mf_dir),
        )


def get_repo_root() -> Path:
    """Return repo root by searching upwards for `config.yaml` or `.git`."""
    starts = [Path.cwd().resolve(), Path(__file__).resolve().parent]
    for start in starts:
        for candidate in (start, *start.parents):
            if (candidate / "config.yaml").is_file() or (candidate / ".git").exists():
                return candidate

    raise FileNotFoundError("Could not locate repo root (expected `config.yaml` or `.git`).")
