from __future__ import annotations

from typing import Any, Hashable, Iterable

import numpy as np
import pandas as pd

from ..errors import IndexOutOfRangeError, UnknownKeyError


def _as_python(key: Any) -> Any:
    # numpy scalars (from CSV columns / .npy files) -> plain python values
    return key.item() if isinstance(key, np.generic) else key


class IdEncoder:
    """Bidirectional raw-id <-> dense-index lookup.

    Indices are assigned greedily in first-seen order during `fit` and are
    frozen afterwards: encoding an id that was not part of the fit corpus raises
    `UnknownKeyError` instead of allocating a new index.
    """

    def __init__(self, kind: str = "key") -> None:
        self.kind = kind
        self._key_to_idx: dict[Hashable, int] = {}
        self._classes: list[Any] = []
        self._fitted = False

    @classmethod
    def from_classes(cls, classes: Iterable[Any], *, kind: str = "key") -> "IdEncoder":
        """Rebuild an encoder whose index i maps to classes[i]."""
        enc = cls(kind=kind)
        keys = [_as_python(k) for k in classes]
        if len(set(keys)) != len(keys):
            raise ValueError(f"{kind} classes contain duplicates")
        enc._classes = keys
        enc._key_to_idx = {k: i for i, k in enumerate(keys)}
        enc._fitted = True
        return enc

    @property
    def fitted(self) -> bool:
        return self._fitted

    @property
    def classes_(self) -> np.ndarray:
        return np.asarray(self._classes)

    def fit(self, raw_keys: Iterable[Any]) -> "IdEncoder":
        if self._fitted:
            raise RuntimeError(f"{self.kind} encoder is already fitted")
        values = raw_keys if isinstance(raw_keys, (np.ndarray, pd.Series)) else list(raw_keys)
        # pd.unique keeps first-occurrence order (unlike LabelEncoder, which sorts)
        for k in pd.unique(np.asarray(values, dtype=object)):
            k = _as_python(k)
            self._key_to_idx[k] = len(self._classes)
            self._classes.append(k)
        self._fitted = True
        return self

    def encode(self, key: Any) -> int:
        idx = self._key_to_idx.get(_as_python(key))
        if idx is None:
            raise UnknownKeyError(key, kind=self.kind)
        return idx

    def encode_many(self, keys: Iterable[Any]) -> np.ndarray:
        return np.fromiter((self.encode(k) for k in keys), dtype=np.int64)

    def contains(self, key: Any) -> bool:
        return _as_python(key) in self._key_to_idx

    __contains__ = contains

    def decode(self, index: int) -> Any:
        if not 0 <= int(index) < len(self._classes):
            raise IndexOutOfRangeError(f"{self.kind} index {index} out of range [0, {len(self._classes)})")
        return self._classes[int(index)]

    def size(self) -> int:
        return len(self._classes)

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"IdEncoder(kind={self.kind!r}, size={self.size()})"
