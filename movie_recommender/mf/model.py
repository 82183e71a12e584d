from __future__ import annotations

import torch
import torch.nn as nn

from ..errors import IndexOutOfRangeError


class FactorModel(nn.Module):
    """Latent-factor MF model: dot(user_factors[u], item_factors[i]) + biases.

    With use_bias=False (the default) the bias terms stay at zero and the score
    is the pure dot product. Weights are float64 so that per-record SGD updates
    are reproducible bit-for-bit across a save/load round trip.
    """

    def __init__(self, n_users: int, n_items: int, rank: int, *, use_bias: bool = False) -> None:
        super().__init__()
        self.n_users = int(n_users)
        self.n_items = int(n_items)
        self.rank = int(rank)
        self.use_bias = bool(use_bias)

        self.user_factors = nn.Embedding(self.n_users, self.rank, dtype=torch.float64)
        self.item_factors = nn.Embedding(self.n_items, self.rank, dtype=torch.float64)

        self.user_bias = nn.Embedding(self.n_users, 1, dtype=torch.float64)
        self.item_bias = nn.Embedding(self.n_items, 1, dtype=torch.float64)
        self.global_bias = nn.Parameter(torch.zeros(1, dtype=torch.float64))

        nn.init.zeros_(self.user_bias.weight)
        nn.init.zeros_(self.item_bias.weight)

        # SGD updates are applied by hand in the trainer; autograd is never used.
        self.requires_grad_(False)

    def init_factors(self, scale: float = 0.1, generator: torch.Generator | None = None) -> None:
        """Fill factor rows with uniform values in [-scale, scale], never exactly zero."""
        for emb in (self.user_factors, self.item_factors):
            w = emb.weight
            w.uniform_(-scale, scale, generator=generator)
            w[w == 0.0] = scale / 2.0

    def _check_index(self, user_idx: int, item_idx: int) -> None:
        if not 0 <= user_idx < self.n_users:
            raise IndexOutOfRangeError(f"user index {user_idx} out of range [0, {self.n_users})")
        if not 0 <= item_idx < self.n_items:
            raise IndexOutOfRangeError(f"item index {item_idx} out of range [0, {self.n_items})")

    def predict(self, user_idx: int, item_idx: int) -> float:
        u, i = int(user_idx), int(item_idx)
        self._check_index(u, i)
        # Same arithmetic as the batched path the evaluator uses.
        score = self(torch.tensor([u]), torch.tensor([i]))
        return float(score[0])

    def forward(self, users: torch.Tensor, items: torch.Tensor) -> torch.Tensor:
        users = torch.as_tensor(users, dtype=torch.long)
        items = torch.as_tensor(items, dtype=torch.long)
        if users.numel():
            if int(users.min()) < 0 or int(users.max()) >= self.n_users:
                raise IndexOutOfRangeError(f"user indices out of range [0, {self.n_users})")
            if int(items.min()) < 0 or int(items.max()) >= self.n_items:
                raise IndexOutOfRangeError(f"item indices out of range [0, {self.n_items})")
        dot = (self.user_factors(users) * self.item_factors(items)).sum(dim=1)
        bias = self.user_bias(users).squeeze(1) + self.item_bias(items).squeeze(1) + self.global_bias
        return dot + bias

    def score_all_items(self, user_idx: int) -> torch.Tensor:
        """Scores of every item for one user, indexed by item index."""
        u = int(user_idx)
        if not 0 <= u < self.n_users:
            raise IndexOutOfRangeError(f"user index {u} out of range [0, {self.n_users})")
        scores = self.item_factors.weight @ self.user_factors.weight[u]
        return scores + self.item_bias.weight[:, 0] + self.user_bias.weight[u, 0] + self.global_bias[0]

    def has_non_finite(self) -> bool:
        return not all(bool(torch.isfinite(p).all()) for p in self.parameters())
