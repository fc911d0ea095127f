"""Sequence pooling for token-level model outputs."""

from __future__ import annotations

from typing import Literal, Optional, get_args

import torch

from ..errors import BatchShapeError, PoolingError

Pooling = Literal["cls", "mean", "last_token"]
POOLING_STRATEGIES: tuple[str, ...] = get_args(Pooling)


def validate_pooling(strategy: Optional[str]) -> Optional[Pooling]:
    """Return ``strategy`` unchanged if it is a supported tag (or None)."""
    if strategy is None:
        return None
    if strategy not in POOLING_STRATEGIES:
        raise ValueError(
            f"Unsupported pooling strategy: {strategy!r}. Expected one of {list(POOLING_STRATEGIES)}."
        )
    return strategy  # type: ignore[return-value]


def _masked_mean(hidden_states: torch.Tensor, attention_mask: torch.Tensor) -> torch.Tensor:
    mask = attention_mask.to(hidden_states.dtype).unsqueeze(-1)
    token_counts = mask.sum(dim=1).clamp_min(1.0)
    return (hidden_states * mask).sum(dim=1) / token_counts


def pool_hidden_states(
    hidden_states: torch.Tensor,
    attention_mask: Optional[torch.Tensor] = None,
    strategy: Pooling = "cls",
) -> torch.Tensor:
    """
    Collapse token-level hidden states into one vector per item.

    Every row is pooled on its own, so an item's vector does not depend on
    which other items share its batch.

    Parameters
    ----------
    hidden_states:
        Tensor shaped (batch, seq_len, hidden_size).
    attention_mask:
        Optional binary mask shaped (batch, seq_len); values of 1 indicate
        real tokens and 0 indicate padding. Defaults to all tokens valid.
    strategy:
        Pooling rule:
        - "cls": the vector at token 0 of each row. A row whose token 0 is
                 masked (left padding) gets its masked mean instead.
        - "mean": per-row average of the unmasked token vectors; a fully
                  masked row pools to zeros.
        - "last_token": the last non-padding token of each row.

    Returns
    -------
    torch.Tensor
        Freshly allocated, contiguous tensor shaped (batch, hidden_size).
    """
    if hidden_states.dim() != 3:
        raise PoolingError(
            f"Pooling requires shape (batch, seq_len, hidden_size); got rank {hidden_states.dim()}."
        )

    validate_pooling(strategy)

    if attention_mask is None:
        attention_mask = torch.ones(
            hidden_states.shape[:2],
            device=hidden_states.device,
            dtype=hidden_states.dtype,
        )

    if attention_mask.shape != hidden_states.shape[:2]:
        raise BatchShapeError("attention_mask must match hidden_states batch and sequence dimensions")

    if strategy == "cls":
        cls_valid = (attention_mask[:, 0] > 0).unsqueeze(-1)
        if torch.all(cls_valid):
            return hidden_states[:, 0, :].clone(memory_format=torch.contiguous_format)
        mean = _masked_mean(hidden_states, attention_mask)
        return torch.where(cls_valid, hidden_states[:, 0, :], mean).contiguous()

    if strategy == "last_token":
        positions = torch.arange(hidden_states.shape[1], device=hidden_states.device)
        last = ((attention_mask > 0) * positions).amax(dim=1)
        rows = torch.arange(hidden_states.shape[0], device=hidden_states.device)
        return hidden_states[rows, last].clone(memory_format=torch.contiguous_format)

    return _masked_mean(hidden_states, attention_mask).contiguous()


__all__ = ["Pooling", "POOLING_STRATEGIES", "pool_hidden_states", "validate_pooling"]
