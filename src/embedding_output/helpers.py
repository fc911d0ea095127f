"""Helper utilities shared across the output-processing modules."""

from __future__ import annotations

from typing import Any

import numpy as np
import torch

from .errors import BatchShapeError


def as_float_tensor(value: Any) -> torch.Tensor:
    """Return ``value`` as a detached float32 CPU tensor.

    Inputs that already satisfy this are returned as-is (no copy); anything
    else is converted into a new tensor, so the caller's object is never
    modified in place.
    """

    if isinstance(value, torch.Tensor):
        tensor = value.detach()
    elif isinstance(value, (np.ndarray, list, tuple)):
        # Negative-stride views (arr[::-1], np.flip) are compacted into a new array.
        tensor = torch.as_tensor(np.ascontiguousarray(value))
    else:
        raise TypeError(f"Unsupported tensor value: {type(value).__name__}")

    if tensor.device.type != "cpu":
        tensor = tensor.to("cpu")
    if tensor.dtype != torch.float32:
        tensor = tensor.to(torch.float32)
    return tensor


def as_mask_tensor(value: Any) -> torch.Tensor:
    """Coerce an attention mask into a float32 CPU tensor of 0/1 values."""

    mask = as_float_tensor(value)
    if mask.dim() != 2:
        raise BatchShapeError("attention_mask must have shape (batch, seq_len)")
    return (mask > 0).to(torch.float32)


__all__ = ["as_float_tensor", "as_mask_tensor"]
