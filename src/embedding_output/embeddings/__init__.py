"""Pooling and normalization helpers for turning model outputs into embeddings."""

from .normalize import Embedding, normalize, normalize_rows
from .pooling import POOLING_STRATEGIES, Pooling, pool_hidden_states, validate_pooling

__all__ = [
    "Embedding",
    "normalize",
    "normalize_rows",
    "POOLING_STRATEGIES",
    "Pooling",
    "pool_hidden_states",
    "validate_pooling",
]
