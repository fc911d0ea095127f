"""L2 normalization of embedding vectors."""

from __future__ import annotations

import numpy as np

Embedding = np.ndarray  # 1-D float32, unit L2 norm unless all zeros
_ZERO_VECTOR_WARNING_EMITTED = False


def _warn_zero_vector() -> None:
    global _ZERO_VECTOR_WARNING_EMITTED
    if not _ZERO_VECTOR_WARNING_EMITTED:
        print("[embeddings] Warning: zero-norm embedding left as all zeros (logged once).")
        _ZERO_VECTOR_WARNING_EMITTED = True


def normalize(vector: np.ndarray) -> Embedding:
    """
    Scale a single vector to unit Euclidean length.

    An all-zero vector has no direction; it is returned as a new zero vector
    rather than divided by zero.

    Parameters
    ----------
    vector:
        1-D array of floats. It is never modified.

    Returns
    -------
    numpy.ndarray
        New float32 array of the same length.
    """
    values = np.asarray(vector, dtype=np.float32)
    if values.ndim != 1:
        raise ValueError(f"normalize expects a 1-D vector; got shape {values.shape}")

    norm = np.linalg.norm(values)
    if norm == 0:
        _warn_zero_vector()
        return np.zeros_like(values)
    return (values / norm).astype(np.float32)


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """Apply :func:`normalize` to every row of a 2-D array, returning a new array."""
    values = np.asarray(matrix, dtype=np.float32)
    if values.ndim != 2:
        raise ValueError(f"normalize_rows expects a 2-D array; got shape {values.shape}")

    norms = np.linalg.norm(values, axis=1, keepdims=True)
    zero_rows = norms == 0
    if zero_rows.any():
        _warn_zero_vector()
    # Zero rows are divided by 1 and therefore stay zero.
    return (values / np.where(zero_rows, 1.0, norms)).astype(np.float32)


__all__ = ["Embedding", "normalize", "normalize_rows"]
