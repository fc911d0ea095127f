"""Aggregators that turn a list of batch outputs into finished embeddings.

Both transformers are configured once (precedence + pooling) and then called
per inference run with that run's batches. Batches are processed sequentially,
in order, and the first failing batch aborts the whole call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence

import numpy as np

from .embeddings.normalize import Embedding, normalize, normalize_rows
from .embeddings.pooling import Pooling, validate_pooling
from .errors import DimensionMismatchError, LayoutViolationError
from .outputs.batch import SingleBatchOutput
from .outputs.keys import OutputKey, OutputPrecedence


class FlatEmbeddings(NamedTuple):
    """Row-major float32 buffer with its matrix dimensions."""

    buffer: np.ndarray
    rows: int
    cols: int

    def as_matrix(self) -> np.ndarray:
        """Return a (rows, cols) view over the buffer."""
        return self.buffer.reshape(self.rows, self.cols)


@dataclass(frozen=True)
class StructuredTransformer:
    """Produce one normalized embedding per item, in batch then row order."""

    precedence: OutputPrecedence
    pooling: Optional[Pooling] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "precedence", OutputPrecedence.coerce(self.precedence))
        validate_pooling(self.pooling)

    def run(self, batches: Sequence[SingleBatchOutput]) -> List[Embedding]:
        embeddings: List[Embedding] = []
        for batch in batches:
            array = batch.select_and_pool_output(self.precedence, self.pooling)
            embeddings.extend(normalize(row) for row in array.rows())
        return embeddings

    __call__ = run


@dataclass(frozen=True)
class FlatTransformer:
    """Concatenate every batch's pooled rows into one contiguous buffer.

    Rows are L2-normalized like :class:`StructuredTransformer` unless
    ``normalize`` is False, in which case the pooled values are copied as-is.
    """

    precedence: OutputPrecedence
    pooling: Optional[Pooling] = None
    normalize: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "precedence", OutputPrecedence.coerce(self.precedence))
        validate_pooling(self.pooling)

    def run(self, batches: Sequence[SingleBatchOutput]) -> FlatEmbeddings:
        chunks: List[np.ndarray] = []
        rows = 0
        cols: Optional[int] = None

        for index, batch in enumerate(batches):
            array = batch.select_and_pool_output(self.precedence, self.pooling)
            r, c = array.dim()
            if cols is None:
                cols = c
            elif c != cols:
                raise DimensionMismatchError(expected=cols, actual=c, batch_index=index)

            view = array.raw_view()
            if view.offset != 0:
                raise LayoutViolationError(
                    f"Expected pooled array for batch {index} to start at offset 0; got {view.offset}."
                )

            data = view.data
            if self.normalize and r:
                data = normalize_rows(data.reshape(r, c)).reshape(-1)
            chunks.append(data)
            rows += r

        if not chunks:
            return FlatEmbeddings(np.empty(0, dtype=np.float32), 0, 0)
        buffer = np.concatenate(chunks).astype(np.float32, copy=False)
        return FlatEmbeddings(buffer, rows, cols or 0)

    __call__ = run


def build_structured_transformer(
    precedence: OutputPrecedence | Iterable[OutputKey | str],
    pooling: Optional[Pooling] = None,
) -> StructuredTransformer:
    """Configure a transformer returning a list of per-item embeddings."""
    return StructuredTransformer(precedence=OutputPrecedence.coerce(precedence), pooling=pooling)


def build_flat_transformer(
    precedence: OutputPrecedence | Iterable[OutputKey | str],
    pooling: Optional[Pooling] = None,
    normalize: bool = True,
) -> FlatTransformer:
    """Configure a transformer returning a flat buffer with its row and column counts."""
    return FlatTransformer(
        precedence=OutputPrecedence.coerce(precedence),
        pooling=pooling,
        normalize=normalize,
    )


__all__ = [
    "FlatEmbeddings",
    "StructuredTransformer",
    "FlatTransformer",
    "build_structured_transformer",
    "build_flat_transformer",
]
