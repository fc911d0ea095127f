"""Exception types raised while turning raw model outputs into embeddings.

Two families are kept apart on purpose:

* ``OutputError`` and its subclasses describe a batch that cannot be handled
  with the configured precedence/pooling. They derive from ``ValueError`` and
  abort only the current transformer call.
* ``FatalOutputError`` and its subclasses describe a broken invariant (the
  embedding width changed between batches, or an array arrived with an
  unexpected memory layout). These are not retryable and sit outside the
  ``ValueError`` tree so that ``except ValueError`` never catches them.
"""

from __future__ import annotations


class OutputError(ValueError):
    """Base class for recoverable output-processing failures."""


class OutputSelectionError(OutputError):
    """No key in the output precedence matched the outputs of a batch."""


class PoolingError(OutputError):
    """The selected tensor's rank is incompatible with the pooling request."""


class BatchShapeError(OutputError):
    """Tensors within a single batch disagree on their leading dimensions."""


class FatalOutputError(RuntimeError):
    """Base class for invariant violations that should stop the caller."""


class DimensionMismatchError(FatalOutputError):
    """A later batch produced embeddings of a different width than the first."""

    def __init__(self, expected: int, actual: int, batch_index: int) -> None:
        super().__init__(
            f"Inconsistent embedding dimensions: batch {batch_index} has width {actual}, "
            f"expected {expected}."
        )
        self.expected = expected
        self.actual = actual
        self.batch_index = batch_index


class LayoutViolationError(FatalOutputError):
    """A pooled array is not contiguous starting at storage offset zero."""


__all__ = [
    "OutputError",
    "OutputSelectionError",
    "PoolingError",
    "BatchShapeError",
    "FatalOutputError",
    "DimensionMismatchError",
    "LayoutViolationError",
]
