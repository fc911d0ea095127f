"""Containers for one inference call's raw outputs and its pooled result.

``SingleBatchOutput`` wraps the named tensors a model produced for one batch
of inputs. ``select_and_pool_output`` resolves the output precedence, applies
the pooling strategy and hands back a ``PooledArray``: a 2-D float32 array
(items x embedding dimension) that owns its storage, which the aggregators in
:mod:`embedding_output.transformers` consume.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Tuple

import numpy as np
import torch

from ..embeddings.pooling import Pooling, pool_hidden_states, validate_pooling
from ..errors import BatchShapeError, LayoutViolationError, PoolingError
from ..helpers import as_float_tensor, as_mask_tensor
from .keys import OutputPrecedence, select_output_name


@dataclass(frozen=True, eq=False)
class FlatView:
    """Row-major view over a pooled array's backing storage."""

    data: np.ndarray
    offset: int


class PooledArray:
    """2-D float32 array of pooled embeddings for one batch."""

    __slots__ = ("_tensor",)

    def __init__(self, tensor: torch.Tensor) -> None:
        if tensor.dim() != 2:
            raise PoolingError(f"Pooled output must be 2-D (items, dim); got rank {tensor.dim()}.")
        self._tensor = tensor

    @property
    def tensor(self) -> torch.Tensor:
        return self._tensor

    def dim(self) -> Tuple[int, int]:
        rows, cols = self._tensor.shape
        return int(rows), int(cols)

    def rows(self) -> Iterator[np.ndarray]:
        """Yield each row as a read-only 1-D numpy array."""
        for row in self._tensor.numpy():
            row.flags.writeable = False
            yield row

    def raw_view(self) -> FlatView:
        """
        Expose the backing storage as a flat row-major array.

        Raises
        ------
        LayoutViolationError
            If the tensor is not C-contiguous; the view is never silently
            compacted into a copy.
        """
        if not self._tensor.is_contiguous():
            raise LayoutViolationError(
                f"Expected a contiguous pooled array; got strides {self._tensor.stride()} "
                f"for shape {tuple(self._tensor.shape)}."
            )
        return FlatView(
            data=self._tensor.reshape(-1).numpy(),
            offset=int(self._tensor.storage_offset()),
        )

    def __repr__(self) -> str:
        rows, cols = self.dim()
        return f"PooledArray(rows={rows}, cols={cols})"


@dataclass(frozen=True, eq=False)
class SingleBatchOutput:
    """Raw named outputs of one forward pass.

    Attributes
    ----------
    outputs:
        Mapping from output name to tensor. Every tensor's leading dimension
        is the number of items in the batch. Iteration order is the order the
        model reported its outputs in, which ``ByOrder`` and ``OnlyOne`` keys
        rely on.
    attention_mask:
        Optional (items, seq_len) mask used by the pooling strategies.
    """

    outputs: Mapping[str, torch.Tensor]
    attention_mask: Optional[torch.Tensor] = None
    _names: Tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Coerce into a private dict; caller tensors are read, never modified.
        coerced = {str(name): as_float_tensor(value) for name, value in self.outputs.items()}
        if not coerced:
            raise BatchShapeError("A batch must expose at least one output.")

        leading = {name: (tensor.shape[0] if tensor.dim() else None) for name, tensor in coerced.items()}
        item_counts = set(leading.values())
        if None in item_counts or len(item_counts) != 1:
            raise BatchShapeError(f"Outputs disagree on the number of items in the batch: {leading}")

        mask = None
        if self.attention_mask is not None:
            mask = as_mask_tensor(self.attention_mask)
            if mask.shape[0] not in item_counts:
                raise BatchShapeError(
                    f"attention_mask covers {mask.shape[0]} items; outputs have {item_counts.pop()}."
                )

        object.__setattr__(self, "outputs", coerced)
        object.__setattr__(self, "attention_mask", mask)
        object.__setattr__(self, "_names", tuple(coerced))

    @classmethod
    def from_model_outputs(
        cls,
        model_outputs: Mapping[str, Any],
        attention_mask: Optional[Any] = None,
    ) -> "SingleBatchOutput":
        """Build a batch from a Hugging Face style output mapping, skipping non-tensor entries."""
        outputs = {
            name: value
            for name, value in model_outputs.items()
            if isinstance(value, (torch.Tensor, np.ndarray))
        }
        return cls(outputs=outputs, attention_mask=attention_mask)

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def __len__(self) -> int:
        return int(next(iter(self.outputs.values())).shape[0])

    def select_output(self, precedence: OutputPrecedence) -> Tuple[str, torch.Tensor]:
        """Return the (name, tensor) pair the precedence resolves to."""
        name = select_output_name(self._names, precedence)
        return name, self.outputs[name]

    def select_and_pool_output(
        self,
        precedence: OutputPrecedence,
        pooling: Optional[Pooling] = None,
    ) -> PooledArray:
        """
        Select an output and reduce it to one vector per item.

        Parameters
        ----------
        precedence:
            Output keys to try, in order.
        pooling:
            Strategy applied across the sequence axis of a rank-3 output.
            Rank-2 outputs are already pooled and pass through unchanged.
            When ``None`` the selected output must already be rank 2.

        Returns
        -------
        PooledArray
            Newly allocated (items, dim) float32 array at storage offset 0.
        """
        validate_pooling(pooling)
        name, tensor = self.select_output(precedence)

        if tensor.dim() == 2:
            return PooledArray(tensor.clone(memory_format=torch.contiguous_format))

        if tensor.dim() != 3:
            raise PoolingError(
                f"Output '{name}' has rank {tensor.dim()}; expected (items, dim) "
                "or (items, seq_len, dim)."
            )
        if pooling is None:
            raise PoolingError(
                f"Output '{name}' is token-level; a pooling strategy is required "
                "unless the output is already shaped (items, dim)."
            )
        return PooledArray(pool_hidden_states(tensor, self.attention_mask, strategy=pooling))


__all__ = ["FlatView", "PooledArray", "SingleBatchOutput"]
