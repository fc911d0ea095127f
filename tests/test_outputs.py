"""Unit tests for output keys, precedence resolution, and batch pooling."""

from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pytest
import torch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT / "src"))

from embedding_output.errors import (
    BatchShapeError,
    LayoutViolationError,
    OutputSelectionError,
    PoolingError,
)
from embedding_output.outputs.batch import PooledArray, SingleBatchOutput
from embedding_output.outputs.keys import (
    TEXT_OUTPUT_PRECEDENCE,
    ByName,
    ByOrder,
    OnlyOne,
    OutputPrecedence,
    select_output_name,
)


# ---------------------------------------------------------------------------
# Precedence resolution


def test_select_falls_through_to_last_hidden_state() -> None:
    precedence = OutputPrecedence([OnlyOne(), ByName("text_embeds"), ByName("last_hidden_state")])
    assert select_output_name(["last_hidden_state"], precedence) == "last_hidden_state"


def test_select_only_one_ignores_name() -> None:
    precedence = OutputPrecedence([OnlyOne(), ByName("text_embeds")])
    assert select_output_name(["foo"], precedence) == "foo"


def test_select_prefers_earlier_key() -> None:
    names = ["last_hidden_state", "text_embeds"]
    assert select_output_name(names, TEXT_OUTPUT_PRECEDENCE) == "text_embeds"


def test_select_fails_without_match() -> None:
    precedence = OutputPrecedence([OnlyOne(), ByName("text_embeds")])
    with pytest.raises(OutputSelectionError) as excinfo:
        select_output_name(["foo", "bar"], precedence)
    assert "foo" in str(excinfo.value)


def test_selection_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        select_output_name(["a", "b"], OutputPrecedence([OnlyOne()]))


def test_select_by_order() -> None:
    precedence = OutputPrecedence([ByName("missing"), ByOrder(1)])
    assert select_output_name(["first", "second"], precedence) == "second"
    with pytest.raises(OutputSelectionError):
        select_output_name(["first"], OutputPrecedence([ByOrder(1)]))


def test_default_text_precedence_skips_token_embeddings() -> None:
    with pytest.raises(OutputSelectionError):
        select_output_name(["token_embeddings", "pooler_output"], TEXT_OUTPUT_PRECEDENCE)


def test_precedence_rejects_empty() -> None:
    with pytest.raises(ValueError):
        OutputPrecedence([])


def test_precedence_coerce_accepts_names() -> None:
    precedence = OutputPrecedence.coerce([OnlyOne(), "sentence_embedding"])
    assert precedence.keys == (OnlyOne(), ByName("sentence_embedding"))
    assert OutputPrecedence.coerce(precedence) is precedence
    with pytest.raises(TypeError):
        OutputPrecedence.coerce("sentence_embedding")


def test_by_order_rejects_negative_index() -> None:
    with pytest.raises(ValueError):
        ByOrder(-1)


# ---------------------------------------------------------------------------
# SingleBatchOutput


def test_batch_rejects_inconsistent_item_counts() -> None:
    with pytest.raises(BatchShapeError):
        SingleBatchOutput(outputs={"a": torch.zeros(2, 3), "b": torch.zeros(3, 3)})


def test_batch_rejects_mismatched_mask() -> None:
    with pytest.raises(BatchShapeError):
        SingleBatchOutput(outputs={"a": torch.zeros(2, 4, 3)}, attention_mask=torch.ones(3, 4))


def test_batch_accepts_negative_stride_views() -> None:
    raw = np.array([[1.0, 0.0], [0.0, 1.0]])
    reversed_rows = raw[::-1]
    batch = SingleBatchOutput(outputs={"x": reversed_rows, "y": np.flip(raw, axis=1)})

    pooled = batch.select_and_pool_output(OutputPrecedence([ByName("x")]))

    assert np.allclose(pooled.tensor.numpy(), [[0.0, 1.0], [1.0, 0.0]])
    assert np.array_equal(raw, [[1.0, 0.0], [0.0, 1.0]])


def test_batch_does_not_mutate_inputs() -> None:
    raw = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float64)
    batch = SingleBatchOutput(outputs={"sentence_embedding": raw})
    pooled = batch.select_and_pool_output(OutputPrecedence([OnlyOne()]))

    assert raw.dtype == np.float64
    assert pooled.tensor.dtype == torch.float32
    pooled.tensor.mul_(0)
    assert np.allclose(raw, [[1.0, 2.0], [3.0, 4.0]])


def test_from_model_outputs_skips_non_tensors() -> None:
    batch = SingleBatchOutput.from_model_outputs(
        {"last_hidden_state": torch.ones(2, 3, 4), "past_key_values": None, "loss": 1.5},
        attention_mask=torch.ones(2, 3),
    )
    assert batch.names == ("last_hidden_state",)
    assert len(batch) == 2


def test_rank2_output_passes_through_with_pooling() -> None:
    embeds = torch.arange(6, dtype=torch.float32).reshape(2, 3)
    batch = SingleBatchOutput(outputs={"sentence_embedding": embeds})

    pooled = batch.select_and_pool_output(TEXT_OUTPUT_PRECEDENCE, "mean")

    assert pooled.dim() == (2, 3)
    assert torch.allclose(pooled.tensor, embeds)
    assert pooled.tensor.data_ptr() != embeds.data_ptr()


def test_rank3_output_requires_pooling() -> None:
    batch = SingleBatchOutput(outputs={"last_hidden_state": torch.randn(2, 4, 3)})
    with pytest.raises(PoolingError):
        batch.select_and_pool_output(TEXT_OUTPUT_PRECEDENCE, None)


def test_rank4_output_is_pooling_incompatible() -> None:
    batch = SingleBatchOutput(outputs={"last_hidden_state": torch.randn(2, 4, 3, 2)})
    with pytest.raises(PoolingError):
        batch.select_and_pool_output(TEXT_OUTPUT_PRECEDENCE, "mean")


def test_mean_pooling_uses_attention_mask() -> None:
    hidden = torch.tensor([[[2.0, 0.0], [4.0, 2.0], [6.0, 4.0]]])
    batch = SingleBatchOutput(
        outputs={"last_hidden_state": hidden},
        attention_mask=torch.tensor([[1, 1, 0]]),
    )

    pooled = batch.select_and_pool_output(TEXT_OUTPUT_PRECEDENCE, "mean")
    assert torch.allclose(pooled.tensor, torch.tensor([[3.0, 1.0]]))


def test_cls_pooling_returns_owned_contiguous_rows() -> None:
    hidden = torch.arange(24, dtype=torch.float32).reshape(2, 3, 4)
    batch = SingleBatchOutput(outputs={"last_hidden_state": hidden})

    pooled = batch.select_and_pool_output(TEXT_OUTPUT_PRECEDENCE, "cls")
    view = pooled.raw_view()

    assert pooled.dim() == (2, 4)
    assert view.offset == 0
    assert np.allclose(view.data, np.concatenate([hidden[0, 0].numpy(), hidden[1, 0].numpy()]))


# ---------------------------------------------------------------------------
# PooledArray


def test_pooled_array_rows_in_order() -> None:
    array = PooledArray(torch.tensor([[1.0, 0.0], [0.0, 2.0]]))
    rows = list(array.rows())
    assert len(rows) == 2
    assert np.allclose(rows[1], [0.0, 2.0])


def test_pooled_array_raw_view_rejects_non_contiguous() -> None:
    transposed = torch.arange(6, dtype=torch.float32).reshape(3, 2).t()
    with pytest.raises(LayoutViolationError):
        PooledArray(transposed).raw_view()


def test_pooled_array_raw_view_reports_offset() -> None:
    storage = torch.arange(8, dtype=torch.float32).reshape(4, 2)
    view = PooledArray(storage[1:3]).raw_view()
    assert view.offset == 2
    assert np.allclose(view.data, [2.0, 3.0, 4.0, 5.0])


def test_pooled_array_requires_rank2() -> None:
    with pytest.raises(PoolingError):
        PooledArray(torch.zeros(2, 3, 4))
