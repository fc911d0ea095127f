"""Registry of embedding model presets.

Each entry records how a model's raw outputs should be turned into embeddings:
which named output to prefer and which pooling strategy the checkpoint was
trained with. Loader code stays declarative; ``load_transformer`` builds the
matching aggregator from a registry key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Union

from .embeddings.pooling import Pooling
from .outputs.keys import (
    IMAGE_OUTPUT_PRECEDENCE,
    TEXT_OUTPUT_PRECEDENCE,
    OutputPrecedence,
)
from .transformers import (
    FlatTransformer,
    StructuredTransformer,
    build_flat_transformer,
    build_structured_transformer,
)

ModelKind = Literal["text", "image"]
ModelKey = Literal["minilm", "mpnet", "labse", "bge-small", "e5-small", "clip-vit-b32"]


@dataclass(frozen=True)
class ModelSpec:
    """Metadata describing how to post-process one model's outputs."""

    name: str
    hf_id: str
    kind: ModelKind
    pooling: Optional[Pooling] = None
    precedence: Optional[OutputPrecedence] = None

    def resolved_precedence(self) -> OutputPrecedence:
        if self.precedence is not None:
            return self.precedence
        return IMAGE_OUTPUT_PRECEDENCE if self.kind == "image" else TEXT_OUTPUT_PRECEDENCE


REGISTRY: dict[ModelKey, ModelSpec] = {
    "minilm": ModelSpec(
        name="minilm",
        hf_id="sentence-transformers/all-MiniLM-L6-v2",
        kind="text",
        pooling="mean",
    ),
    "mpnet": ModelSpec(
        name="mpnet",
        hf_id="sentence-transformers/all-mpnet-base-v2",
        kind="text",
        pooling="mean",
    ),
    "labse": ModelSpec(
        name="labse",
        hf_id="sentence-transformers/LaBSE",
        kind="text",
        pooling="cls",
    ),
    "bge-small": ModelSpec(
        name="bge-small",
        hf_id="BAAI/bge-small-en-v1.5",
        kind="text",
        pooling="cls",
    ),
    "e5-small": ModelSpec(
        name="e5-small",
        hf_id="intfloat/multilingual-e5-small",
        kind="text",
        pooling="mean",
    ),
    "clip-vit-b32": ModelSpec(
        name="clip-vit-b32",
        hf_id="openai/clip-vit-base-patch32",
        kind="image",
        pooling="cls",
    ),
}


def get_spec(key: ModelKey) -> ModelSpec:
    """Return the ModelSpec registered under ``key``."""
    try:
        return REGISTRY[key]
    except KeyError as exc:
        raise ValueError(f"Unknown model spec '{key}'. Available: {list(REGISTRY)}") from exc


def load_transformer(
    spec_key: ModelKey,
    flat: bool = False,
) -> Union[StructuredTransformer, FlatTransformer]:
    """Build the aggregator configured for a registry entry."""
    spec = get_spec(spec_key)
    if flat:
        return build_flat_transformer(spec.resolved_precedence(), spec.pooling)
    return build_structured_transformer(spec.resolved_precedence(), spec.pooling)


def list_available_models() -> tuple[str, ...]:
    """Return the registry keys for all configured models."""
    return tuple(sorted(REGISTRY))


__all__ = [
    "ModelKind",
    "ModelKey",
    "ModelSpec",
    "REGISTRY",
    "get_spec",
    "load_transformer",
    "list_available_models",
]
