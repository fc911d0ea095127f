"""Post-processing of raw model outputs into finished embedding vectors."""

from .embeddings import Embedding, Pooling, normalize, normalize_rows
from .errors import (
    BatchShapeError,
    DimensionMismatchError,
    FatalOutputError,
    LayoutViolationError,
    OutputError,
    OutputSelectionError,
    PoolingError,
)
from .outputs import (
    IMAGE_OUTPUT_PRECEDENCE,
    TEXT_OUTPUT_PRECEDENCE,
    ByName,
    ByOrder,
    OnlyOne,
    OutputPrecedence,
    PooledArray,
    SingleBatchOutput,
)
from .registry import ModelSpec, get_spec, list_available_models, load_transformer
from .transformers import (
    FlatEmbeddings,
    FlatTransformer,
    StructuredTransformer,
    build_flat_transformer,
    build_structured_transformer,
)

__all__ = [
    "Embedding",
    "Pooling",
    "normalize",
    "normalize_rows",
    "BatchShapeError",
    "DimensionMismatchError",
    "FatalOutputError",
    "LayoutViolationError",
    "OutputError",
    "OutputSelectionError",
    "PoolingError",
    "IMAGE_OUTPUT_PRECEDENCE",
    "TEXT_OUTPUT_PRECEDENCE",
    "ByName",
    "ByOrder",
    "OnlyOne",
    "OutputPrecedence",
    "PooledArray",
    "SingleBatchOutput",
    "ModelSpec",
    "get_spec",
    "list_available_models",
    "load_transformer",
    "FlatEmbeddings",
    "FlatTransformer",
    "StructuredTransformer",
    "build_flat_transformer",
    "build_structured_transformer",
]
