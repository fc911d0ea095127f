"""Named model outputs and the rules for selecting among them."""

from .batch import FlatView, PooledArray, SingleBatchOutput
from .keys import (
    IMAGE_OUTPUT_PRECEDENCE,
    TEXT_OUTPUT_PRECEDENCE,
    ByName,
    ByOrder,
    OnlyOne,
    OutputKey,
    OutputPrecedence,
    select_output_name,
)

__all__ = [
    "FlatView",
    "PooledArray",
    "SingleBatchOutput",
    "IMAGE_OUTPUT_PRECEDENCE",
    "TEXT_OUTPUT_PRECEDENCE",
    "ByName",
    "ByOrder",
    "OnlyOne",
    "OutputKey",
    "OutputPrecedence",
    "select_output_name",
]
