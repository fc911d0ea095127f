"""Output keys and precedence rules for choosing among named model outputs.

A model run can expose several named tensors (``last_hidden_state``,
``sentence_embedding``, ``text_embeds`` ...). An ``OutputPrecedence`` lists the
keys to try, in order, and the first key that matches the batch wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence, Tuple, Union

from ..errors import OutputSelectionError


@dataclass(frozen=True)
class OnlyOne:
    """Matches when the batch exposes exactly one output, whatever its name."""

    def match(self, names: Sequence[str]) -> str | None:
        return names[0] if len(names) == 1 else None

    def __str__(self) -> str:
        return "OnlyOne"


@dataclass(frozen=True)
class ByName:
    """Matches the output with this exact name."""

    name: str

    def match(self, names: Sequence[str]) -> str | None:
        return self.name if self.name in names else None

    def __str__(self) -> str:
        return f"ByName({self.name!r})"


@dataclass(frozen=True)
class ByOrder:
    """Matches the output at ``index`` in the batch's output order."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("ByOrder index must be non-negative.")

    def match(self, names: Sequence[str]) -> str | None:
        return names[self.index] if self.index < len(names) else None

    def __str__(self) -> str:
        return f"ByOrder({self.index})"


OutputKey = Union[OnlyOne, ByName, ByOrder]


class OutputPrecedence:
    """Immutable, non-empty ordered sequence of output keys."""

    __slots__ = ("_keys",)

    def __init__(self, keys: Iterable[OutputKey]) -> None:
        resolved: Tuple[OutputKey, ...] = tuple(keys)
        if not resolved:
            raise ValueError("Output precedence must contain at least one key.")
        for key in resolved:
            if not isinstance(key, (OnlyOne, ByName, ByOrder)):
                raise TypeError(f"Unsupported output key: {key!r}")
        self._keys = resolved

    @classmethod
    def coerce(cls, value: "OutputPrecedence | Iterable[OutputKey | str]") -> "OutputPrecedence":
        """Accept an existing precedence, or a list of keys and bare output names."""
        if isinstance(value, OutputPrecedence):
            return value
        if isinstance(value, str):
            raise TypeError("Pass a list of output names, not a single string.")
        return cls(ByName(item) if isinstance(item, str) else item for item in value)

    @property
    def keys(self) -> Tuple[OutputKey, ...]:
        return self._keys

    def __iter__(self) -> Iterator[OutputKey]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutputPrecedence):
            return NotImplemented
        return self._keys == other._keys

    def __hash__(self) -> int:
        return hash(self._keys)

    def __repr__(self) -> str:
        return f"OutputPrecedence([{', '.join(str(key) for key in self._keys)}])"


def select_output_name(names: Sequence[str], precedence: OutputPrecedence) -> str:
    """
    Pick the output name the precedence resolves to.

    Parameters
    ----------
    names:
        Output names exposed by the batch, in the batch's own order.
    precedence:
        Keys evaluated left to right; the first match wins.

    Returns
    -------
    str
        The selected output name.

    Raises
    ------
    OutputSelectionError
        When no key matches any of ``names``.
    """
    names = list(names)
    for key in precedence:
        selected = key.match(names)
        if selected is not None:
            return selected
    raise OutputSelectionError(
        f"No suitable output found for precedence {precedence!r}. Available outputs: {names}"
    )


# Defaults favour model-specific outputs over generic ones. ``token_embeddings``
# is left out on purpose; it is only selected when asked for by name.
TEXT_OUTPUT_PRECEDENCE = OutputPrecedence(
    [
        OnlyOne(),
        ByName("text_embeds"),
        ByName("last_hidden_state"),
        ByName("sentence_embedding"),
    ]
)

IMAGE_OUTPUT_PRECEDENCE = OutputPrecedence(
    [
        OnlyOne(),
        ByName("image_embeds"),
        ByName("last_hidden_state"),
    ]
)


__all__ = [
    "OnlyOne",
    "ByName",
    "ByOrder",
    "OutputKey",
    "OutputPrecedence",
    "select_output_name",
    "TEXT_OUTPUT_PRECEDENCE",
    "IMAGE_OUTPUT_PRECEDENCE",
]
