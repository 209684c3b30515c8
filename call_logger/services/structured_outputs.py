"""
Structured Output Flattening.

Vapi delivers the post-call analysis fields either as a list of
``{name, result}`` entries or as an object keyed by the structured
output's id. Both shapes are classified once here and flattened into a
single ``StructuredOutputs`` collection; everything downstream only
ever sees that collection.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union


@dataclass(frozen=True)
class StructuredOutput:
    """One provider-extracted field."""

    name: Optional[str]
    result: Any = None


@dataclass(frozen=True)
class SequenceShape:
    entries: Sequence[Any]


@dataclass(frozen=True)
class MappingShape:
    entries: Mapping[Any, Any]


RawShape = Union[SequenceShape, MappingShape]


def classify(raw: Any) -> Optional[RawShape]:
    """Tag the raw payload with its shape, or None if it has neither."""
    if isinstance(raw, Mapping):
        return MappingShape(raw)
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes, bytearray)):
        return SequenceShape(raw)
    return None


def _to_entry(item: Any) -> Optional[StructuredOutput]:
    if not isinstance(item, Mapping):
        return None
    name = item.get("name")
    return StructuredOutput(
        name=name if isinstance(name, str) else None,
        result=item.get("result"),
    )


class StructuredOutputs:
    """Ordered, read-only collection of structured outputs with name lookup."""

    def __init__(self, entries: Sequence[StructuredOutput] = ()) -> None:
        self._entries = tuple(entries)

    def __iter__(self) -> Iterator[StructuredOutput]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"StructuredOutputs({[e.name for e in self._entries]!r})"

    def get(self, name: str) -> Any:
        """
        Result of the first entry whose name matches ``name`` ignoring case.

        Returns None when nothing matches.
        """
        wanted = name.lower()
        for entry in self._entries:
            if entry.name is not None and entry.name.lower() == wanted:
                return entry.result
        return None

    def as_dict(self) -> dict[str, Any]:
        """First result per name, keyed by the name as delivered."""
        out: dict[str, Any] = {}
        for entry in self._entries:
            if entry.name is not None and entry.name not in out:
                out[entry.name] = entry.result
        return out


def flatten(raw: Any) -> StructuredOutputs:
    """
    Normalize the raw ``artifact.structuredOutputs`` value.

    Never raises: a missing or unrecognised payload yields an empty
    collection and entries that are not objects are dropped.
    """
    shape = classify(raw)
    if shape is None:
        return StructuredOutputs()

    if isinstance(shape, MappingShape):
        items = list(shape.entries.values())
    else:
        items = list(shape.entries)

    entries = [entry for entry in (_to_entry(item) for item in items) if entry is not None]
    return StructuredOutputs(entries)
