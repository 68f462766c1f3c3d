"""Tagged representation of a decoded telemetry document.

Snapshots arrive as decoded JSON. They are converted once, at the ingestion
boundary, into a closed set of node shapes so the materializer can dispatch on
:class:`MappingNode`, :class:`SequenceNode` and :class:`ScalarNode` instead of
probing arbitrary Python objects.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pymaxxi.state.objects import ScalarType

Scalar = bool | int | float | str | None


@dataclass(frozen=True, slots=True)
class ScalarNode:
    value: Scalar

    @property
    def scalar_type(self) -> ScalarType:
        return ScalarType.of(self.value)


@dataclass(frozen=True, slots=True)
class SequenceNode:
    items: tuple[Node, ...]


@dataclass(frozen=True, slots=True)
class MappingNode:
    entries: tuple[tuple[str, Node], ...]


Node = ScalarNode | SequenceNode | MappingNode


def to_node(value: Any) -> Node:
    """Convert decoded JSON into a :data:`Node` tree.

    Mapping keys are stringified and keep their insertion order. Values that
    are neither containers nor JSON scalars are rendered with ``str()``.
    """
    if isinstance(value, Mapping):
        return MappingNode(entries=tuple((str(key), to_node(item)) for key, item in value.items()))
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return SequenceNode(items=tuple(to_node(item) for item in value))
    if value is None or isinstance(value, (bool, int, float, str)):
        return ScalarNode(value=value)
    return ScalarNode(value=str(value))
