"""
Schema nodes describing which parts of the store to watch.

A raw schema ("map") is written with plain Python values:

- `True`: watch the full value
- a mapping: watch the listed fields, recursing into nested mappings
- `"*"`: watch any child
- `None`: watch all children, no filtering

Within a mapping, a field is excluded when its value is falsy or its key
starts with {obj}`EXCLUDE_PREFIX`, and the key `"*"` marks that any child
is of interest. {obj}`parse_schema` compiles a raw schema into immutable
nodes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ..utils import EXCLUDE_PREFIX, WILDCARD

__all__ = [
    "LeafSchema",
    "NestedSchema",
    "WildcardSchema",
    "AbsentSchema",
    "ExcludeSchema",
    "SchemaNode",
    "LEAF",
    "WILDCARD_NODE",
    "ABSENT",
    "EXCLUDE",
    "parse_schema",
]


@dataclass(frozen=True, slots=True)
class LeafSchema:
    """Watch the full value at this path."""

    def __repr__(self) -> str:
        return "LEAF"


@dataclass(frozen=True, slots=True)
class WildcardSchema:
    """Watch any child at this path."""

    def __repr__(self) -> str:
        return "WILDCARD"


@dataclass(frozen=True, slots=True)
class AbsentSchema:
    """No schema given: watch all children without filtering."""

    def __repr__(self) -> str:
        return "ABSENT"


@dataclass(frozen=True, slots=True)
class ExcludeSchema:
    """Field excluded from its parent's interest."""

    def __repr__(self) -> str:
        return "EXCLUDE"


@dataclass(frozen=True, slots=True)
class NestedSchema:
    """
    Mapping of field names to child schema nodes.
    """

    children: Mapping[str, SchemaNode]

    def __post_init__(self):
        object.__setattr__(
            self, "children", MappingProxyType(dict(self.children))
        )

    def get(self, field: str) -> SchemaNode:
        return self.children.get(field, ABSENT)

    def __repr__(self) -> str:
        return f"NestedSchema({dict(self.children)})"


type SchemaNode = (
    LeafSchema | NestedSchema | WildcardSchema | AbsentSchema | ExcludeSchema
)

LEAF = LeafSchema()
WILDCARD_NODE = WildcardSchema()
ABSENT = AbsentSchema()
EXCLUDE = ExcludeSchema()

_NODE_TYPES = (
    LeafSchema,
    NestedSchema,
    WildcardSchema,
    AbsentSchema,
    ExcludeSchema,
)


def parse_schema(raw: Any) -> SchemaNode:
    """
    Compile a raw schema into a schema node.

    Values of unsupported type compile to {obj}`ABSENT`, so that a malformed
    schema results in watching everything rather than silently dropping
    data.
    """
    if isinstance(raw, _NODE_TYPES):
        return raw

    if raw is True:
        return LEAF

    if raw is False:
        return EXCLUDE

    if raw == WILDCARD:
        return WILDCARD_NODE

    if isinstance(raw, Mapping):
        return _parse_mapping(raw)

    return ABSENT


def _parse_mapping(raw: Mapping) -> NestedSchema:
    children: dict[str, SchemaNode] = {}

    for key, value in raw.items():
        key = str(key)

        if key == WILDCARD:
            children[key] = WILDCARD_NODE
        elif key.startswith(EXCLUDE_PREFIX):
            children[key[len(EXCLUDE_PREFIX) :]] = EXCLUDE
        else:
            children[key] = _parse_child(value)

    return NestedSchema(children)


def _parse_child(value: Any) -> SchemaNode:
    """
    Compile the value of a field within a mapping.
    """
    if isinstance(value, _NODE_TYPES):
        return value

    if isinstance(value, Mapping):
        return _parse_mapping(value)

    if value == WILDCARD:
        return WILDCARD_NODE

    return LEAF if value else EXCLUDE
