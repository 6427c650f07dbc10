"""
Discriminated model of values received from the store.

The store only holds scalars and keyed containers; sequences are represented
as containers keyed by index. Consumers branch on {obj}`Leaf` vs
{obj}`Container` rather than probing raw value shapes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .utils import is_sequence

__all__ = [
    "Leaf",
    "Container",
    "Value",
    "from_raw",
    "to_raw",
    "is_container",
]


@dataclass(frozen=True, slots=True)
class Leaf:
    """
    Scalar value, including `None` for a missing value.
    """

    value: Any


@dataclass(frozen=True, slots=True)
class Container:
    """
    Ordered mapping of child keys to values.
    """

    items: Mapping[str, Value]

    def __post_init__(self):
        object.__setattr__(self, "items", MappingProxyType(dict(self.items)))

    def __getitem__(self, key: str) -> Value:
        return self.items[key]

    def __len__(self) -> int:
        return len(self.items)

    def keys(self):
        return self.items.keys()


type Value = Leaf | Container


def from_raw(raw: Any) -> Value:
    """
    Wrap a raw decoded value.
    """
    if isinstance(raw, (Leaf, Container)):
        return raw

    if isinstance(raw, Mapping):
        return Container({str(k): from_raw(v) for k, v in raw.items()})

    if is_sequence(raw):
        return Container({str(i): from_raw(v) for i, v in enumerate(raw)})

    return Leaf(raw)


def to_raw(value: Value) -> Any:
    """
    Unwrap a value into plain dicts and scalars.
    """
    if isinstance(value, Container):
        return {k: to_raw(v) for k, v in value.items.items()}

    assert isinstance(value, Leaf)
    return value.value


def is_container(raw: Any) -> bool:
    """
    Check whether a raw value would be modeled as a {obj}`Container`.
    """
    return isinstance(raw, (Mapping, Container)) or is_sequence(raw)
