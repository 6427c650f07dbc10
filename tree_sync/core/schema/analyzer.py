"""
Analysis of a schema node into listen directives.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ..exceptions import SchemaConflictError
from ..utils import WILDCARD
from .types import (
    AbsentSchema,
    ExcludeSchema,
    LeafSchema,
    NestedSchema,
    SchemaNode,
    WildcardSchema,
    parse_schema,
)

__all__ = [
    "MapAnalysis",
    "get_map_analysis",
    "compile_watch",
]


@dataclass(frozen=True, kw_only=True)
class MapAnalysis:
    """
    Directives derived from the immediate children of a schema mapping.
    """

    objects: tuple[str, ...] = ()
    """Fields with a nested schema, to be recursed into"""

    whitelist: tuple[str, ...] = ()
    """Fields whose full value is of interest"""

    blacklist: tuple[str, ...] = ()
    """Fields excluded from interest"""

    has_asterisk: bool = False
    """Whether the wildcard marker was present"""

    count: int = 0
    """Total number of directives examined"""

    children: Mapping[str, SchemaNode] = field(
        default_factory=lambda: MappingProxyType({})
    )
    """Nested schema of each field in `objects`"""

    @property
    def unfiltered(self) -> bool:
        """
        Whether the node places no restriction on its children.
        """
        return self.count == 0 or (self.has_asterisk and self.count == 1)


def get_map_analysis(
    schema: Any, *, strict: bool = False, path: str = ""
) -> MapAnalysis | None:
    """
    Classify the immediate children of a schema mapping.

    Returns `None` if the schema is not a mapping, i.e. a leaf, wildcard,
    missing or malformed schema. Callers then watch everything at that path
    without recursing.

    A field which is both included and excluded can't occur, but a node may
    whitelist some fields and blacklist others. In that case the blacklist
    takes precedence: the node watches all its children except the
    blacklisted ones, and its whitelist is not used. Pass `strict=True` to
    raise {obj}`SchemaConflictError` instead.

    :param schema: Raw schema or compiled schema node
    :param strict: Raise on whitelist/blacklist conflict
    :param path: Path of the node, used in error messages
    """
    node = parse_schema(schema)

    if not isinstance(node, NestedSchema):
        return None

    objects: list[str] = []
    whitelist: list[str] = []
    blacklist: list[str] = []
    children: dict[str, SchemaNode] = {}
    has_asterisk = False
    count = 0

    for name, child in node.children.items():
        count += 1

        if name == WILDCARD:
            has_asterisk = True
        elif isinstance(
            child, (NestedSchema, WildcardSchema, AbsentSchema)
        ):
            objects.append(name)
            children[name] = child
        elif isinstance(child, ExcludeSchema):
            blacklist.append(name)
        else:
            assert isinstance(child, LeafSchema)
            whitelist.append(name)

    if strict and whitelist and blacklist:
        raise SchemaConflictError(tuple(whitelist), tuple(blacklist), path)

    return MapAnalysis(
        objects=tuple(objects),
        whitelist=tuple(whitelist),
        blacklist=tuple(blacklist),
        has_asterisk=has_asterisk,
        count=count,
        children=MappingProxyType(children),
    )


compile_watch = get_map_analysis
