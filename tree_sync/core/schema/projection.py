"""
Projection of values through a schema.
"""

from __future__ import annotations

from typing import Any

from ..codec import decode_key
from ..value import Container, Value, from_raw, is_container, to_raw
from .analyzer import get_map_analysis

__all__ = [
    "project_value",
    "filter_by_map",
]


def project_value(value: Value, schema: Any) -> Value:
    """
    Keep only the parts of `value` the schema is interested in.

    Keys of `value` are compared in their decoded form, so this can be
    applied to values as received from the store. Leaves and schemas
    without filtering return `value` itself.
    """
    if not isinstance(value, Container):
        return value

    analysis = get_map_analysis(schema)

    if analysis is None or analysis.unfiltered:
        return value

    items: dict[str, Value] = {}

    for key, child in value.items.items():
        name = decode_key(key)

        if name in analysis.children:
            items[key] = project_value(child, analysis.children[name])
        elif analysis.blacklist:
            # blacklist takes precedence over the whitelist
            if name not in analysis.blacklist:
                items[key] = child
        elif analysis.has_asterisk or name in analysis.whitelist:
            items[key] = child

    return Container(items)


def filter_by_map(value: Any, schema: Any) -> Any:
    """
    Like {obj}`project_value`, but for raw values. Scalars are returned
    as is.
    """
    if not is_container(value):
        return value
    return to_raw(project_value(from_raw(value), schema))
