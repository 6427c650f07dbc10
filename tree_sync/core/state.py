"""
Applying change events to a local state tree.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from .store import EventKind
from .subscription import ChangeEvent

__all__ = [
    "apply_event",
]


def apply_event(state: Mapping[str, Any] | None, event: ChangeEvent) -> dict:
    """
    Return a copy of state with the event applied at its path. Removal
    events and `None` values delete the path, pruning parents left empty.
    """
    result = copy.deepcopy(dict(state or {}))

    if event.event_kind is EventKind.CHILD_REMOVED or event.value is None:
        return _delete_in(result, event.path)

    if not event.path:
        value = copy.deepcopy(event.value)
        return value if isinstance(value, dict) else {}

    node = result
    for key in event.path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = node[key] = {}
        node = child

    node[event.path[-1]] = copy.deepcopy(event.value)
    return result


def _delete_in(node: dict, path: tuple[str, ...]) -> dict:
    if not path:
        return {}

    key, rest = path[0], path[1:]
    if key not in node:
        return node

    if rest:
        child = node[key]
        if not isinstance(child, dict):
            return node

        child = _delete_in(child, rest)
        if child:
            node[key] = child
        else:
            del node[key]
    else:
        del node[key]

    return node
