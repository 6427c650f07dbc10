"""
In-process hierarchical store with change notifications.

Follows the semantics of the remote store it stands in for:

- writing `None` removes a value, and containers left empty are removed
- sequences are stored as mappings keyed by index
- children are ordered by key, with integer keys first in numeric order
- registering a `value` listener immediately delivers the current value,
  and registering a `child_added` listener delivers each existing child
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Self

from ..codec import RESERVED_CHARS
from ..exceptions import InvalidKeyError
from ..utils import is_sequence, split_path
from .reference import BaseReference, EventKind, ListenerHandle, Snapshot

__all__ = [
    "MemoryStore",
    "MemoryReference",
]


@dataclass(eq=False)
class _Listener:
    event_kind: EventKind
    handler: Callable[[Snapshot], Any]
    once: bool
    handle: ListenerHandle | None = None


class MemoryStore:
    """
    Tree of values held in memory. Obtain references to locations with
    {obj}`MemoryStore.ref`.
    """

    _root: Any
    """Current tree; replaced, never mutated, on each write"""

    _listeners: dict[tuple[str, ...], list[_Listener]]
    """Registered listeners by path"""

    _lock: threading.RLock

    def __init__(self, data: Any = None):
        self._lock = threading.RLock()
        self._listeners = dict()
        self._root = _normalize(data)

    def __repr__(self) -> str:
        return f"MemoryStore({self._root!r})"

    def ref(self, path: str = "") -> MemoryReference:
        """
        Get reference to the given path, or the root if not given.
        """
        return MemoryReference(self, split_path(path))

    @property
    def data(self) -> Any:
        """
        Copy of the whole tree.
        """
        with self._lock:
            return copy.deepcopy(self._root)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(listeners) for listeners in self._listeners.values())

    def close(self):
        """
        Remove all listeners.
        """
        with self._lock:
            self._listeners.clear()

    def _get(self, path: tuple[str, ...]) -> Any:
        with self._lock:
            return copy.deepcopy(_get_in(self._root, path))

    def _write(self, changes: Iterable[tuple[tuple[str, ...], Any]]):
        """
        Apply changes as a single atomic write, then notify listeners.
        """
        changes = [(path, _normalize(value)) for path, value in changes]

        for path, value in changes:
            for key in path:
                _check_key(key)
            _check_keys(value)

        with self._lock:
            old_root = self._root
            new_root = old_root

            for path, value in changes:
                new_root = _set_in(new_root, path, value)

            self._root = new_root
            self._notify(old_root, new_root)

    def _add_listener(
        self,
        path: tuple[str, ...],
        event_kind: EventKind,
        handler: Callable[[Snapshot], Any],
        once: bool,
    ) -> ListenerHandle:
        assert (
            event_kind is not EventKind.CHILDREN
        ), "Child events must be registered individually"

        listener = _Listener(event_kind, handler, once)

        def cancel():
            with self._lock:
                listeners = self._listeners.get(path)
                if listeners and listener in listeners:
                    listeners.remove(listener)
                    if not listeners:
                        del self._listeners[path]

        handle = ListenerHandle(cancel)
        listener.handle = handle

        with self._lock:
            self._listeners.setdefault(path, []).append(listener)

            # deliver initial state
            current = _get_in(self._root, path)
            try:
                if event_kind is EventKind.VALUE:
                    self._deliver_once_or_more(path, listener, path, current)
                elif event_kind is EventKind.CHILD_ADDED and isinstance(
                    current, dict
                ):
                    for key in _sorted_keys(current):
                        if not handle.active:
                            break
                        self._deliver_once_or_more(
                            path, listener, path + (key,), current[key]
                        )
            except Exception:
                handle.cancel()
                raise

        return handle

    def _notify(self, old_root: Any, new_root: Any):
        # collect first so listeners added during delivery are not notified
        pending: list[tuple[tuple[str, ...], _Listener, Any, Any]] = []

        for path, listeners in self._listeners.items():
            old_value = _get_in(old_root, path)
            new_value = _get_in(new_root, path)

            if old_value == new_value:
                continue

            for listener in listeners:
                pending.append((path, listener, old_value, new_value))

        for path, listener, old_value, new_value in pending:
            if listener.event_kind is EventKind.VALUE:
                self._deliver_once_or_more(path, listener, path, new_value)
                continue

            old_children = old_value if isinstance(old_value, dict) else {}
            new_children = new_value if isinstance(new_value, dict) else {}

            if listener.event_kind is EventKind.CHILD_REMOVED:
                events = [
                    (k, old_children[k])
                    for k in _sorted_keys(old_children)
                    if k not in new_children
                ]
            elif listener.event_kind is EventKind.CHILD_ADDED:
                events = [
                    (k, new_children[k])
                    for k in _sorted_keys(new_children)
                    if k not in old_children
                ]
            else:
                events = [
                    (k, new_children[k])
                    for k in _sorted_keys(new_children)
                    if k in old_children and old_children[k] != new_children[k]
                ]

            for key, value in events:
                if not self._deliver_once_or_more(
                    path, listener, path + (key,), value
                ):
                    break

    def _deliver_once_or_more(
        self,
        path: tuple[str, ...],
        listener: _Listener,
        value_path: tuple[str, ...],
        value: Any,
    ) -> bool:
        """
        Deliver to listener if it's still registered. Returns whether it
        remains registered afterward.
        """
        listeners = self._listeners.get(path)
        if not listeners or listener not in listeners:
            return False

        if listener.once:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[path]
            if listener.handle is not None:
                # no longer registered; make handle reflect it
                listener.handle._cancel = None

        listener.handler(
            Snapshot(MemoryReference(self, value_path), copy.deepcopy(value))
        )
        return not listener.once


class MemoryReference(BaseReference):
    """
    Location within a {obj}`MemoryStore`.
    """

    _store: MemoryStore

    def __init__(self, store: MemoryStore, path: tuple[str, ...] = ()):
        super().__init__(path)
        self._store = store

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def _store_id(self) -> int:
        return id(self._store)

    def _create(self, path: tuple[str, ...]) -> Self:
        return type(self)(self._store, path)

    def on(
        self, event_kind: EventKind, handler: Callable[[Snapshot], Any]
    ) -> ListenerHandle:
        return self._store._add_listener(self.path, event_kind, handler, False)

    def once(
        self, event_kind: EventKind, handler: Callable[[Snapshot], Any]
    ) -> ListenerHandle:
        return self._store._add_listener(self.path, event_kind, handler, True)

    def get(self) -> Any:
        return self._store._get(self.path)

    def set(self, value: Any):
        self._store._write([(self.path, value)])

    def update(self, values: Mapping[str, Any]):
        self._store._write(
            [(self.path + split_path(k), v) for k, v in values.items()]
        )


def _normalize(value: Any) -> Any:
    """
    Convert to the stored form: plain dicts without empty containers or
    `None` values, sequences keyed by index.
    """
    if isinstance(value, Mapping):
        items = value.items()
    elif is_sequence(value):
        items = enumerate(value)
    else:
        return value

    result = {}
    for key, child in items:
        child = _normalize(child)
        if child is not None:
            result[str(key)] = child

    return result or None


def _get_in(root: Any, path: tuple[str, ...]) -> Any:
    node = root
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _set_in(node: Any, path: tuple[str, ...], value: Any) -> Any:
    """
    Return a copy of node with value set at path; nodes along path are
    copied, all others shared.
    """
    if not path:
        return value

    key, rest = path[0], path[1:]
    result = dict(node) if isinstance(node, dict) else {}
    child = _set_in(result.get(key), rest, value)

    if child is None:
        result.pop(key, None)
    else:
        result[key] = child

    return result or None


def _sorted_keys(children: dict[str, Any]) -> list[str]:
    def order(key: str) -> tuple[int, int, str]:
        if key.lstrip("-").isdigit() and -(2**31) <= int(key) < 2**31:
            return (0, int(key), "")
        return (1, 0, key)

    return sorted(children, key=order)


def _check_key(key: str):
    if not key or any(c in RESERVED_CHARS for c in key):
        raise InvalidKeyError(key)


def _check_keys(value: Any):
    if isinstance(value, dict):
        for key, child in value.items():
            _check_key(key)
            _check_keys(child)
