"""
Abstract interface to a location in a hierarchical store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Self

from ..utils import join_path

__all__ = [
    "EventKind",
    "CHILD_EVENT_KINDS",
    "Snapshot",
    "ListenerHandle",
    "BaseReference",
]


class EventKind(Enum):
    """
    Kind of change notification emitted by a store.
    """

    VALUE = "value"
    """Full value at the path, whenever anything below it changes"""

    CHILD_ADDED = "child_added"
    """Immediate child was added"""

    CHILD_CHANGED = "child_changed"
    """Value of immediate child changed"""

    CHILD_REMOVED = "child_removed"
    """Immediate child was removed"""

    CHILDREN = "children"
    """Shorthand for all child events; never emitted by a store"""

    def __str__(self) -> str:
        return self.value


CHILD_EVENT_KINDS: tuple[EventKind, ...] = (
    EventKind.CHILD_ADDED,
    EventKind.CHILD_CHANGED,
    EventKind.CHILD_REMOVED,
)


@dataclass(frozen=True, slots=True)
class Snapshot:
    """
    Notification delivered to a listener: the location which changed and
    its value at the time of the event.
    """

    ref: BaseReference
    """Location of the value; the child for child events"""

    value: Any
    """Value as stored, `None` if removed or missing"""

    @property
    def key(self) -> str | None:
        return self.ref.key

    @property
    def full_path(self) -> str:
        return join_path(self.ref.path)

    def val(self) -> Any:
        return self.value


class ListenerHandle:
    """
    Returned from registering a listener; cancels it.
    """

    _cancel: Callable[[], None] | None

    def __init__(self, cancel: Callable[[], None]):
        self._cancel = cancel

    @property
    def active(self) -> bool:
        return self._cancel is not None

    def cancel(self):
        if self._cancel is not None:
            cancel, self._cancel = self._cancel, None
            cancel()


class BaseReference(ABC):
    """
    Location within a store, identified by its path segments from the
    store's root.

    Keys are passed as stored; use {obj}`encode_key` to derive them from
    application keys.
    """

    path: tuple[str, ...]
    """Segments of this location's path, empty for the root"""

    def __init__(self, path: tuple[str, ...] = ()):
        self.path = tuple(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}('/{join_path(self.path)}')"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, BaseReference)
            and self._store_id == other._store_id
            and self.path == other.path
        )

    def __hash__(self) -> int:
        return hash((self._store_id, self.path))

    @property
    def key(self) -> str | None:
        """
        Last segment of path, or `None` for the root.
        """
        return self.path[-1] if self.path else None

    @property
    def parent(self) -> Self | None:
        if not self.path:
            return None
        return self._create(self.path[:-1])

    def child(self, name: str) -> Self:
        """
        Get reference to a descendant; `name` may contain `/`-separated
        segments.
        """
        segments = tuple(s for s in str(name).split("/") if s)
        return self._create(self.path + segments)

    def relative_path(self, root: BaseReference | None = None) -> str:
        """
        Path of this location relative to `root`, or the store root if not
        given. Empty string if this is the root.
        """
        if root is None or not root.path:
            return join_path(self.path)

        assert (
            self.path[: len(root.path)] == root.path
        ), f"{self} is not below {root}"
        return join_path(self.path[len(root.path) :])

    @property
    @abstractmethod
    def _store_id(self) -> int:
        """
        Identity of the store this reference belongs to.
        """
        ...

    @abstractmethod
    def _create(self, path: tuple[str, ...]) -> Self:
        """
        Create a reference to another location in the same store.
        """
        ...

    @abstractmethod
    def on(
        self, event_kind: EventKind, handler: Callable[[Snapshot], Any]
    ) -> ListenerHandle:
        """
        Invoke handler for every event of the given kind until cancelled.
        """
        ...

    @abstractmethod
    def once(
        self, event_kind: EventKind, handler: Callable[[Snapshot], Any]
    ) -> ListenerHandle:
        """
        Invoke handler for the next event of the given kind only.
        """
        ...

    @abstractmethod
    def get(self) -> Any:
        """
        Read the current value.
        """
        ...

    @abstractmethod
    def set(self, value: Any):
        """
        Replace the value at this location; `None` removes it.
        """
        ...

    @abstractmethod
    def update(self, values: Mapping[str, Any]):
        """
        Atomically write multiple values given by paths relative to this
        location, leaving other children untouched.
        """
        ...

    def remove(self):
        self.set(None)
