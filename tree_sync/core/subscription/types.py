from __future__ import annotations

import threading
from dataclasses import dataclass, field
from logging import Logger
from typing import TYPE_CHECKING, Any, Callable, Iterator

from ..store import BaseReference, EventKind, ListenerHandle
from ..utils import join_path, split_path
from ..value import Value, from_raw

if TYPE_CHECKING:
    from ..schema import SchemaNode

__all__ = [
    "ChangeEvent",
    "IgnoreContext",
    "WatchOptions",
    "ListenerState",
    "Registration",
    "Subscription",
]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """
    Change received from the store, normalized for the application.
    """

    event_kind: EventKind
    """Kind of event"""

    raw_path: tuple[str, ...]
    """Path segments as stored, relative to the watched root"""

    path: tuple[str, ...]
    """Path segments with keys decoded"""

    value: Any
    """Value with keys decoded; `None` if removed"""

    @property
    def data(self) -> Value:
        """
        Value as a {obj}`Leaf` or {obj}`Container`.
        """
        return from_raw(self.value)


@dataclass(frozen=True, slots=True)
class IgnoreContext:
    """
    Passed to an ignore predicate to decide whether to drop an event.
    """

    count: int
    """Number of events received at this path by this listener, including
    this one"""

    event_kind: EventKind
    raw_path: tuple[str, ...]
    path: tuple[str, ...]


@dataclass(frozen=True, kw_only=True)
class WatchOptions:
    """
    Options applied to every listener of a subscription tree.
    """

    callback: Callable[[ChangeEvent], Any] | None = None
    """Receives each event which is not blacklisted or ignored"""

    ignore_fn: Callable[[IgnoreContext], bool] | None = None
    """Returns `True` to drop an event"""

    once: bool = False
    """Whether listeners are removed after their first event"""

    debug: bool = False
    """Whether to log registrations and received events"""

    logger: Logger | None = None
    """Logger to use, or `None` to use default logger"""

    strict: bool = False
    """Whether to raise on schema nodes with both included and excluded
    fields"""


class ListenerState:
    """
    Mutable state of a single listener: count of events received per path.
    """

    _counts: dict[str, int]
    _lock: threading.Lock

    def __init__(self):
        self._counts = dict()
        self._lock = threading.Lock()

    def increment(self, path: str) -> int:
        """
        Count an event at path and return the new count.
        """
        with self._lock:
            count = self._counts.get(path, 0) + 1
            self._counts[path] = count
            return count

    def reset(self):
        with self._lock:
            self._counts.clear()


@dataclass(kw_only=True, eq=False)
class Registration:
    """
    Listener registered on a store location.
    """

    ref: BaseReference
    """Location listened to"""

    path: tuple[str, ...]
    """Path segments as stored, relative to the subscription root"""

    event_kind: EventKind
    """Kind of event listened to"""

    blacklist: frozenset[str] = frozenset()
    """Decoded child keys whose events are dropped"""

    map_filter: SchemaNode | None = None
    """Schema to project values of value events through"""

    once: bool = False

    state: ListenerState = field(default_factory=ListenerState)

    handle: ListenerHandle | None = None
    """Set once registered with the store"""

    def __str__(self) -> str:
        path = "/" + join_path(self.path)
        once = " once" if self.once else ""
        except_ = (
            f", except {', '.join(sorted(self.blacklist))}"
            if self.blacklist
            else ""
        )
        return f"{path} {self.event_kind}{once}{except_}"

    def cancel(self):
        if self.handle is not None:
            self.handle.cancel()


class Subscription:
    """
    Set of listeners created from a schema. Cancel all of them with
    {obj}`Subscription.unsubscribe`.
    """

    root: BaseReference
    registrations: list[Registration]

    def __init__(self, root: BaseReference):
        self.root = root
        self.registrations = []

    def __iter__(self) -> Iterator[Registration]:
        return iter(self.registrations)

    def __len__(self) -> int:
        return len(self.registrations)

    def __repr__(self) -> str:
        return f"Subscription({[str(r) for r in self.registrations]})"

    def find(
        self, path: str, event_kind: EventKind | None = None
    ) -> list[Registration]:
        """
        Get registrations at the given path relative to the root, optionally
        of the given kind.
        """
        segments = split_path(path)
        return [
            r
            for r in self.registrations
            if r.path == segments
            and (event_kind is None or r.event_kind is event_kind)
        ]

    def unsubscribe(self):
        for registration in self.registrations:
            registration.cancel()
        self.registrations.clear()

    def reset_counters(self):
        for registration in self.registrations:
            registration.state.reset()
