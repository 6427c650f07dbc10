"""
Handling of notifications received by a single listener.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..codec import decode_key, decode_keys
from ..schema import project_value
from ..store import BaseReference, EventKind, Snapshot
from ..utils import split_path
from ..value import Container, from_raw, to_raw
from .types import ChangeEvent, IgnoreContext, Registration, WatchOptions

if TYPE_CHECKING:
    from logging import Logger

__all__ = [
    "ChangeHandler",
]


class ChangeHandler:
    """
    Callable invoked by the store for each notification of a listener.
    Filters, counts and normalizes the notification before forwarding it
    to the callback as a {obj}`ChangeEvent`.
    """

    registration: Registration
    root: BaseReference
    options: WatchOptions

    _logger: Logger

    def __init__(
        self,
        registration: Registration,
        root: BaseReference,
        options: WatchOptions,
    ):
        self.registration = registration
        self.root = root
        self.options = options
        self._logger = options.logger or logging.getLogger()

    def __call__(self, snapshot: Snapshot) -> ChangeEvent | None:
        """
        Process a notification. Returns the event forwarded to the callback,
        or `None` if it was dropped.
        """
        registration = self.registration
        event_kind = registration.event_kind

        full_path = snapshot.ref.relative_path(self.root)
        raw_path = split_path(full_path)
        path = tuple(decode_key(s) for s in raw_path)

        count = registration.state.increment(full_path)

        data = from_raw(snapshot.val())
        blacklisted = False
        ignored = False

        if event_kind is EventKind.VALUE and isinstance(data, Container):
            data = project_value(data, registration.map_filter)
        else:
            key = snapshot.key
            blacklisted = (
                key is not None and decode_key(key) in registration.blacklist
            )

        value = to_raw(data)

        if self.options.ignore_fn is not None and self.options.ignore_fn(
            IgnoreContext(
                count=count,
                event_kind=event_kind,
                raw_path=raw_path,
                path=path,
            )
        ):
            ignored = True

        if self.options.debug:
            action = (
                "Blacklisted"
                if blacklisted
                else "Ignored" if ignored else "Received"
            )
            self._logger.debug(
                f"{action} {event_kind} on /{full_path}: {value!r}"
            )

        if blacklisted or ignored:
            return None

        event = ChangeEvent(
            event_kind=event_kind,
            raw_path=raw_path,
            path=path,
            value=decode_keys(value),
        )

        if self.options.callback is not None:
            self.options.callback(event)

        return event
