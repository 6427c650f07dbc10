"""
Implementation of session functionality.
"""

from __future__ import annotations

import logging
from logging import Logger
from typing import Any, Callable

from .patch import write_patch
from .store import BaseReference
from .subscription import (
    ChangeEvent,
    IgnoreContext,
    Subscription,
    WatchOptions,
    build_subscription_tree,
)

__all__ = ["Session"]
__canonical_syms__ = __all__


class Session:
    """
    Context in which to watch and patch a subtree of a store. Keeps track
    of subscriptions made through it so they can be cancelled together.

    ```python
    store = MemoryStore()

    with Session(store.ref("app")) as session:
        session.watch({"users": {"*": True}}, callback=print)
        session.write_patch({"users": {"alice": {"age": 30}}})
    ```
    """

    _root: BaseReference
    """
    Location which schemas and patches apply to.
    """

    _debug: bool
    """
    Whether to log registrations, events and writes.
    """

    _logger: Logger
    """
    Logger to use.
    """

    _subscriptions: list[Subscription]
    """
    Subscriptions created by this session which are still active.
    """

    def __init__(
        self,
        root: BaseReference,
        *,
        debug: bool = False,
        logger: Logger | None = None,
    ):
        """
        :param root: Location which schemas and patches apply to; event paths are reported relative to it
        :param debug: Log registrations, events and writes at debug level
        :param logger: Logger to use, or `None` to use default logger
        """
        self._root = root
        self._debug = debug
        self._logger = logger or logging.getLogger()
        self._subscriptions = []

    def __repr__(self) -> str:
        return f"Session(root={self._root}, subscriptions={len(self._subscriptions)})"

    def __enter__(self):
        self._logger.debug(f"Entering context: {self}")
        return self

    def __exit__(self, exc_type, exc_val, traceback):
        if exc_type:
            self._logger.error(f"Exiting context with error: {self}")
        else:
            self._logger.debug(f"Exiting context: {self}")

        self.unsubscribe_all()

    @property
    def root(self) -> BaseReference:
        return self._root

    @property
    def debug(self) -> bool:
        return self._debug

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    def watch(
        self,
        schema: Any,
        callback: Callable[[ChangeEvent], Any] | None = None,
        *,
        ignore_fn: Callable[[IgnoreContext], bool] | None = None,
        once: bool = False,
        strict: bool = False,
        path: str | None = None,
    ) -> Subscription:
        """
        Listen to the parts of the store described by schema.

        :param schema: Schema of locations to watch, see {obj}`parse_schema`
        :param callback: Invoked with each {obj}`ChangeEvent` received
        :param ignore_fn: Returns `True` to drop an event
        :param once: Remove each listener after its first event
        :param strict: Raise {obj}`SchemaConflictError` on nodes with both included and excluded fields
        :param path: Location below root to apply schema to

        :returns: Subscription, which can be cancelled with {obj}`Subscription.unsubscribe`
        """
        options = WatchOptions(
            callback=callback,
            ignore_fn=ignore_fn,
            once=once,
            debug=self._debug,
            logger=self._logger,
            strict=strict,
        )

        ref = self._root.child(path) if path else self._root
        subscription = build_subscription_tree(
            self._root, schema, options, ref=ref
        )

        self._subscriptions.append(subscription)
        return subscription

    def write_patch(
        self,
        patch: Any,
        *,
        path: str | None = None,
        transform: Callable[[Any], Any] | None = None,
    ) -> dict[str, Any] | None:
        """
        Write a nested partial update to the store, leaving values not in
        the patch untouched. See {obj}`write_patch`.

        :param patch: Nested mapping of changes
        :param path: Location below root which patch applies to
        :param transform: Called with each leaf value before writing

        :returns: Flattened patch as written, or `None` if nothing to write
        """
        ref = self._root.child(path) if path else self._root
        return write_patch(
            ref,
            patch,
            transform=transform,
            debug=self._debug,
            logger=self._logger,
            root=self._root,
        )

    def unsubscribe(self, subscription: Subscription):
        """
        Cancel a subscription created by this session.
        """
        subscription.unsubscribe()
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def unsubscribe_all(self):
        """
        Cancel all subscriptions created by this session.
        """
        for subscription in self._subscriptions:
            subscription.unsubscribe()

        if len(self._subscriptions):
            self._logger.debug(
                f"Cancelled {len(self._subscriptions)} subscriptions"
            )

        self._subscriptions.clear()
