"""
Construction of the set of listeners covering a schema.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..codec import encode_key
from ..schema import (
    LEAF,
    LeafSchema,
    SchemaNode,
    get_map_analysis,
    parse_schema,
)
from ..store import CHILD_EVENT_KINDS, BaseReference, EventKind
from ..utils import split_path
from .handler import ChangeHandler
from .types import Registration, Subscription, WatchOptions

__all__ = [
    "build_subscription_tree",
    "watch_from_map",
    "add_listener",
]


def build_subscription_tree(
    root: BaseReference,
    schema: Any,
    options: WatchOptions | None = None,
    *,
    ref: BaseReference | None = None,
) -> Subscription:
    """
    Register listeners on the store covering the locations described by
    schema, and return them as a {obj}`Subscription`.

    Each schema node yields exactly one of:

    - a `value` listener, for a leaf
    - child listeners on all children, for a missing or wildcard schema or
      a mapping without restrictions
    - child listeners on all children except blacklisted ones
    - a `value` listener on each whitelisted child

    Nested mappings are recursed into before the node's own listeners are
    registered.

    If registering fails, listeners already registered are cancelled before
    the exception propagates.

    :param root: Location event paths are reported relative to
    :param schema: Raw schema or compiled schema node
    :param options: Callback and other options shared by all listeners
    :param ref: Location the schema applies to, `root` if not given
    """
    options = options or WatchOptions()
    subscription = Subscription(root)

    try:
        _watch_node(
            root,
            ref if ref is not None else root,
            parse_schema(schema),
            options,
            subscription,
        )
    except Exception:
        subscription.unsubscribe()
        raise

    return subscription


watch_from_map = build_subscription_tree


def _watch_node(
    root: BaseReference,
    ref: BaseReference,
    node: SchemaNode,
    options: WatchOptions,
    subscription: Subscription,
):
    if isinstance(node, LeafSchema):
        add_listener(
            ref,
            EventKind.VALUE,
            options,
            root=root,
            map_filter=node,
            subscription=subscription,
        )
        return

    analysis = get_map_analysis(
        node, strict=options.strict, path=ref.relative_path(root)
    )

    if analysis is None:
        # nothing to filter on: listen to all children
        add_listener(
            ref,
            EventKind.CHILDREN,
            options,
            root=root,
            map_filter=node,
            subscription=subscription,
        )
        return

    for field in analysis.objects:
        _watch_node(
            root,
            ref.child(encode_key(field)),
            analysis.children[field],
            options,
            subscription,
        )

    if analysis.unfiltered:
        add_listener(
            ref,
            EventKind.CHILDREN,
            options,
            root=root,
            map_filter=node,
            subscription=subscription,
        )
    elif analysis.blacklist:
        add_listener(
            ref,
            EventKind.CHILDREN,
            options,
            root=root,
            blacklist=analysis.blacklist,
            map_filter=node,
            subscription=subscription,
        )
    elif analysis.whitelist:
        for field in analysis.whitelist:
            add_listener(
                ref.child(encode_key(field)),
                EventKind.VALUE,
                options,
                root=root,
                map_filter=LEAF,
                subscription=subscription,
            )


def add_listener(
    ref: BaseReference,
    event_kind: EventKind | Sequence[EventKind],
    options: WatchOptions,
    *,
    root: BaseReference,
    blacklist: Sequence[str] = (),
    map_filter: SchemaNode | None = None,
    subscription: Subscription | None = None,
) -> list[Registration]:
    """
    Register a listener for each event kind; {obj}`EventKind.CHILDREN`
    expands to all child event kinds.
    """
    event_kinds: Sequence[EventKind]
    if event_kind is EventKind.CHILDREN:
        event_kinds = CHILD_EVENT_KINDS
    elif isinstance(event_kind, EventKind):
        event_kinds = (event_kind,)
    else:
        event_kinds = tuple(event_kind)

    path = split_path(ref.relative_path(root))

    if options.debug:
        logger = options.logger or logging.getLogger()
        once = " once" if options.once else ""
        except_ = f", except {', '.join(blacklist)}" if blacklist else ""
        kinds = ", ".join(str(k) for k in event_kinds)
        logger.debug(f"Watching /{'/'.join(path)} {kinds}{once}{except_}")

    registrations: list[Registration] = []

    for kind in event_kinds:
        registration = Registration(
            ref=ref,
            path=path,
            event_kind=kind,
            blacklist=frozenset(blacklist),
            map_filter=map_filter,
            once=options.once,
        )
        handler = ChangeHandler(registration, root, options)

        registrations.append(registration)
        if subscription is not None:
            subscription.registrations.append(registration)

        if options.once:
            registration.handle = ref.once(kind, handler)
        else:
            registration.handle = ref.on(kind, handler)

    return registrations
