"""
Writing partial updates to the store.

A patch is a nested mapping of the changes to make. Rather than replacing
whole subtrees, it's flattened into a mapping of deep paths to leaf values
so that a single update leaves sibling values already in the store
untouched:

```python
flatten_patch({"a": {"b": 1, "c": 2}, "d": 3})
# {"a/b": 1, "a/c": 2, "d": 3}
```

To replace a subtree instead, wrap its value in {obj}`Replace`.
"""

from __future__ import annotations

import datetime
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from logging import Logger
from typing import TYPE_CHECKING, Any, Callable

from .codec import encode_key, encode_keys
from .utils import PATH_SEPARATOR, is_sequence

if TYPE_CHECKING:
    from .store import BaseReference

__all__ = [
    "Replace",
    "flatten_patch",
    "normalize_value",
    "write_patch",
]


@dataclass(frozen=True, slots=True)
class Replace:
    """
    Marks a value in a patch to be written as a whole, replacing any
    existing subtree at its path.
    """

    value: Any


def normalize_value(value: Any) -> Any:
    """
    Convert a leaf value to a form the store accepts:

    - datetimes become ISO-8601 strings in UTC with millisecond precision;
    naive datetimes are taken as UTC, dates as midnight UTC
    - NaN becomes `0`
    - containers have their keys encoded
    """
    if isinstance(value, Replace):
        value = value.value

    if isinstance(value, datetime.datetime):
        return _format_timestamp(value)

    if isinstance(value, datetime.date):
        return _format_timestamp(
            datetime.datetime.combine(value, datetime.time())
        )

    if isinstance(value, float) and math.isnan(value):
        return 0

    if isinstance(value, Mapping) or is_sequence(value):
        return encode_keys(value)

    return value


def flatten_patch(
    patch: Mapping[str, Any],
    *,
    transform: Callable[[Any], Any] | None = None,
) -> dict[str, Any]:
    """
    Flatten a nested patch into a mapping of deep paths to leaf values.

    Keys are encoded at every level. Each leaf is normalized with
    {obj}`normalize_value` and then passed to `transform`, if provided,
    exactly once. Nested mappings without any leaves produce no entries.

    :param patch: Nested mapping of changes
    :param transform: Called with each normalized leaf value, returning the
    value to write
    """
    flat: dict[str, Any] = {}
    _flatten(patch, (), flat, transform)
    return flat


def _flatten(
    node: Mapping[str, Any],
    prefix: tuple[str, ...],
    flat: dict[str, Any],
    transform: Callable[[Any], Any] | None,
):
    for key, value in node.items():
        path = prefix + (encode_key(key),)

        if isinstance(value, Mapping):
            _flatten(value, path, flat, transform)
            continue

        value = normalize_value(value)
        if transform is not None:
            value = transform(value)

        flat[PATH_SEPARATOR.join(path)] = value


def write_patch(
    ref: BaseReference | None,
    patch: Any,
    *,
    transform: Callable[[Any], Any] | None = None,
    debug: bool = False,
    logger: Logger | None = None,
    root: BaseReference | None = None,
) -> dict[str, Any] | None:
    """
    Flatten patch and write it to the store at `ref` as a single update.

    Nothing is written if `ref` is missing or `patch` is not a non-empty
    mapping. Returns the flattened patch if written.

    :param ref: Location patch paths are relative to
    :param patch: Nested mapping of changes
    :param transform: Passed to {obj}`flatten_patch`
    :param debug: Log each path written
    :param logger: Logger to use, or `None` to use default logger
    :param root: Location logged paths are relative to
    """
    if ref is None or not isinstance(patch, Mapping) or not patch:
        return None

    flat = flatten_patch(patch, transform=transform)
    if not flat:
        return None

    if debug:
        logger = logger or logging.getLogger()
        base = ref.relative_path(root)
        for path, value in flat.items():
            full_path = PATH_SEPARATOR.join(p for p in (base, path) if p)
            logger.debug(f"Patching on /{full_path}: {value!r}")

    ref.update(flat)
    return flat


def _format_timestamp(dt: datetime.datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)

    dt = dt.astimezone(datetime.timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
