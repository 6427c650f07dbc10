"""
Common utilities.
"""

from collections.abc import Sequence
from typing import Any

__all__ = [
    "PATH_SEPARATOR",
    "WILDCARD",
    "EXCLUDE_PREFIX",
    "split_path",
    "join_path",
]

PATH_SEPARATOR = "/"
"""
Separator between segments of a store path.
"""

WILDCARD = "*"
"""
Schema marker meaning "any child".
"""

EXCLUDE_PREFIX = "!"
"""
Prefix of a schema key marking the field as excluded.
"""


def split_path(path: str) -> tuple[str, ...]:
    """
    Split a store path into its non-empty segments.
    """
    return tuple(s for s in path.split(PATH_SEPARATOR) if s)


def join_path(segments: Sequence[str]) -> str:
    return PATH_SEPARATOR.join(segments)


def is_sequence(value: Any) -> bool:
    """
    Check for a sequence which is not a string-like scalar.
    """
    return isinstance(value, Sequence) and not isinstance(
        value, (str, bytes, bytearray)
    )
