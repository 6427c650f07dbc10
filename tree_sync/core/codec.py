"""
Bidirectional escaping of keys between the application and the store.

The store rejects some characters in keys: `.`, `$`, `#`, `[`, `]`, `/` and
ASCII control characters. Each of them is written as `%XX`, the uppercase
hex code of the character. Decoding only recognizes these exact escape
tokens, so both directions are idempotent: encoding an already encoded key
or decoding an already decoded key leaves it unchanged.

As a consequence, application keys which literally contain one of the escape
tokens (e.g. `"a%2Eb"`) can't round-trip and will collide with the key they
decode to. Such collisions are not detected.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .utils import is_sequence

__all__ = [
    "RESERVED_CHARS",
    "encode_key",
    "decode_key",
    "fix_key",
    "encode_keys",
    "decode_keys",
    "fix_keys",
]

RESERVED_CHARS: frozenset[str] = frozenset(
    ".$#[]/" + "".join(chr(c) for c in range(0x20)) + chr(0x7F)
)
"""
Characters which may not appear in a store key.
"""

_ENCODE_MAP: dict[str, str] = {c: f"%{ord(c):02X}" for c in RESERVED_CHARS}
_DECODE_MAP: dict[str, str] = {v: k for k, v in _ENCODE_MAP.items()}

_ENCODE_RE = re.compile("[" + re.escape("".join(sorted(RESERVED_CHARS))) + "]")
_DECODE_RE = re.compile(
    "|".join(re.escape(token) for token in sorted(_DECODE_MAP))
)


def encode_key(key: str) -> str:
    """
    Escape reserved characters so the key may be written to the store.
    """
    return _ENCODE_RE.sub(lambda m: _ENCODE_MAP[m.group(0)], str(key))


def decode_key(key: str) -> str:
    """
    Restore the application key from a key as stored.
    """
    return _DECODE_RE.sub(lambda m: _DECODE_MAP[m.group(0)], str(key))


def fix_key(key: str, for_write: bool) -> str:
    """
    Encode the key if it's headed to the store, decode it otherwise.
    """
    return encode_key(key) if for_write else decode_key(key)


def encode_keys(value: Any) -> Any:
    """
    Recursively encode every mapping key within value.
    """
    return fix_keys(value, True)


def decode_keys(value: Any) -> Any:
    """
    Recursively decode every mapping key within value.
    """
    return fix_keys(value, False)


def fix_keys(value: Any, for_write: bool) -> Any:
    """
    Recursively apply {obj}`fix_key` to every mapping key within value.

    Mappings are copied into new dicts, sequences into new lists with the
    same order and length. Other values are returned as-is.
    """
    if isinstance(value, Mapping):
        return {
            fix_key(k, for_write): fix_keys(v, for_write)
            for k, v in value.items()
        }

    if is_sequence(value):
        return [fix_keys(v, for_write) for v in value]

    return value
