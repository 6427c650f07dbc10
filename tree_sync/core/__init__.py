"""
This module implements watching and patching a hierarchical store: schema
analysis, subscription trees, key escaping and patch flattening.
"""

from pyrollup import rollup

from . import (
    codec,
    exceptions,
    patch,
    schema,
    session,
    state,
    store,
    subscription,
    value,
)
from .codec import *  # noqa
from .exceptions import *  # noqa
from .patch import *  # noqa
from .schema import *  # noqa
from .session import *  # noqa
from .state import *  # noqa
from .store import *  # noqa
from .subscription import *  # noqa
from .value import *  # noqa

__all__ = rollup(
    session,
    schema,
    subscription,
    patch,
    codec,
    store,
    state,
    value,
    exceptions,
)

__canonical_children__ = [
    "session",
    "schema",
    "subscription",
    "patch",
    "codec",
    "store",
    "state",
    "value",
    "exceptions",
]
