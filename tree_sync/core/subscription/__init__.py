"""
Listening to the store according to a schema.
"""

from pyrollup import rollup

from . import builder, handler, types
from .builder import *  # noqa
from .handler import *  # noqa
from .types import *  # noqa

__all__ = rollup(
    types,
    handler,
    builder,
)

__canonical_syms__ = __all__
