"""
Declarative schemas selecting which parts of the store to watch.
"""

from pyrollup import rollup

from . import analyzer, projection, types
from .analyzer import *  # noqa
from .projection import *  # noqa
from .types import *  # noqa

__all__ = rollup(types, analyzer, projection)
__canonical_syms__ = __all__
