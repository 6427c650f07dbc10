"""
Interfaces to hierarchical stores.
"""

from pyrollup import rollup

from . import memory, reference, rest
from .memory import *  # noqa
from .reference import *  # noqa
from .rest import *  # noqa

__all__ = rollup(
    reference,
    memory,
    rest,
)

__canonical_syms__ = __all__
