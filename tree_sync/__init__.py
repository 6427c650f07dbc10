"""
tree-sync: synchronize a local state tree with a hierarchical key-value
store.
"""

from pyrollup import rollup

from . import core
from .core import *  # noqa

__all__ = rollup(core)

__canonical_children__ = [
    "core",
]
