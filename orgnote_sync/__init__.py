"""
orgnote-sync: background orchestration of `orgnote-cli` for publishing,
loading and syncing notes.
"""

from pyrollup import rollup

from . import core
from .core import *  # noqa

__all__ = rollup(core)
