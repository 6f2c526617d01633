"""
This module implements background orchestration of the external sync tool:
account resolution, invocation building, process supervision, sync mode and
notification hooks.
"""

from pyrollup import rollup

from . import (
    command,
    config,
    document,
    exceptions,
    hooks,
    orchestrator,
    process,
    sync_mode,
)
from .command import *  # noqa
from .config import *  # noqa
from .document import *  # noqa
from .exceptions import *  # noqa
from .hooks import *  # noqa
from .orchestrator import *  # noqa
from .process import *  # noqa
from .sync_mode import *  # noqa

__all__ = rollup(
    orchestrator,
    config,
    command,
    process,
    sync_mode,
    document,
    hooks,
    exceptions,
)
