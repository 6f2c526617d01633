"""
Process-wide listeners notified after notes were received from the remote.
"""
from __future__ import annotations

import importlib
import logging
from typing import Callable

__all__ = [
    "Listener",
    "NotificationHook",
    "after_receive_hook",
    "import_listener",
]

Listener = Callable[[], None]

logger = logging.getLogger("orgnote-sync")


class NotificationHook:
    """
    Ordered list of listeners, e.g. to ask a note index to resynchronize
    once a `load` or `sync` has completed.
    """

    name: str
    _listeners: list[Listener]

    def __init__(self, name: str):
        self.name = name
        self._listeners = []

    def __repr__(self) -> str:
        return f"NotificationHook(name='{self.name}', listeners={len(self._listeners)})"

    @property
    def listeners(self) -> list[Listener]:
        return list(self._listeners)

    def register(self, listener: Listener):
        """
        Append listener; registering the same listener again has no effect.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unregister(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear(self):
        self._listeners.clear()

    def run(self):
        """
        Invoke listeners in registration order.
        """
        for listener in list(self._listeners):
            logger.debug(f"Running {self.name} listener: {listener}")
            listener()


after_receive_hook = NotificationHook("after-receive")
"""
Invoked after a `load` or `sync` operation completed.
"""


def import_listener(fqn: str) -> Listener:
    """
    Import listener from fully-qualified name, e.g. `my_pkg.index.rebuild`.

    :raises ValueError: Name could not be imported or is not callable
    """
    if not "." in fqn:
        raise ValueError(
            f"fully-qualified name '{fqn}' must contain at least one '.'"
        )

    module_path, obj_name = fqn.rsplit(".", 1)

    try:
        module = importlib.import_module(module_path)
        listener = getattr(module, obj_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"failed to import '{fqn}': {e}")

    if not callable(listener):
        raise ValueError(f"'{fqn}' is not callable: {listener}")

    return listener
