"""
Per-document mode which publishes the document every time it's persisted.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .document import Document, PersistListener

__all__ = [
    "SyncModeController",
]

logger = logging.getLogger("orgnote-sync")

Publisher = Callable[[Document], Awaitable[Any]]


class SyncModeController:
    """
    Tracks sync mode of documents and attaches a before-persist listener to
    the syncable ones while enabled.
    """

    _publish: Publisher
    _state: dict[Document, bool]
    _listeners: dict[Document, PersistListener]

    def __init__(self, publish: Publisher):
        """
        :param publish: Launches a publish operation for the document without
        waiting for it to complete
        """
        self._publish = publish
        self._state = {}
        self._listeners = {}

    def is_enabled(self, doc: Document) -> bool:
        return self._state.get(doc, False)

    def has_listener(self, doc: Document) -> bool:
        return doc in self._listeners

    def enable(self, doc: Document):
        self._track(doc)
        self._state[doc] = True

        if not doc.is_syncable:
            logger.debug(f"Sync mode enabled for non-syncable {doc}")
            return

        if doc in self._listeners:
            return

        async def publish_on_persist(d: Document):
            await self._publish(d)

        self._listeners[doc] = publish_on_persist
        doc.add_before_persist(publish_on_persist)

    def disable(self, doc: Document):
        self._track(doc)
        self._state[doc] = False

        listener = self._listeners.pop(doc, None)
        if listener is not None:
            doc.remove_before_persist(listener)

    def toggle(self, doc: Document) -> bool:
        """
        Flip sync mode of this document, returning the new state.
        """
        if self.is_enabled(doc):
            self.disable(doc)
        else:
            self.enable(doc)
        return self.is_enabled(doc)

    def _track(self, doc: Document):
        # first toggle of this document: tear down state when it closes
        if doc not in self._state:
            doc.add_on_close(self._teardown)

    def _teardown(self, doc: Document):
        listener = self._listeners.pop(doc, None)
        if listener is not None:
            doc.remove_before_persist(listener)
        self._state.pop(doc, None)
