"""
Minimal model of an editor document: a file with before-persist and close
listeners.
"""
from __future__ import annotations

import inspect
from pathlib import Path
from typing import Awaitable, Callable, Iterable

__all__ = [
    "DEFAULT_SYNCABLE_SUFFIXES",
    "Document",
    "PersistListener",
]

DEFAULT_SYNCABLE_SUFFIXES = (".org",)

PersistListener = Callable[["Document"], Awaitable[None] | None]


class Document:
    """
    Document open in the editing environment.
    """

    path: Path
    syncable_suffixes: tuple[str, ...]

    _before_persist: list[PersistListener]
    _on_close: list[Callable[[Document], None]]
    _closed: bool

    def __init__(
        self,
        path: Path | str,
        *,
        syncable_suffixes: Iterable[str] = DEFAULT_SYNCABLE_SUFFIXES,
    ):
        self.path = Path(path)
        self.syncable_suffixes = tuple(syncable_suffixes)
        self._before_persist = []
        self._on_close = []
        self._closed = False

    def __repr__(self) -> str:
        return f"Document(path='{self.path}')"

    @property
    def is_syncable(self) -> bool:
        """
        Whether this document's format is eligible for publishing.
        """
        return self.path.suffix in self.syncable_suffixes

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def before_persist_listeners(self) -> list[PersistListener]:
        return list(self._before_persist)

    def add_before_persist(self, listener: PersistListener):
        if listener not in self._before_persist:
            self._before_persist.append(listener)

    def remove_before_persist(self, listener: PersistListener):
        if listener in self._before_persist:
            self._before_persist.remove(listener)

    def add_on_close(self, listener: Callable[[Document], None]):
        if listener not in self._on_close:
            self._on_close.append(listener)

    async def persist(self):
        """
        Signal that the document is being persisted, invoking listeners in
        order.
        """
        assert not self._closed, f"Attempt to persist closed {self}"

        for listener in list(self._before_persist):
            result = listener(self)
            if inspect.isawaitable(result):
                await result

    def close(self):
        if self._closed:
            return
        self._closed = True

        for listener in list(self._on_close):
            listener(self)

        self._before_persist.clear()
        self._on_close.clear()
