"""
Entry points of the editing environment: resolve an account, build the
invocation and launch it under supervision.
"""
from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable

from .command import (
    DEFAULT_EXECUTABLE,
    CommandBuilder,
    Invocation,
    Operation,
    fixed_invocation,
)
from .config import ConfigStore
from .document import DEFAULT_SYNCABLE_SUFFIXES, Document
from .exceptions import UnsupportedDocument
from .hooks import NotificationHook, after_receive_hook
from .process import CompletionCallback, ProcessSupervisor, SupervisedProcess
from .sync_mode import SyncModeController

__all__ = [
    "DEFAULT_INSTALL_COMMAND",
    "Orchestrator",
]

DEFAULT_INSTALL_COMMAND = "npm install -g orgnote-cli"
"""
Command installing the external sync tool.
"""

PROMPT_LABEL = "Choose account: "


class Orchestrator:
    """
    Launches operations of the external sync tool in the background.

    Every operation returns once the process has been spawned; completion is
    reported through the optional callback and the returned
    {obj}`SupervisedProcess`.
    """

    config_store: ConfigStore
    builder: CommandBuilder
    supervisor: ProcessSupervisor
    sync_mode: SyncModeController

    debug: bool
    """
    Append the debug flag to every command line.
    """

    install_command: str
    syncable_suffixes: tuple[str, ...]
    receive_hook: NotificationHook

    _logger: Logger

    def __init__(
        self,
        config_store: ConfigStore,
        *,
        builder: CommandBuilder | None = None,
        supervisor: ProcessSupervisor | None = None,
        debug: bool = False,
        install_command: str = DEFAULT_INSTALL_COMMAND,
        syncable_suffixes: Iterable[str] = DEFAULT_SYNCABLE_SUFFIXES,
        receive_hook: NotificationHook = after_receive_hook,
        logger: Logger | None = None,
    ):
        self.config_store = config_store
        self.builder = builder or CommandBuilder(DEFAULT_EXECUTABLE)
        self.supervisor = supervisor or ProcessSupervisor()
        self.debug = debug
        self.install_command = install_command
        self.syncable_suffixes = tuple(syncable_suffixes)
        self.receive_hook = receive_hook
        self.sync_mode = SyncModeController(self._publish_document)
        self._logger = logger or logging.getLogger("orgnote-sync")

    def open_document(self, path: Path | str) -> Document:
        """
        Create a document classified with the configured syncable suffixes.
        """
        return Document(path, syncable_suffixes=self.syncable_suffixes)

    def is_syncable(self, path: Path | str) -> bool:
        return self.open_document(path).is_syncable

    async def install_dependencies(
        self, on_complete: CompletionCallback | None = None
    ) -> SupervisedProcess:
        """
        Install the external tool; no account is needed.
        """
        invocation = fixed_invocation(self.install_command)
        return await self.launch(invocation, on_complete)

    async def publish_file(
        self,
        path: Path | str,
        on_complete: CompletionCallback | None = None,
    ) -> SupervisedProcess:
        """
        Publish a single syncable file.

        :raises UnsupportedDocument: File is not syncable
        """
        if not self.is_syncable(path):
            raise UnsupportedDocument(path)

        return await self.run_operation(
            Operation.PUBLISH, [str(path)], on_complete=on_complete
        )

    async def publish_all(
        self, on_complete: CompletionCallback | None = None
    ) -> SupervisedProcess:
        return await self.run_operation(
            Operation.PUBLISH_ALL, on_complete=on_complete
        )

    async def load(
        self, on_complete: CompletionCallback | None = None
    ) -> SupervisedProcess:
        return await self.run_operation(Operation.LOAD, on_complete=on_complete)

    async def sync(
        self, on_complete: CompletionCallback | None = None
    ) -> SupervisedProcess:
        return await self.run_operation(Operation.SYNC, on_complete=on_complete)

    async def publish_direct(
        self,
        path: Path | str,
        *,
        remote_address: str | None = None,
        token: str | None = None,
        on_complete: CompletionCallback | None = None,
    ) -> SupervisedProcess:
        """
        Publish a file passing address and token directly rather than
        resolving an account.
        """
        invocation = self.builder.build_direct(
            str(path), remote_address=remote_address, token=token
        )
        return await self.launch(invocation, on_complete)

    async def run_operation(
        self,
        operation: str | Operation,
        extra_args: Iterable[str] = (),
        *,
        on_complete: CompletionCallback | None = None,
    ) -> SupervisedProcess:
        """
        Resolve account, build invocation and launch it. The operation is
        validated before the account is resolved.

        After a receiving operation, the receive hook runs once the callback
        has returned.
        """
        op = Operation.parse(operation)
        account = self.config_store.resolve(PROMPT_LABEL)
        invocation = self.builder.build(op, account, extra_args)

        callback = (
            self._chain_receive_hook(on_complete) if op.is_receive else on_complete
        )

        return await self.launch(invocation, callback)

    async def launch(
        self,
        invocation: Invocation,
        on_complete: CompletionCallback | None = None,
    ) -> SupervisedProcess:
        self._logger.info(f"Running: {invocation.command_line}")
        return await self.supervisor.launch(
            invocation, on_complete, debug=self.debug
        )

    def toggle_sync_mode(self, doc: Document) -> bool:
        """
        Toggle publishing of the document on persist, returning the new state.
        """
        enabled = self.sync_mode.toggle(doc)
        self._logger.info(
            f"Sync mode {'enabled' if enabled else 'disabled'} for '{doc.path}'"
        )
        return enabled

    async def _publish_document(self, doc: Document):
        await self.publish_file(doc.path)

    def _chain_receive_hook(
        self, on_complete: CompletionCallback | None
    ) -> CompletionCallback:
        def complete(process: SupervisedProcess):
            if on_complete is not None:
                on_complete(process)
            self.receive_hook.run()

        return complete
