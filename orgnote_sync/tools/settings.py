"""
Process-wide settings as persisted in .yaml file.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import field_serializer, field_validator

from ..core import (
    DEFAULT_EXECUTABLE,
    DEFAULT_INSTALL_COMMAND,
    DEFAULT_SYNCABLE_SUFFIXES,
    AccountSelector,
    CommandBuilder,
    ConfigStore,
    LogSink,
    NotificationHook,
    Orchestrator,
    ProcessSupervisor,
    import_listener,
)
from ..core.process import DEFAULT_LOG_NAME
from .yaml_model import BaseYamlModel

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "Settings",
]

DEFAULT_CONFIG_FILE = Path("~/.config/orgnote/config.json")
"""
Default location of the account config source.
"""


class Settings(BaseYamlModel):
    """
    Encapsulates settings of the orchestration layer.
    """

    executable: str = DEFAULT_EXECUTABLE
    """
    Name or path of the external sync tool.
    """

    debug: bool = False
    """
    Whether to pass the debug flag to the external sync tool.
    """

    config_file: Path = DEFAULT_CONFIG_FILE
    """
    JSON file containing the accounts.
    """

    log_name: str = DEFAULT_LOG_NAME
    """
    Name of the log sink receiving process output.
    """

    syncable_suffixes: list[str] = list(DEFAULT_SYNCABLE_SUFFIXES)
    """
    File suffixes of documents eligible for publishing.
    """

    install_command: str = DEFAULT_INSTALL_COMMAND
    """
    Command to install the external sync tool.
    """

    after_receive: list[str] = []
    """
    Fully-qualified names of callables to invoke after notes were received,
    e.g. to rebuild a note index.
    """

    @field_validator("config_file", mode="before")
    def validate_config_file(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Path(value).expanduser()
        return value

    @field_validator("syncable_suffixes")
    def validate_syncable_suffixes(cls, value: list[str]) -> list[str]:
        for suffix in value:
            if not suffix.startswith("."):
                raise ValueError(f"suffix must start with '.': '{suffix}'")
        return value

    @field_serializer("config_file")
    def serialize_config_file(self, value: Path) -> str:
        return str(value)

    def register_listeners(self, hook: NotificationHook):
        """
        Import and register `after_receive` listeners with hook.

        :raises ValueError: A listener could not be imported
        """
        for fqn in self.after_receive:
            hook.register(import_listener(fqn))

    def create_orchestrator(
        self,
        *,
        selector: AccountSelector | None = None,
        log_sink: LogSink | None = None,
    ) -> Orchestrator:
        """
        Get orchestrator from these settings.
        """
        return Orchestrator(
            ConfigStore(self.config_file, selector),
            builder=CommandBuilder(self.executable),
            supervisor=ProcessSupervisor(log_sink or LogSink(self.log_name)),
            debug=self.debug,
            install_command=self.install_command,
            syncable_suffixes=self.syncable_suffixes,
        )
