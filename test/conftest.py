import json
import logging
import stat
from pathlib import Path
from typing import Any, Callable

from pytest import fixture

from orgnote_sync import (
    AccountConfig,
    CommandBuilder,
    ConfigStore,
    LogSink,
    Orchestrator,
    ProcessSupervisor,
    after_receive_hook,
)

HOME_ACCOUNT = {"name": "home", "remoteAddress": "https://x", "token": "t"}
WORK_ACCOUNT = {
    "name": "work",
    "remoteAddress": "https://work.example.com",
    "token": "work-token",
}

FAKE_CLI = """#!/bin/sh
for arg in "$@"; do
    echo "arg: $arg"
done
if [ -n "$FAKE_ORGNOTE_SLEEP" ]; then
    sleep "$FAKE_ORGNOTE_SLEEP"
fi
exit "${FAKE_ORGNOTE_EXIT:-0}"
"""
"""
Stand-in for `orgnote-cli`: echoes each argument on its own line, optionally
sleeps and exits with the configured status.
"""

class LogHandler(logging.Handler):
    """
    Handler to create a list of logs for testcases to access for verification.
    """

    test_logs: list[str]

    def __init__(self):
        super().__init__()
        self.test_logs = []

    def emit(self, record: logging.LogRecord):
        self.test_logs.append(record.getMessage())


@fixture
def log_handler():
    handler = LogHandler()
    logger = logging.getLogger("orgnote-sync")
    level = logger.level

    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)

    yield handler

    logger.removeHandler(handler)
    logger.setLevel(level)


@fixture(autouse=True)
def clear_after_receive_hook():
    """
    Ensure listeners registered by a testcase don't leak into others.
    """
    after_receive_hook.clear()
    yield
    after_receive_hook.clear()


@fixture
def fake_cli(tmp_path: Path) -> Path:
    """
    Write executable stand-in for `orgnote-cli`.
    """
    path = tmp_path / "bin" / "orgnote-cli"
    path.parent.mkdir()
    path.write_text(FAKE_CLI)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@fixture
def write_config(tmp_path: Path) -> Callable[[Any], Path]:
    """
    Get function to write config source with the given contents.
    """

    def write(data: Any) -> Path:
        path = tmp_path / "config.json"
        path.write_text(data if isinstance(data, str) else json.dumps(data))
        return path

    return write


@fixture
def account() -> AccountConfig:
    return AccountConfig.model_validate(HOME_ACCOUNT)


@fixture
def log_sink() -> LogSink:
    return LogSink("test.log")


@fixture
def supervisor(log_sink: LogSink) -> ProcessSupervisor:
    return ProcessSupervisor(log_sink)


@fixture
def selections() -> list[tuple[str, list[str]]]:
    """
    Records calls to the selector created by `selector` fixture.
    """
    return []


@fixture
def create_orchestrator(
    fake_cli: Path,
    supervisor: ProcessSupervisor,
    selections: list[tuple[str, list[str]]],
) -> Callable[..., Orchestrator]:
    """
    Get function to create orchestrator using the fake CLI, choosing `choice`
    when multiple accounts are configured.
    """

    def create(
        config_path: Path, choice: str | None = None, **kwargs
    ) -> Orchestrator:
        def selector(label: str, names: list[str]) -> str:
            selections.append((label, names))
            assert choice is not None, "Unexpected prompt"
            return choice

        return Orchestrator(
            ConfigStore(config_path, selector),
            builder=CommandBuilder(str(fake_cli)),
            supervisor=supervisor,
            **kwargs,
        )

    return create
