"""
Supervised asynchronous execution of external commands.

A process is spawned with {obj}`ProcessSupervisor.launch`, which returns as
soon as the process has started. A watcher task owned by the returned
{obj}`SupervisedProcess` streams its output into the log sink and performs
the single transition to {obj}`ProcessState.COMPLETED` once the process has
terminated.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from logging import Logger
from typing import Callable

from .command import DEBUG_FLAG, Invocation
from .exceptions import ProcessFailed, ProcessSpawnError

__all__ = [
    "CompletionCallback",
    "LogSink",
    "ProcessState",
    "ProcessSupervisor",
    "SupervisedProcess",
]

DEFAULT_LOG_NAME = "orgnote-sync.log"

CompletionCallback = Callable[["SupervisedProcess"], None]


class ProcessState(Enum):
    """
    Lifecycle state of a supervised process.
    """

    RUNNING = auto()
    """Spawned and not yet terminated"""

    COMPLETED = auto()
    """Terminated with any exit status; terminal"""


class LogSink:
    """
    Append-only sink receiving process output and lifecycle records.
    Shared by all processes of a supervisor; lines of concurrent processes
    may interleave.
    """

    name: str
    lines: list[str]
    _logger: Logger

    def __init__(self, name: str = DEFAULT_LOG_NAME, logger: Logger | None = None):
        self.name = name
        self.lines = []
        self._logger = (logger or logging.getLogger("orgnote-sync")).getChild(
            name
        )

    def write(self, line: str):
        self.lines.append(line)
        self._logger.info(line)

    def __str__(self) -> str:
        return "\n".join(self.lines)


class SupervisedProcess:
    """
    Handle to a spawned external command.
    """

    invocation: Invocation
    command_line: str
    """
    Literal command line as spawned, including the debug flag if any.
    """

    log_sink: LogSink
    state: ProcessState
    returncode: int | None

    _process: asyncio.subprocess.Process
    _on_complete: CompletionCallback | None
    _completed: bool
    _finished: asyncio.Future[int]
    _watcher: asyncio.Task[None]

    def __init__(
        self,
        invocation: Invocation,
        command_line: str,
        process: asyncio.subprocess.Process,
        log_sink: LogSink,
        on_complete: CompletionCallback | None,
    ):
        self.invocation = invocation
        self.command_line = command_line
        self.log_sink = log_sink
        self.state = ProcessState.RUNNING
        self.returncode = None

        self._process = process
        self._on_complete = on_complete
        self._completed = False
        self._finished = asyncio.get_running_loop().create_future()
        self._watcher = asyncio.create_task(self._supervise())
        self._watcher.add_done_callback(self._log_failure)

    def __repr__(self) -> str:
        return f"SupervisedProcess(pid={self.pid}, state={self.state.name}, command_line='{self.command_line}')"

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def finished(self) -> asyncio.Future[int]:
        """
        Future resolved with the exit code upon termination, before the
        completion callback runs.
        """
        return self._finished

    @property
    def done(self) -> bool:
        return self.state is ProcessState.COMPLETED

    async def wait(self) -> int:
        """
        Wait for termination and the completion callback, returning the exit
        code. Re-raises any exception raised by the completion callback.
        """
        await asyncio.shield(self._watcher)
        assert self.returncode is not None
        return self.returncode

    def check(self):
        """
        Raise if the process terminated with a non-zero exit code.
        """
        assert self.done, f"Process {self} has not completed"
        assert self.returncode is not None

        if self.returncode != 0:
            raise ProcessFailed(self.command_line, self.returncode)

    def _log_failure(self, task: asyncio.Task[None]):
        # marks the exception as retrieved
        if not task.cancelled() and task.exception() is not None:
            logging.getLogger("orgnote-sync").error(
                f"Supervision of pid={self.pid} failed: {task.exception()}"
            )

    async def _supervise(self):
        stdout = self._process.stdout
        assert stdout is not None

        async for raw_line in stdout:
            self.log_sink.write(
                raw_line.decode("utf-8", errors="replace").rstrip("\n")
            )

        returncode = await self._process.wait()
        self._complete(returncode)

    def _complete(self, returncode: int):
        """
        Transition to the terminal state. Only the watcher task calls this.
        """
        if self._completed:
            return
        self._completed = True

        self.returncode = returncode
        self.state = ProcessState.COMPLETED

        self.log_sink.write(
            f"Finished '{self.invocation.name}' (pid={self.pid}, exit code {returncode})"
        )

        # forward termination to anyone awaiting the handle
        self._finished.set_result(returncode)

        try:
            if self._on_complete is not None:
                callback, self._on_complete = self._on_complete, None
                try:
                    callback(self)
                except Exception as e:
                    self.log_sink.write(
                        f"Completion callback of pid={self.pid} failed: {e}"
                    )
                    raise
        finally:
            self.log_sink.write(f"Command: {self.command_line}")


class ProcessSupervisor:
    """
    Spawns invocations and keeps track of running processes.
    """

    log_sink: LogSink
    _running: set[SupervisedProcess]

    def __init__(self, log_sink: LogSink | None = None):
        self.log_sink = log_sink or LogSink()
        self._running = set()

    @property
    def running(self) -> list[SupervisedProcess]:
        """
        Processes which have not yet completed.
        """
        return [p for p in self._running if not p.done]

    async def launch(
        self,
        invocation: Invocation,
        on_complete: CompletionCallback | None = None,
        *,
        debug: bool = False,
    ) -> SupervisedProcess:
        """
        Spawn the invocation and return once it has started.

        :param invocation: Invocation to spawn
        :param on_complete: Invoked exactly once after the process terminates
        :param debug: Append the debug flag to the command line
        :raises ProcessSpawnError: The process could not be started
        """
        command_line = invocation.command_line
        argv = list(invocation.argv or invocation.tokens)
        if debug:
            command_line = f"{command_line} {DEBUG_FLAG}"
            argv.append(DEBUG_FLAG)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            self.log_sink.write(f"Failed to start: {command_line}")
            raise ProcessSpawnError(command_line, str(e))

        supervised = SupervisedProcess(
            invocation, command_line, process, self.log_sink, on_complete
        )

        self._running.add(supervised)
        supervised.finished.add_done_callback(
            lambda _: self._running.discard(supervised)
        )

        self.log_sink.write(
            f"Started '{invocation.name}' (pid={supervised.pid})"
        )

        return supervised
