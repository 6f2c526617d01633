"""
Construction of external command invocations.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .config import AccountConfig
from .exceptions import UnsupportedOperation

__all__ = [
    "DEFAULT_EXECUTABLE",
    "DEBUG_FLAG",
    "Operation",
    "Invocation",
    "CommandBuilder",
    "escape_path",
    "fixed_invocation",
]

DEFAULT_EXECUTABLE = "orgnote-cli"
"""
Name of the external sync tool.
"""

DEBUG_FLAG = "--debug"
"""
Flag appended to every command line in debug mode.
"""

ACCOUNT_FLAG = "--accountName"
REMOTE_ADDRESS_FLAG = "--remote-address"
TOKEN_FLAG = "--token"


class Operation(str, Enum):
    """
    Operations supported by the external tool.
    """

    PUBLISH = "publish"
    """Publish a single file"""

    PUBLISH_ALL = "publish-all"
    """Publish all files"""

    LOAD = "load"
    """Receive notes from the remote"""

    SYNC = "sync"
    """Bidirectional sync"""

    @property
    def is_receive(self) -> bool:
        """
        Whether this operation receives notes from the remote.
        """
        return self in (Operation.LOAD, Operation.SYNC)

    @classmethod
    def parse(cls, operation: str | Operation) -> Operation:
        """
        Get operation from its token.

        :raises UnsupportedOperation: Token not in the supported set
        """
        if isinstance(operation, Operation):
            return operation
        try:
            return cls(operation)
        except ValueError:
            raise UnsupportedOperation(operation, [o.value for o in cls])


@dataclass(frozen=True, kw_only=True)
class Invocation:
    """
    Fully-resolved description of one external command execution.
    """

    executable: str
    operation: Operation | None = None
    """
    Operation of the sync tool, or `None` for a fixed command.
    """

    account_name: str | None = None
    extra_args: tuple[str, ...] = ()

    remote_address: str | None = None
    token: str | None = None
    """
    Direct credentials, only set for the direct-flag form.
    """

    args: tuple[str, ...] = ()
    """
    Literal tokens of the command line, excluding the executable.
    """

    argv: tuple[str, ...] = ()
    """
    Argument vector passed to the process: the executable followed by the
    unescaped arguments.
    """

    @property
    def name(self) -> str:
        return self.operation.value if self.operation else self.executable

    @property
    def tokens(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def command_line(self) -> str:
        """
        Literal command line as it would be typed in a shell.
        """
        return " ".join(self.tokens)


class CommandBuilder:
    """
    Validates operations and assembles invocations of the external tool.
    """

    executable: str

    def __init__(self, executable: str = DEFAULT_EXECUTABLE):
        self.executable = executable

    def build(
        self,
        operation: str | Operation,
        account: AccountConfig,
        extra_args: Iterable[str] = (),
    ) -> Invocation:
        """
        Build invocation identifying the account by name.

        :raises UnsupportedOperation: Operation not supported by the tool
        """
        op = Operation.parse(operation)
        raw_extra = tuple(extra_args)
        extra = tuple(escape_path(a) for a in raw_extra)

        return Invocation(
            executable=self.executable,
            operation=op,
            account_name=account.name,
            extra_args=extra,
            args=(op.value, ACCOUNT_FLAG, f'"{account.name}"', *extra),
            argv=(
                self.executable,
                op.value,
                ACCOUNT_FLAG,
                account.name,
                *raw_extra,
            ),
        )

    def build_direct(
        self,
        path: str,
        *,
        remote_address: str | None = None,
        token: str | None = None,
    ) -> Invocation:
        """
        Build `publish` invocation passing the address and token directly
        rather than by account name.
        """
        args: list[str] = [Operation.PUBLISH.value]

        if remote_address:
            args += [REMOTE_ADDRESS_FLAG, remote_address]
        if token:
            args += [TOKEN_FLAG, token]

        escaped = escape_path(path)
        argv = [self.executable, *args, path]
        args.append(escaped)

        return Invocation(
            executable=self.executable,
            operation=Operation.PUBLISH,
            extra_args=(escaped,),
            remote_address=remote_address,
            token=token,
            args=tuple(args),
            argv=tuple(argv),
        )


def escape_path(arg: str) -> str:
    """
    Escape each space with a single backslash so the argument is parsed as
    one token.
    """
    return arg.replace(" ", "\\ ")


def fixed_invocation(command_line: str) -> Invocation:
    """
    Wrap a fixed command line which is not an operation of the sync tool,
    e.g. installing the tool itself.
    """
    executable, *args = command_line.split()
    return Invocation(
        executable=executable, args=tuple(args), argv=(executable, *args)
    )
