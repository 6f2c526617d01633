__all__ = [
    "OrgnoteSyncError",
    "ConfigError",
    "ConfigNotFound",
    "ConfigMalformed",
    "AccountNotFound",
    "UnsupportedOperation",
    "UnsupportedDocument",
    "ProcessError",
    "ProcessSpawnError",
    "ProcessFailed",
]


class OrgnoteSyncError(Exception):
    """
    Base class of errors raised by this package.
    """


class ConfigError(OrgnoteSyncError):
    """
    Raised when an account could not be resolved from the config source.
    """


class ConfigNotFound(ConfigError):
    """
    Raised when the config source does not exist or can't be read.
    """

    def __init__(self, path, reason: str | None = None):
        self.path = path
        reason_str = f": {reason}" if reason else ""
        super().__init__(f"Config file not found: '{path}'{reason_str}")


class ConfigMalformed(ConfigError):
    """
    Raised when the config source can't be parsed into one or more accounts.
    """

    def __init__(self, path, reason: str):
        self.path = path
        super().__init__(f"Malformed config file '{path}': {reason}")


class AccountNotFound(ConfigError):
    """
    Raised when the selected account name is not present in the config source.
    """

    def __init__(self, name: str, path):
        self.name = name
        self.path = path
        super().__init__(f"Account '{name}' not found in '{path}'")


class UnsupportedOperation(OrgnoteSyncError):
    """
    Raised when building an invocation for an operation the external tool
    doesn't support. Always raised before any process is spawned.
    """

    def __init__(self, operation: str, supported: list[str]):
        self.operation = operation
        supported_str = ", ".join(supported)
        super().__init__(
            f"Unsupported operation '{operation}', expected one of: {supported_str}"
        )


class UnsupportedDocument(OrgnoteSyncError):
    """
    Raised when attempting to publish a document which is not syncable.
    """

    def __init__(self, path):
        self.path = path
        super().__init__(f"Document is not syncable: '{path}'")


class ProcessError(OrgnoteSyncError):
    """
    Base class of errors relating to a supervised process.
    """


class ProcessSpawnError(ProcessError):
    """
    Raised when the external command could not be started.
    """

    def __init__(self, command_line: str, reason: str):
        self.command_line = command_line
        super().__init__(f"Failed to start '{command_line}': {reason}")


class ProcessFailed(ProcessError):
    """
    Raised by {obj}`SupervisedProcess.check` when the process exited with
    a non-zero status.
    """

    def __init__(self, command_line: str, returncode: int):
        self.command_line = command_line
        self.returncode = returncode
        super().__init__(
            f"Command '{command_line}' exited with status {returncode}"
        )
