"""
Resolution of named remote accounts from the JSON config source.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .exceptions import AccountNotFound, ConfigMalformed, ConfigNotFound

__all__ = [
    "AccountConfig",
    "AccountSelector",
    "ConfigStore",
]

AccountSelector = Callable[[str, list[str]], str]
"""
Blocking selection of one account name: called with a prompt label and the
candidate names, returns the chosen name.
"""


class AccountConfig(BaseModel):
    """
    Encapsulates a remote account of the note service.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    """
    Unique, user-visible alias of this account.
    """

    remote_address: str = Field(alias="remoteAddress")
    """
    Address of the remote service.
    """

    token: str
    """
    Opaque credential. Never placed on an account-name command line.
    """


_source_adapter: TypeAdapter[list[AccountConfig] | AccountConfig] = (
    TypeAdapter(list[AccountConfig] | AccountConfig)
)


class ConfigStore:
    """
    Loads accounts from the config source and resolves the one to use for
    a request.

    The source is re-read on every call; it may change between requests.
    """

    path: Path
    """
    Location of the JSON config source.
    """

    _selector: AccountSelector | None
    """
    Callback to choose among multiple accounts.
    """

    def __init__(self, path: Path, selector: AccountSelector | None = None):
        self.path = Path(path).expanduser()
        self._selector = selector

    def load_accounts(self) -> list[AccountConfig]:
        """
        Load all accounts in source order, which may be empty.

        :raises ConfigNotFound: Source does not exist or can't be read
        :raises ConfigMalformed: Source can't be parsed into accounts
        """
        try:
            data = self.path.read_bytes()
        except FileNotFoundError:
            raise ConfigNotFound(self.path)
        except OSError as e:
            raise ConfigNotFound(self.path, reason=str(e))

        try:
            source = _source_adapter.validate_json(data.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise ConfigMalformed(self.path, f"not valid UTF-8: {e}")
        except ValidationError as e:
            raise ConfigMalformed(self.path, str(e))

        return source if isinstance(source, list) else [source]

    def candidates(self) -> list[str]:
        """
        Get account names in source order with duplicates listed once.
        """
        return list(_lookup(self.load_accounts()).keys())

    def resolve(self, prompt_label: str) -> AccountConfig:
        """
        Resolve the account to use. A single account is returned without
        prompting; otherwise the selector is asked to choose by name.

        :param prompt_label: Label to show when asking the user
        """
        accounts = self.load_accounts()

        if not len(accounts):
            raise ConfigMalformed(self.path, "no accounts configured")

        if len(accounts) == 1:
            return accounts[0]

        lookup = _lookup(accounts)

        assert (
            self._selector is not None
        ), f"Multiple accounts in '{self.path}' but no selector provided"

        name = self._selector(prompt_label, list(lookup.keys()))

        account = lookup.get(name)
        if account is None:
            raise AccountNotFound(name, self.path)

        return account


def _lookup(accounts: list[AccountConfig]) -> dict[str, AccountConfig]:
    """
    Map names to accounts; a later duplicate overwrites an earlier one but
    keeps its position.
    """
    lookup: dict[str, AccountConfig] = {}
    for account in accounts:
        lookup[account.name] = account
    return lookup
