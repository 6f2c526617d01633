"""
Entry point of `orgnote-sync` CLI.

Each command launches `orgnote-cli` in the background, streams its output to
the log and exits with the exit code of the external tool once it terminates.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

import dotenv
from click.exceptions import BadParameter, ClickException, UsageError
from pydantic import ValidationError
from typer import Argument, Context, Exit, Option

from ...core import (
    ConfigError,
    ConfigMalformed,
    ConfigNotFound,
    ConfigStore,
    Orchestrator,
    ProcessSpawnError,
    SupervisedProcess,
    UnsupportedDocument,
    UnsupportedOperation,
    after_receive_hook,
)
from ..settings import Settings
from ..watch import watch as watch_folder
from ._utils import (
    MainTyper,
    console,
    get_root_context,
    logger,
    lookup_param,
    prompt_account,
)

DEFAULT_SETTINGS_FILE = Path("orgnote-sync.yaml")

OperationFactory = Callable[[Orchestrator], Awaitable[SupervisedProcess]]

dotenv.load_dotenv()

app = MainTyper(
    "orgnote-sync",
    help="Publish, load and sync notes using orgnote-cli",
)


@app.callback()
def main(
    ctx: Context,
    settings_file: Path
    | None = Option(
        None,
        help=f".yaml file containing settings, defaults to '{DEFAULT_SETTINGS_FILE}' if it exists",
        envvar="ORGNOTE_SYNC_SETTINGS_FILE",
        dir_okay=False,
    ),
    config_file: Path
    | None = Option(
        None,
        help="JSON file containing accounts",
        envvar="ORGNOTE_CONFIG_FILE",
        dir_okay=False,
    ),
    executable: str
    | None = Option(
        None,
        help="Name or path of orgnote-cli executable",
        envvar="ORGNOTE_EXECUTABLE",
    ),
    debug: bool
    | None = Option(
        None,
        "--debug/--no-debug",
        help="Pass --debug to orgnote-cli",
        envvar="ORGNOTE_DEBUG",
    ),
    log_name: str
    | None = Option(
        None,
        help="Name of log receiving orgnote-cli output",
        envvar="ORGNOTE_LOG_NAME",
    ),
):
    # load environment variables from .env file if it exists
    dotenv.load_dotenv(Path(".env").resolve(), override=True)

    overrides = {
        k: v
        for k, v in {
            "config_file": config_file,
            "executable": executable,
            "debug": debug,
            "log_name": log_name,
        }.items()
        if v is not None
    }

    root_context = RootContext.from_settings(
        ctx=ctx, settings_file=settings_file, overrides=overrides
    )

    try:
        root_context.settings.register_listeners(after_receive_hook)
    except ValueError as e:
        raise BadParameter(
            f"failed to register after_receive listener: {e}",
            ctx=ctx,
            param=lookup_param(ctx, "settings_file"),
        )

    ctx.obj = root_context


@app.command()
def install_deps(ctx: Context):
    """
    Install orgnote-cli using npm
    """
    _run(ctx, lambda o: o.install_dependencies(_on_complete))


@app.command()
def publish(
    ctx: Context,
    path: Path = Argument(
        help="File to publish",
        dir_okay=False,
        exists=True,
    ),
):
    """
    Publish a single file
    """
    _run(ctx, lambda o: o.publish_file(path, _on_complete))


@app.command()
def publish_all(ctx: Context):
    """
    Publish all notes
    """
    _run(ctx, lambda o: o.publish_all(_on_complete))


@app.command()
def load(ctx: Context):
    """
    Load notes from remote
    """
    _run(ctx, lambda o: o.load(_on_complete))


@app.command()
def sync(ctx: Context):
    """
    Sync notes with remote
    """
    _run(ctx, lambda o: o.sync(_on_complete))


@app.command()
def publish_direct(
    ctx: Context,
    path: Path = Argument(
        help="File to publish",
        dir_okay=False,
        exists=True,
    ),
    remote_address: str
    | None = Option(
        None,
        help="Address of remote, instead of an account from config file",
    ),
    token: str
    | None = Option(
        None,
        help="Token for remote",
        envvar="ORGNOTE_TOKEN",
    ),
):
    """
    Publish a single file using remote address and token directly
    """
    _run(
        ctx,
        lambda o: o.publish_direct(
            path,
            remote_address=remote_address,
            token=token,
            on_complete=_on_complete,
        ),
    )


@app.command()
def accounts(ctx: Context):
    """
    List accounts in config file
    """
    root_context = get_root_context(ctx)
    config_store = ConfigStore(root_context.settings.config_file)

    try:
        names = config_store.candidates()
    except ConfigNotFound as e:
        logger.warning(str(e))
        raise Exit(code=1)
    except ConfigMalformed as e:
        raise ClickException(str(e))

    if not len(names):
        logger.warning(f"No accounts in '{config_store.path}'")

    for name in names:
        console.print(name)


@app.command()
def init_settings(
    ctx: Context,
    path: Path = Argument(
        DEFAULT_SETTINGS_FILE,
        help="Destination .yaml file",
        dir_okay=False,
    ),
    overwrite: bool = Option(
        False, help="Whether to overwrite destination file if it already exists"
    ),
):
    """
    Write current settings to a .yaml file
    """
    root_context = get_root_context(ctx)

    if not path.parent.exists():
        raise BadParameter(
            f"Parent folder of '{path}' does not exist",
            ctx=ctx,
            param=lookup_param(ctx, "path"),
        )

    if path.exists() and not overwrite:
        raise UsageError(
            f"Destination '{path}' exists and --overwrite was not passed",
            ctx=ctx,
        )

    root_context.settings.dump_yaml(path)
    logger.info(f"Wrote settings to '{path}'")


@app.command()
def watch(
    ctx: Context,
    folder: Path = Argument(
        help="Folder containing notes",
        file_okay=False,
        exists=True,
    ),
):
    """
    Enable sync mode on notes in folder, publishing each note when it's saved
    """
    root_context = get_root_context(ctx)
    orchestrator = root_context.create_orchestrator()

    try:
        asyncio.run(watch_folder(folder, orchestrator))
    except KeyboardInterrupt:
        logger.info("Stopped watching")


def run():
    app()


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    settings: Settings

    @classmethod
    def from_settings(
        cls,
        *,
        ctx: Context,
        settings_file: Path | None,
        overrides: dict,
    ) -> RootContext:
        if settings_file is None:
            settings_file = (
                DEFAULT_SETTINGS_FILE if DEFAULT_SETTINGS_FILE.is_file() else None
            )
        elif not settings_file.is_file():
            raise BadParameter(
                message=f"file does not exist: {settings_file}",
                ctx=ctx,
                param=lookup_param(ctx, "settings_file"),
            )

        try:
            settings = (
                Settings.load_yaml(settings_file, **overrides)
                if settings_file
                else Settings(**overrides)
            )
        except (ValueError, ValidationError) as e:
            raise BadParameter(
                f"failed to load settings '{settings_file}': {e}",
                ctx=ctx,
                param=lookup_param(ctx, "settings_file"),
            )

        return RootContext(ctx=ctx, settings=settings)

    def create_orchestrator(self) -> Orchestrator:
        return self.settings.create_orchestrator(selector=prompt_account)


def _on_complete(process: SupervisedProcess):
    logger.info(
        f"Finished: {process.command_line} (exit code {process.returncode})"
    )


def _run(ctx: Context, operation: OperationFactory):
    """
    Launch operation and wait for it, exiting with its exit code.
    """
    root_context = get_root_context(ctx)
    orchestrator = root_context.create_orchestrator()

    returncode = asyncio.run(_launch_and_wait(ctx, orchestrator, operation))

    if returncode != 0:
        raise Exit(code=returncode)


async def _launch_and_wait(
    ctx: Context, orchestrator: Orchestrator, operation: OperationFactory
) -> int:
    try:
        process = await operation(orchestrator)
    except ConfigNotFound as e:
        # nothing to resolve an account from
        logger.warning(str(e))
        raise Exit(code=1)
    except (UnsupportedOperation, UnsupportedDocument) as e:
        raise BadParameter(str(e), ctx=ctx)
    except (ConfigError, ProcessSpawnError) as e:
        raise ClickException(str(e))

    return await process.wait()


if __name__ == "__main__":
    app()
