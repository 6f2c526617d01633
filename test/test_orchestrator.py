from pathlib import Path

from pytest import MonkeyPatch, mark, raises

from orgnote_sync import (
    ConfigMalformed,
    ConfigNotFound,
    LogSink,
    Operation,
    ProcessState,
    SupervisedProcess,
    UnsupportedDocument,
    UnsupportedOperation,
    after_receive_hook,
)

from .conftest import HOME_ACCOUNT, WORK_ACCOUNT


def _args(log_sink: LogSink) -> list[str]:
    """
    Get arguments echoed by the fake CLI.
    """
    return [l[len("arg: ") :] for l in log_sink.lines if l.startswith("arg: ")]


@mark.asyncio
async def test_publish_file(
    write_config, create_orchestrator, fake_cli: Path, log_sink: LogSink
):
    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT))
    calls: list[SupervisedProcess] = []

    process = await orchestrator.publish_file("/tmp/my notes.org", calls.append)

    assert (
        process.command_line
        == f'{fake_cli} publish --accountName "home" /tmp/my\\ notes.org'
    )
    assert process.invocation.operation is Operation.PUBLISH

    assert await process.wait() == 0
    assert calls == [process]
    assert process.state is ProcessState.COMPLETED

    assert _args(log_sink) == [
        "publish",
        "--accountName",
        "home",
        "/tmp/my notes.org",
    ]


@mark.asyncio
async def test_publish_quotes(
    write_config, create_orchestrator, fake_cli: Path, log_sink: LogSink
):
    account = {**HOME_ACCOUNT, "name": 'my "home"'}
    orchestrator = create_orchestrator(write_config(account))

    process = await orchestrator.publish_file("/tmp/it's notes.org")

    assert (
        process.command_line
        == f'{fake_cli} publish --accountName "my "home"" /tmp/it\'s\\ notes.org'
    )
    assert await process.wait() == 0

    # arguments reach the tool unchanged
    assert _args(log_sink) == [
        "publish",
        "--accountName",
        'my "home"',
        "/tmp/it's notes.org",
    ]


@mark.asyncio
async def test_publish_direct_quotes(
    create_orchestrator, tmp_path: Path, log_sink: LogSink
):
    orchestrator = create_orchestrator(tmp_path / "unused.json")

    process = await orchestrator.publish_direct(
        '/tmp/"quoted" notes.org', remote_address="https://x", token="t"
    )
    assert await process.wait() == 0

    assert _args(log_sink)[-1] == '/tmp/"quoted" notes.org'


@mark.asyncio
async def test_publish_not_syncable(write_config, create_orchestrator):
    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT))

    with raises(UnsupportedDocument):
        await orchestrator.publish_file("/tmp/notes.md")

    assert orchestrator.supervisor.running == []


@mark.asyncio
@mark.parametrize(
    "method,operation",
    [
        ("publish_all", "publish-all"),
        ("load", "load"),
        ("sync", "sync"),
    ],
)
async def test_operations(
    write_config,
    create_orchestrator,
    selections,
    log_sink: LogSink,
    method: str,
    operation: str,
):
    orchestrator = create_orchestrator(
        write_config([HOME_ACCOUNT, WORK_ACCOUNT]), choice="work"
    )

    process = await getattr(orchestrator, method)()
    await process.wait()

    assert selections == [("Choose account: ", ["home", "work"])]
    assert _args(log_sink) == [operation, "--accountName", "work"]


@mark.asyncio
@mark.parametrize("method", ["load", "sync"])
async def test_receive_hook(write_config, create_orchestrator, method: str):
    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT))
    order: list[str] = []

    after_receive_hook.register(lambda: order.append("listener 1"))
    after_receive_hook.register(lambda: order.append("listener 2"))

    def on_complete(process: SupervisedProcess):
        assert process.done
        order.append("callback")

    process = await getattr(orchestrator, method)(on_complete)

    # not before receipt completes
    assert order == []

    await process.wait()
    assert order == ["callback", "listener 1", "listener 2"]


@mark.asyncio
@mark.parametrize("method", ["publish_all", "install_dependencies"])
async def test_no_receive_hook(
    write_config, create_orchestrator, fake_cli: Path, method: str
):
    orchestrator = create_orchestrator(
        write_config(HOME_ACCOUNT), install_command=f"{fake_cli} install"
    )
    order: list[str] = []

    after_receive_hook.register(lambda: order.append("listener"))

    process = await getattr(orchestrator, method)()
    await process.wait()

    assert order == []


@mark.asyncio
async def test_receive_hook_callback_error(write_config, create_orchestrator):
    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT))
    order: list[str] = []

    after_receive_hook.register(lambda: order.append("listener"))

    def on_complete(process: SupervisedProcess):
        raise RuntimeError("callback failed")

    process = await orchestrator.load(on_complete)

    with raises(RuntimeError):
        await process.wait()

    # only notified after callback fired successfully
    assert order == []


@mark.asyncio
async def test_install_dependencies(
    write_config, create_orchestrator, fake_cli: Path, log_sink: LogSink, tmp_path
):
    # no config source needed
    orchestrator = create_orchestrator(
        tmp_path / "nonexistent.json",
        install_command=f"{fake_cli} install -g orgnote-cli",
    )

    process = await orchestrator.install_dependencies()
    assert process.invocation.operation is None
    assert await process.wait() == 0

    assert _args(log_sink) == ["install", "-g", "orgnote-cli"]


@mark.asyncio
async def test_publish_direct(
    tmp_path: Path, create_orchestrator, fake_cli: Path, log_sink: LogSink
):
    # no config source needed
    orchestrator = create_orchestrator(tmp_path / "nonexistent.json")

    process = await orchestrator.publish_direct(
        "/tmp/my notes.org", remote_address="https://x", token="t"
    )
    await process.wait()

    assert _args(log_sink) == [
        "publish",
        "--remote-address",
        "https://x",
        "--token",
        "t",
        "/tmp/my notes.org",
    ]


@mark.asyncio
async def test_debug(write_config, create_orchestrator, log_sink: LogSink):
    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT), debug=True)

    process = await orchestrator.sync()
    await process.wait()

    assert process.command_line.endswith(" --debug")
    assert _args(log_sink)[-1] == "--debug"


@mark.asyncio
async def test_errors(tmp_path: Path, write_config, create_orchestrator):
    # nonexistent config
    orchestrator = create_orchestrator(tmp_path / "nonexistent.json")
    with raises(ConfigNotFound):
        await orchestrator.sync()

    # malformed config
    orchestrator = create_orchestrator(write_config("[]"))
    with raises(ConfigMalformed):
        await orchestrator.publish_all()

    # unsupported operation is reported before resolving the account
    orchestrator = create_orchestrator(tmp_path / "nonexistent.json")
    with raises(UnsupportedOperation):
        await orchestrator.run_operation("delete")

    assert orchestrator.supervisor.running == []


@mark.asyncio
async def test_sync_mode(
    monkeypatch: MonkeyPatch,
    write_config,
    create_orchestrator,
    log_sink: LogSink,
):
    monkeypatch.setenv("FAKE_ORGNOTE_SLEEP", "0.2")

    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT))
    doc = orchestrator.open_document("/tmp/my notes.org")

    assert orchestrator.toggle_sync_mode(doc) is True

    # persist returns once the publish was launched, without waiting for it
    await doc.persist()

    running = orchestrator.supervisor.running
    assert len(running) == 1
    assert running[0].invocation.operation is Operation.PUBLISH
    assert running[0].invocation.extra_args == ("/tmp/my\\ notes.org",)

    assert await running[0].wait() == 0

    assert orchestrator.toggle_sync_mode(doc) is False

    await doc.persist()
    assert orchestrator.supervisor.running == []


@mark.asyncio
async def test_sync_mode_non_syncable(
    write_config, create_orchestrator, log_sink: LogSink
):
    orchestrator = create_orchestrator(write_config(HOME_ACCOUNT))
    doc = orchestrator.open_document("/tmp/notes.md")

    assert orchestrator.toggle_sync_mode(doc) is True
    assert doc.before_persist_listeners == []

    await doc.persist()

    assert orchestrator.supervisor.running == []
    assert log_sink.lines == []


def test_syncable_suffixes(write_config, create_orchestrator):
    orchestrator = create_orchestrator(
        write_config(HOME_ACCOUNT), syncable_suffixes=[".org", ".md"]
    )

    assert orchestrator.is_syncable("/tmp/notes.md")
    assert orchestrator.open_document("/tmp/notes.md").is_syncable
    assert not orchestrator.is_syncable("/tmp/notes.txt")
