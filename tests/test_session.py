import asyncio
import logging
import os
import signal
import sys

import pytest

from next_run.local.supervisor import browser
from next_run.local.supervisor.errors import ProbeTimeoutError, SessionStateError, SpawnError
from next_run.local.supervisor.models import LaunchRequest, SessionState
from next_run.local.supervisor.session import SessionController

from conftest import FakeProcess, Recorder

S = SessionState


def _request(host="127.0.0.1", port=4000):
    return LaunchRequest.for_dev_server(port=port, host=host)


def _spawner(process, spawned=None):
    async def spawn(command):
        if spawned is not None:
            spawned.append(command)
        return process
    return spawn


async def _probe_ready(host, port, timeout):
    return None


async def _probe_never_ready(host, port, timeout):
    await asyncio.Event().wait()


def _controller(process, probe=_probe_never_ready, opener=None, host="127.0.0.1", port=4000, spawned=None, **kwargs):
    kwargs.setdefault("handle_signals", False)
    return SessionController(
        _request(host, port),
        spawn=_spawner(process, spawned),
        probe=probe,
        open_browser=opener or Recorder(),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_spawn_error_exits_with_one_and_never_probes():
    probe_calls = Recorder()

    async def failing_spawn(command):
        raise SpawnError(command, "executable 'npx' not found")

    async def probe(host, port, timeout):
        probe_calls(host, port)

    controller = SessionController(_request(), spawn=failing_spawn, probe=probe, handle_signals=False)
    assert await controller.run() == 1

    assert controller.state is S.EXITED
    assert controller.exit_code == 1
    assert controller.history == [S.STARTING, S.EXITED]
    assert probe_calls.calls == []


@pytest.mark.asyncio
async def test_operator_shutdown_terminates_child_and_exits_zero_immediately():
    process = FakeProcess()
    controller = _controller(process)
    asyncio.get_running_loop().call_later(0.05, controller.request_shutdown, signal.SIGINT)

    # The fake child never exits: the session must not wait for it.
    assert await asyncio.wait_for(controller.run(), timeout=2) == 0

    assert process.terminate_calls == 1
    assert process.returncode is None
    assert controller.history == [S.STARTING, S.RUNNING, S.SHUTTING_DOWN, S.EXITED]
    assert controller.exit_code == 0


@pytest.mark.asyncio
async def test_second_shutdown_request_is_ignored():
    process = FakeProcess()
    controller = _controller(process)
    loop = asyncio.get_running_loop()
    loop.call_later(0.05, controller.request_shutdown, signal.SIGINT)
    loop.call_later(0.05, controller.request_shutdown, signal.SIGTERM)

    assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert process.terminate_calls == 1


@pytest.mark.asyncio
async def test_child_nonzero_exit_is_warned_and_propagated(caplog):
    process = FakeProcess()
    controller = _controller(process)
    asyncio.get_running_loop().call_later(0.05, process.finish, 3)

    with caplog.at_level(logging.WARNING):
        assert await asyncio.wait_for(controller.run(), timeout=2) == 3

    assert controller.history == [S.STARTING, S.RUNNING, S.EXITED]
    assert process.terminate_calls == 0
    assert any("exited with code 3" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_child_clean_exit_returns_zero(caplog):
    process = FakeProcess()
    controller = _controller(process)
    asyncio.get_running_loop().call_later(0.05, process.finish, 0)

    with caplog.at_level(logging.WARNING):
        assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


@pytest.mark.asyncio
async def test_child_killed_by_signal_exits_with_default_status():
    process = FakeProcess()
    controller = _controller(process)
    asyncio.get_running_loop().call_later(0.05, process.finish, None)

    assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert controller.exit_code is None
    assert controller.exit_status == 0


@pytest.mark.asyncio
async def test_browser_opens_exactly_once_when_ready():
    process = FakeProcess()
    opener = Recorder()
    probed = []

    async def probe(host, port, timeout):
        probed.append((host, port))

    controller = _controller(process, probe=probe, opener=opener)
    asyncio.get_running_loop().call_later(0.1, process.finish, 0)

    assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert probed == [("127.0.0.1", 4000)]
    assert opener.calls == [(("http://127.0.0.1:4000",), {})]


@pytest.mark.asyncio
async def test_wildcard_host_is_probed_as_localhost():
    process = FakeProcess()
    opener = Recorder()
    spawned = []
    probed = []

    async def probe(host, port, timeout):
        probed.append(host)

    controller = _controller(process, probe=probe, opener=opener, host="0.0.0.0", spawned=spawned)
    asyncio.get_running_loop().call_later(0.1, process.finish, 0)
    await asyncio.wait_for(controller.run(), timeout=2)

    assert "--hostname 0.0.0.0" in spawned[0]
    assert probed == ["localhost"]
    assert opener.calls == [(("http://localhost:4000",), {})]


@pytest.mark.asyncio
async def test_probe_timeout_is_reported_but_not_fatal(caplog):
    process = FakeProcess()
    opener = Recorder()

    async def probe(host, port, timeout):
        raise ProbeTimeoutError(host, port, timeout)

    controller = _controller(process, probe=probe, opener=opener)
    loop = asyncio.get_running_loop()

    async def check_still_running():
        await asyncio.sleep(0.05)
        assert controller.state is S.RUNNING
        process.finish(0)

    checker = loop.create_task(check_still_running())
    with caplog.at_level(logging.WARNING):
        assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    await checker

    assert opener.calls == []
    assert any("Could not auto-open browser" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_probe_is_cancelled_when_session_exits():
    process = FakeProcess()
    opener = Recorder()
    outcome = []

    async def probe(host, port, timeout):
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            outcome.append("cancelled")
            raise

    controller = _controller(process, probe=probe, opener=opener)
    asyncio.get_running_loop().call_later(0.05, process.finish, 0)
    await asyncio.wait_for(controller.run(), timeout=2)

    assert outcome == ["cancelled"]
    assert opener.calls == []
    assert not controller._tasks


@pytest.mark.asyncio
async def test_no_browser_when_probe_returns_after_exit():
    process = FakeProcess()
    opener = Recorder()
    controller = None

    async def probe(host, port, timeout):
        # Becomes ready at the very moment the session is torn down.
        controller.request_shutdown()

    controller = _controller(process, probe=probe, opener=opener)
    assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert opener.calls == []


@pytest.mark.asyncio
async def test_failing_browser_launcher_does_not_change_state(monkeypatch):
    def broken_popen(*args, **kwargs):
        raise FileNotFoundError("xdg-open")

    monkeypatch.setattr(browser.subprocess, "Popen", broken_popen)
    process = FakeProcess()
    states = []

    def opener(url):
        browser.open_browser(url)
        states.append(controller.state)

    controller = _controller(process, probe=_probe_ready, opener=opener)
    asyncio.get_running_loop().call_later(0.1, controller.request_shutdown)

    assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert states == [S.RUNNING]


@pytest.mark.asyncio
async def test_auto_open_disabled_skips_probing():
    process = FakeProcess()
    probed = []

    async def probe(host, port, timeout):
        probed.append(host)

    controller = _controller(process, probe=probe, auto_open=False)
    asyncio.get_running_loop().call_later(0.05, process.finish, 0)
    await asyncio.wait_for(controller.run(), timeout=2)
    assert probed == []


@pytest.mark.asyncio
async def test_crashing_background_task_ends_the_session():
    process = FakeProcess()

    async def probe(host, port, timeout):
        raise RuntimeError("boom")

    controller = _controller(process, probe=probe)
    assert await asyncio.wait_for(controller.run(), timeout=2) == 1
    assert process.terminate_calls == 1


def test_exited_is_terminal():
    controller = SessionController(_request(), handle_signals=False)
    controller._transition(S.EXITED, 1)

    with pytest.raises(SessionStateError):
        controller._transition(S.RUNNING)
    with pytest.raises(SessionStateError):
        controller._transition(S.EXITED, 0)


def test_starting_cannot_skip_to_shutting_down():
    controller = SessionController(_request(), handle_signals=False)
    with pytest.raises(SessionStateError):
        controller._transition(S.SHUTTING_DOWN)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signal delivery")
@pytest.mark.asyncio
async def test_real_sigint_triggers_shutdown_and_handlers_are_removed():
    loop = asyncio.get_running_loop()
    process = FakeProcess()
    controller = _controller(process, handle_signals=True)
    loop.call_later(0.05, os.kill, os.getpid(), signal.SIGINT)

    assert await asyncio.wait_for(controller.run(), timeout=2) == 0
    assert process.terminate_calls == 1
    assert loop.remove_signal_handler(signal.SIGINT) is False
    assert loop.remove_signal_handler(signal.SIGTERM) is False


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX command line quoting")
@pytest.mark.asyncio
async def test_end_to_end_with_real_server(free_port, python_command):
    server_code = (
        "import socket, sys, time\n"
        "s = socket.socket()\n"
        "s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)\n"
        "time.sleep(0.3)\n"
        "s.bind(('127.0.0.1', int(sys.argv[1])))\n"
        "s.listen()\n"
        "time.sleep(30)\n"
    )
    request = LaunchRequest(port=free_port, host="127.0.0.1", command=python_command(server_code, str(free_port)))
    opened = []

    def opener(url):
        opened.append(url)
        asyncio.get_running_loop().call_soon(controller.request_shutdown)

    controller = SessionController(request, open_browser=opener, probe_timeout=10, handle_signals=False)
    assert await asyncio.wait_for(controller.run(), timeout=15) == 0

    assert opened == [f"http://127.0.0.1:{free_port}"]
    assert controller.history == [S.STARTING, S.RUNNING, S.SHUTTING_DOWN, S.EXITED]
    # The terminate request lands: the server dies of SIGTERM.
    assert await asyncio.wait_for(controller.process.wait(), timeout=5) is None
