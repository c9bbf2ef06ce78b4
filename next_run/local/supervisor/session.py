import signal
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from next_run import settings
from next_run.log import status
from . import browser, process_utils, prober
from .errors import ProbeTimeoutError, SessionStateError, SpawnError
from .models import TRANSITIONS, LaunchRequest, SessionState
from .process_utils import ServerProcess
from .shutdown import SignalHandlers

log = logging.getLogger(__name__)


class SessionController:
    """
    Supervises one dev server for the lifetime of a CLI invocation.

    The controller spawns the server, probes its port in the background,
    opens the browser once the port accepts connections, and tears everything
    down on an operator termination signal or when the server exits on its own.
    It is the only owner of the server process and the only writer of the
    session state.
    """

    def __init__(
        self,
        request: LaunchRequest,
        spawn: Callable[[str], Awaitable[ServerProcess]] = process_utils.spawn,
        probe: Callable[..., Awaitable[None]] = prober.wait_for_port,
        open_browser: Callable[[str], None] = browser.open_browser,
        auto_open: bool = True,
        probe_timeout: float = settings.PROBE_TIMEOUT,
        handle_signals: bool = True,
    ) -> None:
        self.request = request
        self.state = SessionState.STARTING
        self.exit_code: Optional[int] = None
        self.history: List[SessionState] = [SessionState.STARTING]

        self._spawn = spawn
        self._probe = probe
        self._open_browser = open_browser
        self._auto_open = auto_open
        self._probe_timeout = probe_timeout
        self._handle_signals = handle_signals

        self._process: Optional[ServerProcess] = None
        self._tasks: Set[asyncio.Task] = set()
        self._exited: Optional[asyncio.Event] = None

    #* --- State Machine ---
    def _transition(self, new_state: SessionState, exit_code: Optional[int] = None) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise SessionStateError(f"Illegal session transition {self.state.name} -> {new_state.name}.")

        log.debug(f"Session state: {self.state.name} -> {new_state.name}")
        self.state = new_state
        self.history.append(new_state)

        if new_state is SessionState.EXITED:
            self.exit_code = exit_code
            self._cancel_background_tasks()
            if self._exited is not None:
                self._exited.set()

    @property
    def process(self) -> Optional[ServerProcess]:
        return self._process

    @property
    def exit_status(self) -> int:
        """The exit status of the invocation: the stored exit code, 0 when there is none."""
        return self.exit_code or 0

    #* --- Background Tasks ---
    def _start_task(self, coro, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled() or task.exception() is None:
            return
        log.error(f"Background task '{task.get_name()}' failed: {task.exception()!r}", exc_info=task.exception())
        if self.state is SessionState.RUNNING:
            self._process.terminate()
            self._transition(SessionState.EXITED, 1)

    def _cancel_background_tasks(self) -> None:
        current = asyncio.current_task()
        for task in list(self._tasks):
            if task is not current and not task.done():
                log.debug(f"Cancelling background task '{task.get_name()}'.")
                task.cancel()

    async def _watch_process(self) -> None:
        code = await self._process.wait()
        if self.state is not SessionState.RUNNING:
            return

        if code is None:
            status.warning("⚠️ Dev server was stopped by a signal.")
        elif code != 0:
            status.warning(f"⚠️ Dev server exited with code {code}")
        else:
            log.info("Dev server exited.")
        self._transition(SessionState.EXITED, code)

    async def _open_browser_when_ready(self) -> None:
        url = self.request.url
        try:
            await self._probe(self.request.probe_host, self.request.port, timeout=self._probe_timeout)
        except ProbeTimeoutError as e:
            status.warning(f"⚠️ Could not auto-open browser: {e}")
            return

        if self.state is not SessionState.RUNNING:
            log.debug(f"Server became ready after the session left RUNNING ({self.state.name}), not opening {url}.")
            return
        status.info(f"🌐 Opening {url} in your browser...")
        self._open_browser(url)

    #* --- Operator Shutdown ---
    def request_shutdown(self, sig: Optional[signal.Signals] = None) -> None:
        """
        Handles an operator termination signal.

        The server is asked to terminate and the session is finished right
        away, without waiting for the server to confirm its exit.
        """
        if self.state is not SessionState.RUNNING:
            log.debug(f"Ignoring shutdown request in state {self.state.name}.")
            return

        log.debug(f"Shutdown requested by {sig.name if sig else 'caller'}.")
        status.info("\n🛑 Shutting down dev server...")
        self._transition(SessionState.SHUTTING_DOWN)
        self._process.terminate()
        self._transition(SessionState.EXITED, 0)

    #* --- Entry Point ---
    async def run(self) -> int:
        """
        Runs the session to completion.

        :return: The exit status of the invocation.
        """
        self._exited = asyncio.Event()
        request = self.request

        status.info(f"🚀 Starting Next.js dev server on {request.host}:{request.port}...")
        try:
            self._process = await self._spawn(request.command)
        except SpawnError as e:
            status.error(f"❌ Failed to start dev server: {e.reason}")
            self._transition(SessionState.EXITED, 1)
            return self.exit_status

        self._transition(SessionState.RUNNING)
        status.info("✅ Dev server is running. Press Ctrl+C to stop.")

        handlers = None
        if self._handle_signals:
            handlers = SignalHandlers(asyncio.get_running_loop(), self.request_shutdown)
            handlers.install()

        try:
            self._start_task(self._watch_process(), name="watch-process")
            if self._auto_open:
                self._start_task(self._open_browser_when_ready(), name="readiness-probe")
            await self._exited.wait()
        except asyncio.CancelledError:
            self.request_shutdown()
            raise
        finally:
            if handlers is not None:
                handlers.remove()
            pending = list(self._tasks)
            self._cancel_background_tasks()
            await asyncio.gather(*pending, return_exceptions=True)

        return self.exit_status


def run_session(request: LaunchRequest, **kwargs) -> int:
    """Runs a dev server session on a fresh event loop and returns its exit status."""
    return asyncio.run(SessionController(request, **kwargs).run())
