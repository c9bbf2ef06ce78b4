import signal
import asyncio
import logging
import psutil
from typing import Callable, List, Set

log = logging.getLogger(__name__)

# Operator termination signals. SIGTERM does not exist as a deliverable signal
# on every platform, so only the ones the interpreter knows about are used.
SHUTDOWN_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM") if hasattr(signal, name)
)


def identify_processes_to_stop(pid: int) -> Set[psutil.Process]:
    """
    Identifies the process and all of its descendants.

    The wrapped command usually starts the real server through a launcher
    (npx, npm), so stopping only the direct child would leave the server behind.

    :param pid: The PID of the direct child.
    :return: A set of psutil.Process objects to be stopped.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return set()

    procs: Set[psutil.Process] = {parent}
    try:
        procs.update(parent.children(recursive=True))
    except psutil.NoSuchProcess:
        log.debug(f"Process {pid} no longer exists, skipping children retrieval.")
    return procs


def terminate_process_tree(pid: int) -> int:
    """
    Sends SIGTERM to a process and its descendants without waiting for them.

    :param pid: The PID of the root of the tree.
    :return: The number of processes that were signalled.
    """
    signalled = 0
    for proc in identify_processes_to_stop(pid):
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
            signalled += 1
        except psutil.NoSuchProcess:
            log.debug(f"Process {proc.pid} no longer exists, skipping termination.")
        except psutil.AccessDenied:
            log.warning(f"Not allowed to terminate process {proc.pid}.")
    return signalled


class SignalHandlers:
    """
    Routes operator termination signals to a callback for the lifetime of a session.

    Handlers are installed on the event loop where possible. Where the loop
    cannot install them (Windows), the process-wide handler is replaced and the
    previous one is put back on `remove()`.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[signal.Signals], None]) -> None:
        self._loop = loop
        self._callback = callback
        self._loop_signals: List[signal.Signals] = []
        self._previous_handlers = {}

    def install(self) -> None:
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self._callback, sig)
                self._loop_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                self._previous_handlers[sig] = signal.signal(sig, self._threadsafe_handler)
        log.debug(f"Installed handlers for {', '.join(s.name for s in SHUTDOWN_SIGNALS)}.")

    def remove(self) -> None:
        for sig in self._loop_signals:
            self._loop.remove_signal_handler(sig)
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._loop_signals.clear()
        self._previous_handlers.clear()
        log.debug("Removed session signal handlers.")

    def _threadsafe_handler(self, signum, frame) -> None:
        self._loop.call_soon_threadsafe(self._callback, signal.Signals(signum))
