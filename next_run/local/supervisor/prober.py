import asyncio
import logging
from dataclasses import dataclass

from next_run import settings
from .errors import ProbeTimeoutError

log = logging.getLogger(__name__)


@dataclass
class ProbeState:
    """Bookkeeping for a single readiness check. Times are event loop times."""
    host: str
    port: int
    start_time: float
    deadline: float
    interval: float

    def remaining(self, now: float) -> float:
        return self.deadline - now


async def _try_connect(host: str, port: int, timeout: float) -> bool:
    """
    Makes one connection attempt. The connection is closed straight away,
    nothing is sent or read.

    :return: True if the port accepted the connection, False otherwise.
    """
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError) as e:
        log.debug(f"Probe attempt on {host}:{port} failed: {e!r}")
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass  # The peer may reset a connection it never meant to serve.
    return True


async def wait_for_port(
    host: str,
    port: int,
    timeout: float = settings.PROBE_TIMEOUT,
    interval: float = settings.PROBE_INTERVAL,
    attempt_timeout: float = settings.PROBE_ATTEMPT_TIMEOUT,
) -> None:
    """
    Waits until something is listening on host:port.

    Connection attempts are repeated every `interval` seconds. Each attempt and
    each pause is clamped to what is left of the overall window, so a timeout
    is raised no earlier than `timeout` and less than one interval after it.

    :param host: The host to connect to.
    :param port: The TCP port to connect to.
    :param timeout: The overall time budget in seconds.
    :param interval: The pause between two failed attempts in seconds.
    :param attempt_timeout: The time budget of a single connection attempt.
    :raises ProbeTimeoutError: If nothing accepted a connection in time.
    """
    loop = asyncio.get_running_loop()
    start = loop.time()
    state = ProbeState(host=host, port=port, start_time=start, deadline=start + timeout, interval=interval)
    log.debug(f"Probing {host}:{port} for up to {timeout:g}s...")

    while True:
        remaining = state.remaining(loop.time())
        if remaining <= 0:
            break

        if await _try_connect(state.host, state.port, min(attempt_timeout, remaining)):
            log.debug(f"{host}:{port} accepted a connection after {loop.time() - state.start_time:.2f}s.")
            return

        remaining = state.remaining(loop.time())
        if remaining <= 0:
            break
        await asyncio.sleep(min(state.interval, remaining))

    raise ProbeTimeoutError(host, port, timeout)
