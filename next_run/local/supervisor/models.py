import shlex
from enum import Enum
from dataclasses import dataclass

from next_run import settings


class SessionState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    EXITED = "exited"


# Legal transitions of a session. EXITED is terminal.
TRANSITIONS = {
    SessionState.STARTING: {SessionState.RUNNING, SessionState.EXITED},
    SessionState.RUNNING: {SessionState.SHUTTING_DOWN, SessionState.EXITED},
    SessionState.SHUTTING_DOWN: {SessionState.EXITED},
    SessionState.EXITED: set(),
}


@dataclass(frozen=True)
class LaunchRequest:
    """
    Everything the session needs to know about the server it supervises.

    :param port: The TCP port the server binds to (1-65535).
    :param host: The address the server binds to. Any non-empty string.
    :param command: The full command line that starts the server.
    """
    port: int
    host: str
    command: str

    def __post_init__(self) -> None:
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"Port must be an integer, got {self.port!r}.")
        if not settings.MIN_PORT <= self.port <= settings.MAX_PORT:
            raise ValueError(f"Port must be between {settings.MIN_PORT} and {settings.MAX_PORT}.")
        if not self.host or not self.host.strip():
            raise ValueError("Host cannot be empty.")
        if not self.command or not self.command.strip():
            raise ValueError("Command cannot be empty.")

    @classmethod
    def for_dev_server(cls, port: int, host: str) -> "LaunchRequest":
        """Builds the request for the framework's dev server bound to host:port."""
        command = settings.DEV_COMMAND_TEMPLATE.format(port=port, host=shlex.quote(host))
        return cls(port=port, host=host, command=command)

    @property
    def probe_host(self) -> str:
        """The host to probe for readiness. Wildcard bind addresses are not connectable."""
        if self.host in settings.WILDCARD_HOSTS:
            return settings.PROBE_FALLBACK_HOST
        return self.host

    @property
    def url(self) -> str:
        host = self.probe_host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"http://{host}:{self.port}"
