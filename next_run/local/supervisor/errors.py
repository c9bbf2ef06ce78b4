class NextRunError(Exception):
    """Base class for every error raised by next-run."""


class SpawnError(NextRunError):
    """The server process could not be created at all."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Failed to start '{command}': {reason}")
        self.command = command
        self.reason = reason


class ProbeTimeoutError(NextRunError):
    """Readiness could not be confirmed within the allotted window."""

    def __init__(self, host: str, port: int, timeout: float) -> None:
        super().__init__(f"Timeout waiting for server to start on {host}:{port} after {timeout:g}s")
        self.host = host
        self.port = port
        self.timeout = timeout


class BrowserLaunchError(NextRunError):
    """The operating system could not launch a browser."""


class SessionStateError(NextRunError):
    """A session was asked to make a transition its current state does not allow."""
