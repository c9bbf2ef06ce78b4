import sys
import shlex
import shutil
import asyncio
import logging
import subprocess
from typing import Any, Dict, List, Optional

from .errors import SpawnError
from .shutdown import terminate_process_tree

log = logging.getLogger(__name__)


#* --- Command Resolution ---
def get_popen_creation_flags() -> Dict[str, Any]:
    """
    Returns platform-specific creation flags for processes that must outlive
    next-run without a console window (e.g., the browser launcher).

    :return dict: A dictionary of keyword arguments for Popen.
    """
    if sys.platform == "win32":
        return {"creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NO_WINDOW}
    return {}


def split_command(command: str) -> List[str]:
    """Splits a command line into arguments following the platform's quoting rules."""
    return shlex.split(command, posix=sys.platform != "win32")


def resolve_command(command: str) -> List[str]:
    """
    Turns a command line into an argument list whose executable is a full path.

    Resolving through PATH also picks up the '.cmd' shims npm installs on Windows.

    :param command: The full command line.
    :return: The argument list, ready for process creation.
    :raises SpawnError: If the command is empty, malformed or its executable is missing.
    """
    try:
        args = split_command(command)
    except ValueError as e:
        raise SpawnError(command, f"malformed command line ({e})") from e
    if not args:
        raise SpawnError(command, "empty command")

    executable = shutil.which(args[0])
    if executable is None:
        raise SpawnError(command, f"executable '{args[0]}' not found")
    return [executable, *args[1:]]


def normalize_returncode(returncode: Optional[int]) -> Optional[int]:
    """Maps 'killed by a signal' (a negative return code on POSIX) to no exit code at all."""
    if returncode is None or returncode < 0:
        return None
    return returncode


#* --- Process Handle ---
class ServerProcess:
    """
    Handle on the supervised server process.

    The process shares the terminal's stdin, stdout and stderr, so the server's
    own output reaches the operator untouched.
    """

    def __init__(self, command: str, process: asyncio.subprocess.Process) -> None:
        self.command = command
        self._process = process

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    async def wait(self) -> Optional[int]:
        """
        Waits for the process to exit on its own.

        :return: The exit code, or None if the process was killed by a signal.
        """
        return normalize_returncode(await self._process.wait())

    def terminate(self) -> None:
        """Asks the process (and whatever it started) to stop. Does not wait for it."""
        if self._process.returncode is not None:
            log.debug(f"Process {self.pid} already exited, nothing to terminate.")
            return
        if not terminate_process_tree(self.pid):
            log.debug(f"Process {self.pid} was gone before it could be signalled.")


async def spawn(command: str) -> ServerProcess:
    """
    Starts the server command attached to the controlling terminal.

    :param command: The full command line.
    :return: A handle on the running process.
    :raises SpawnError: If the process could not be created.
    """
    args = resolve_command(command)
    log.debug(f"Spawning: {args}")
    try:
        process = await asyncio.create_subprocess_exec(*args)
    except (OSError, ValueError) as e:
        raise SpawnError(command, str(e)) from e

    log.info(f"Server process started with PID: {process.pid}")
    return ServerProcess(command, process)


def run_foreground(command: str) -> Optional[int]:
    """
    Runs a one-off command (build, production start) in the foreground.

    The child is in the terminal's process group, so Ctrl+C reaches it
    directly; next-run only waits for it to finish.

    :param command: The full command line.
    :return: The exit code, or None if the process was killed by a signal.
    :raises SpawnError: If the process could not be created.
    """
    args = resolve_command(command)
    log.debug(f"Running in foreground: {args}")
    try:
        process = subprocess.Popen(args)
    except (OSError, ValueError) as e:
        raise SpawnError(command, str(e)) from e

    try:
        return normalize_returncode(process.wait())
    except KeyboardInterrupt:
        log.debug(f"Interrupted while waiting for PID {process.pid}, stopping it.")
        terminate_process_tree(process.pid)
        return normalize_returncode(process.wait())
