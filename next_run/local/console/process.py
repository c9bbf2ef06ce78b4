import logging
from typing import Optional

from next_run import settings
from next_run.log import status
from next_run.local.supervisor import LaunchRequest, SpawnError, run_session
from next_run.local.supervisor.process_utils import run_foreground
from next_run.local.console.handler import print_help, prompt_port, select_host, show_menu

log = logging.getLogger(__name__)


def dev_mode(port: Optional[int] = None, host: Optional[str] = None) -> int:
    """
    Runs the dev server, asking for whatever was not given on the command line.

    :return: The exit status of the session.
    """
    if port is None:
        port = prompt_port()
    if host is None:
        host = select_host()

    request = LaunchRequest.for_dev_server(port=port, host=host)
    log.debug(f"Dev session request: {request}")
    return run_session(request)


def _run_one_off(command: str) -> int:
    try:
        code = run_foreground(command)
    except SpawnError as e:
        status.error(f"❌ Command failed: {command} ({e.reason})")
        return 1

    if code != 0:
        status.error(f"❌ Command failed: {command} (exit code {code})")
        return code or 1
    return 0


def build_mode() -> int:
    status.info("📦 Building Next.js application for production...")
    code = _run_one_off(settings.BUILD_COMMAND)
    if code == 0:
        status.success("✅ Build completed successfully.")
    return code


def start_mode() -> int:
    status.info("▶️ Starting production server...")
    return _run_one_off(settings.START_COMMAND)


def _help() -> int:
    print_help()
    return 0


def _exit() -> int:
    status.info("Goodbye! Happy coding! 💻✨")
    return 0


def execute_command(command: str, port: Optional[int] = None, host: Optional[str] = None) -> int:
    """
    Executes a single top-level action.

    :param command: The action ('dev', 'build', 'start', 'help', 'exit').
    :param port: The dev server port, if already known.
    :param host: The dev server host, if already known.
    :return: The exit status for the process.
    """
    log.debug(f"Executing command: {command}")
    command_map = {
        "dev": lambda: dev_mode(port, host),
        "build": build_mode,
        "start": start_mode,
        "help": _help,
        "exit": _exit,
    }

    if command not in command_map:
        status.error(f"Unknown command: '{command}'.")
        return 1
    return command_map[command]()


def run_menu() -> int:
    """Shows the interactive menu and executes the chosen action."""
    return execute_command(show_menu())
