import os
import logging
from typing import Callable, List, Optional, Tuple

from next_run import __version__, settings
from next_run.log import status
from next_run.local import project

log = logging.getLogger(__name__)

HOST_CHOICES: List[Tuple[str, str]] = [
    ("🔒 Secure (localhost only) - 127.0.0.1", settings.LOCAL_HOST),
    ("🌐 Open (network accessible) - 0.0.0.0", settings.OPEN_HOST),
    ("✏️  Custom host", "custom"),
]

MENU_CHOICES: List[Tuple[str, str]] = [
    ("Start development server", "dev"),
    ("Build for production", "build"),
    ("Start production server", "start"),
    ("Show help", "help"),
    ("Exit", "exit"),
]

HELP_TEXT = """
next-run - CLI tool to manage Next.js development and production workflows.

Interactive mode (default):
  next-run                -> Display interactive menu

Non-interactive mode:
  next-run --dev [--host <addr>] [--port <num>]
  next-run --build
  next-run --start

Host options:
  --host 127.0.0.1    -> Local only (secure)
  --host 0.0.0.0      -> Network accessible (use cautiously)

Examples:
  next-run --dev --host 127.0.0.1 --port 4000
  next-run --dev --host 0.0.0.0

Other:
  next-run --help     -> Show help
  next-run --version  -> Show version
  --verbose           -> Show debug logs

Note: Auto-opens browser for dev server. Uses local Next.js via npx.
"""


def print_help() -> None:
    """Prints the main help text."""
    print(HELP_TEXT)


def show_version() -> None:
    print(__version__)


def clear_screen() -> None:
    os.system("cls" if os.name == "nt" else "clear")


#* --- Prompts ---
def ask(message: str, default: Optional[str] = None, validate: Optional[Callable[[str], Optional[str]]] = None) -> str:
    """
    Asks for a line of input until it passes validation.

    :param message: The question to show.
    :param default: The answer used when the operator just presses Enter.
    :param validate: Returns an error message for bad input, or None if it is fine.
    :return: The accepted answer.
    """
    suffix = f" ({default})" if default is not None else ""
    while True:
        answer = input(f"? {message}{suffix} ").strip()
        if not answer and default is not None:
            answer = default
        error = validate(answer) if validate else None
        if error is None:
            return answer
        status.error(f">> {error}")


def choose(message: str, choices: List[Tuple[str, str]]) -> str:
    """Shows a numbered list and returns the value of the chosen entry."""
    print(f"? {message}")
    for index, (label, _) in enumerate(choices, start=1):
        print(f"  {index}) {label}")

    def _validate(answer: str) -> Optional[str]:
        index = project.parse_digits(answer)
        if index is not None and 1 <= index <= len(choices):
            return None
        return f"Please enter a number between 1 and {len(choices)}."

    return choices[int(ask("Select an option:", validate=_validate)) - 1][1]


def validate_port(answer: str) -> Optional[str]:
    port = project.parse_digits(answer)
    if port is not None and settings.MIN_PORT <= port <= settings.MAX_PORT:
        return None
    return f"Port must be between {settings.MIN_PORT} and {settings.MAX_PORT}."


def prompt_port() -> int:
    """Asks for the dev server port, suggesting the project's PORT setting or the default."""
    suggested = project.get_port_from_env() or settings.DEFAULT_PORT
    return int(ask("Enter port for the development server:", default=str(suggested), validate=validate_port))


def select_host() -> str:
    """Asks which address the dev server should bind to."""
    host = choose("Select host binding:", HOST_CHOICES)
    if host == "custom":
        host = ask(
            "Enter custom host address:",
            validate=lambda answer: None if answer else "Host cannot be empty.",
        )
    return host


def show_menu() -> str:
    """Shows the interactive main menu and returns the chosen action."""
    status.title("\n✨ Next.js Development Helper")
    return choose("What do you want to do?", MENU_CHOICES)
