"""
Human-readable status lines for the operator.

These are not diagnostics: they are the tool's side-channel output (title,
info, success, warning and error categories) printed in colour on stdout.
Each line is also recorded on the ``next_run.status`` logger so that
embedding code and tests can observe it.
"""
import logging

from rich.console import Console

log = logging.getLogger("next_run.status")

console = Console(highlight=False)

STYLES = {
    "title": "bold magenta",
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


def _emit(category: str, message: str, level: int) -> None:
    console.print(message, style=STYLES[category], markup=False, emoji=False, soft_wrap=True)
    log.log(level, message)


def title(message: str) -> None:
    _emit("title", message, logging.INFO)


def info(message: str) -> None:
    _emit("info", message, logging.INFO)


def success(message: str) -> None:
    _emit("success", message, logging.INFO)


def warning(message: str) -> None:
    _emit("warning", message, logging.WARNING)


def error(message: str) -> None:
    _emit("error", message, logging.ERROR)
