import sys
import logging
import subprocess
from typing import List

from .errors import BrowserLaunchError
from .process_utils import get_popen_creation_flags

log = logging.getLogger(__name__)


def get_browser_command(url: str) -> List[str]:
    """Returns the platform-specific command line that opens `url` in the default browser."""
    if sys.platform == "win32":
        # 'start' treats its first quoted argument as the window title.
        return ["cmd", "/c", "start", "", url]
    if sys.platform == "darwin":
        return ["open", url]
    return ["xdg-open", url]


def _launch(url: str) -> None:
    args = get_browser_command(url)
    popen_kwargs = get_popen_creation_flags()
    if sys.platform != "win32":
        popen_kwargs["start_new_session"] = True
    try:
        subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **popen_kwargs,
        )
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        raise BrowserLaunchError(f"Could not run '{args[0]}': {e}") from e


def open_browser(url: str) -> None:
    """
    Opens `url` in the default browser without waiting for it.

    Failing to do so (e.g., on a headless server) is not an error for the
    caller: it is only logged at debug level.
    """
    try:
        _launch(url)
        log.debug(f"Browser launch requested for {url}.")
    except BrowserLaunchError as e:
        log.debug(f"Browser open failed: {e}")
