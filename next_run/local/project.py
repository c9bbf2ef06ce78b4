import re
import json
import logging
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

from next_run import settings

log = logging.getLogger(__name__)

# str.isdigit() also accepts characters like '²' that int() rejects.
ASCII_DIGITS = re.compile(r"\d+", re.ASCII)


def is_next_project(project_dir: Optional[Path] = None) -> bool:
    """
    Checks whether a directory holds a Next.js project, i.e. its package.json
    declares 'next' as a dependency or dev dependency.

    :param project_dir: The directory to check. Defaults to the current directory.
    """
    pkg_path = (project_dir or Path.cwd()) / settings.PACKAGE_JSON_NAME
    try:
        project_pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.debug(f"Could not read '{pkg_path}': {e}")
        return False
    if not isinstance(project_pkg, dict):
        return False

    for section in ("dependencies", "devDependencies"):
        deps = project_pkg.get(section)
        if isinstance(deps, dict) and deps.get("next"):
            return True
    return False


def get_port_from_env(project_dir: Optional[Path] = None) -> Optional[int]:
    """
    Reads the PORT the project configures in its env file (.env.local by default).

    :return: The port, or None if the file or the setting is missing or not a number.
    """
    env_path = (project_dir or Path.cwd()) / settings.ENV_FILE_NAME
    if not env_path.is_file():
        return None

    value = dotenv_values(env_path).get("PORT")
    port = parse_digits(value.strip()) if value is not None else None
    if port is None:
        return None
    log.debug(f"Using PORT={port} from '{env_path}'.")
    return port


def parse_digits(value: str) -> Optional[int]:
    """Returns the value as an int if it is made of ASCII digits only, else None."""
    if not ASCII_DIGITS.fullmatch(value):
        return None
    return int(value)
