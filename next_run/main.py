import sys
import logging
from dataclasses import dataclass
from typing import List, Optional

import setproctitle

from next_run import settings
from next_run.log import setup_logging, status
from next_run.local import console, project
from next_run.local.supervisor import NextRunError

log = logging.getLogger(__name__)

MODE_FLAGS = {"--dev": "dev", "--build": "build", "--start": "start"}


class UsageError(NextRunError):
    """The command line could not be understood."""


@dataclass
class CliOptions:
    mode: Optional[str] = None  # None means interactive
    port: Optional[int] = None
    host: Optional[str] = None
    show_help: bool = False
    show_version: bool = False
    verbose: bool = False


def _flag_value(args: List[str], flag: str) -> Optional[str]:
    """Returns the argument following `flag`, '' if it is missing, None if the flag is absent."""
    if flag not in args:
        return None
    index = args.index(flag)
    return args[index + 1] if index + 1 < len(args) else ""


def parse_args(args: List[str]) -> CliOptions:
    """
    Parses the command line.

    :param args: The arguments without the program name.
    :raises UsageError: If the flags are invalid or contradict each other.
    """
    options = CliOptions(
        show_help="--help" in args or "-h" in args,
        show_version="--version" in args or "-v" in args,
        verbose="--verbose" in args,
    )
    if options.show_help or options.show_version:
        return options

    port_value = _flag_value(args, "--port")
    host_value = _flag_value(args, "--host")

    if port_value is not None:
        options.port = project.parse_digits(port_value)
        if options.port is None:
            raise UsageError("--port must be followed by a number.")
        if not settings.MIN_PORT <= options.port <= settings.MAX_PORT:
            raise UsageError(f"Port must be between {settings.MIN_PORT} and {settings.MAX_PORT}.")

    if host_value is not None:
        if not host_value.strip() or host_value.startswith("--"):
            raise UsageError("--host must be followed by a host address.")
        options.host = host_value.strip()

    modes = [mode for flag, mode in MODE_FLAGS.items() if flag in args]
    if (port_value is not None or host_value is not None) and "dev" not in modes:
        raise UsageError("--port and --host can only be used with --dev.")

    remaining = [a for a in args if a != "--verbose"]
    if not remaining:
        return options  # Interactive mode
    if not modes:
        raise UsageError("Please specify one of: --dev, --build, or --start.")
    if len(modes) > 1:
        raise UsageError("Only one mode may be specified at a time.")
    options.mode = modes[0]
    return options


def run(args: List[str]) -> int:
    """Runs next-run for the given arguments and returns the exit status."""
    try:
        options = parse_args(args)
    except UsageError as e:
        status.error(f"❌ {e}")
        return 1

    if options.verbose or settings.VERBOSE_LOGGING:
        setup_logging(logging.DEBUG)

    if options.show_help:
        console.print_help()
        return 0
    if options.show_version:
        console.show_version()
        return 0

    if options.mode is None:
        console.clear_screen()
        if not project.is_next_project():
            status.error('❌ This does not appear to be a Next.js project.\n   Make sure "next" is in your package.json.')
            return 1
        return console.run_menu()

    if not project.is_next_project():
        status.error("❌ This does not appear to be a Next.js project.")
        return 1
    return console.execute_command(options.mode, port=options.port, host=options.host)


def main() -> None:
    """The main entry point for the next-run console script."""
    setproctitle.setproctitle(settings.PROCESS_TITLE)
    setup_logging(logging.INFO)

    try:
        code = run(sys.argv[1:])
    except (KeyboardInterrupt, EOFError):
        # Ctrl+C or a closed stdin while prompting, or before a session took over the signals.
        print()
        code = 0
    except Exception as e:
        log.debug("Unexpected error", exc_info=True)
        status.error(f"💥 Unexpected error: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
