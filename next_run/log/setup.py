import logging
import sys


class MainFormatter(logging.Formatter):
    """A formatter for diagnostic logs that tags each line with its logger name."""

    def __init__(self) -> None:
        super().__init__('%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s')


class StatusLineFilter(logging.Filter):
    """
    Drops records emitted by the 'status' logger. Status lines are already
    rendered to the terminal by the status console, so the diagnostic handler
    must not print them a second time.
    """
    def filter(self, record):
        return not record.name.startswith('next_run.status')


def setup_logging(console_level: int = logging.INFO) -> None:
    """
    Configures the root logger for the application.
    Clears any previously configured handlers to prevent duplication, so it is
    safe to call again when the console level changes.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    console_handler.addFilter(StatusLineFilter())
    root_logger.addHandler(console_handler)

    # asyncio reports every unclosed probe transport at DEBUG; keep it quiet.
    logging.getLogger("asyncio").setLevel(logging.WARNING)
