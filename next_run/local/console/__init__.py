"""
This module initializes the console package, exposing the command dispatcher,
the interactive menu and the help/version printers.
"""

from .process import execute_command, run_menu
from .handler import print_help, show_version, clear_screen

__all__ = ["execute_command", "run_menu", "print_help", "show_version", "clear_screen"]
