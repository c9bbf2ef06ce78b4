"""
Logging module for the application.
This module provides functionality to set up diagnostic logging and to print
status lines for the operator.
"""

from .setup import setup_logging
from . import status

__all__ = ["setup_logging", "status"]
