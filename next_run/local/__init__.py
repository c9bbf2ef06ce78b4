"""
Local package for next-run.

This package holds everything that runs on the operator's machine: the
project checks, the interactive console and the dev server supervisor.
"""
