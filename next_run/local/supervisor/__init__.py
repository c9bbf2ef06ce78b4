"""
The Supervisor package.
Manages the lifecycle of the dev server process.

This package contains the SessionController and its helper modules, which
together spawn the server, probe it for readiness, open the browser and shut
everything down again.
"""
from .errors import BrowserLaunchError, NextRunError, ProbeTimeoutError, SessionStateError, SpawnError
from .models import LaunchRequest, SessionState
from .session import SessionController, run_session

__all__ = [
    'SessionController', 'run_session', 'LaunchRequest', 'SessionState',
    'NextRunError', 'SpawnError', 'ProbeTimeoutError', 'BrowserLaunchError', 'SessionStateError',
]
