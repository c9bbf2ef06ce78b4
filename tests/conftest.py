"""
Shared pytest fixtures for next-run tests.

This module provides:
- FakeProcess: a stand-in for the supervised server that exits only when told to
- Helpers to find free loopback ports and to write throwaway Next.js projects
"""

import asyncio
import json
import shlex
import socket
import sys
from typing import List, Optional

import pytest


class FakeProcess:
    """Mimics ServerProcess. terminate() is recorded but never makes the process exit."""

    def __init__(self, command: str = "fake", pid: int = 4242) -> None:
        self.command = command
        self.pid = pid
        self.terminate_calls = 0
        self._code: Optional[int] = None
        self._done = asyncio.Event()

    @property
    def returncode(self) -> Optional[int]:
        return self._code if self._done.is_set() else None

    def finish(self, code: Optional[int]) -> None:
        self._code = code
        self._done.set()

    async def wait(self) -> Optional[int]:
        await self._done.wait()
        return self._code

    def terminate(self) -> None:
        self.terminate_calls += 1


class Recorder:
    """Collects calls made to a fake collaborator."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []

    def __call__(self, *args, **kwargs) -> None:
        self.calls.append((args, kwargs))


@pytest.fixture
def free_port() -> int:
    """A loopback TCP port nothing is listening on (at the time of the call)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def python_command():
    """Builds a command line that runs a Python snippet with the current interpreter."""
    def _build(code: str, *args: str) -> str:
        return shlex.join([sys.executable, "-c", code, *args])
    return _build


@pytest.fixture
def next_project(tmp_path, monkeypatch):
    """Creates a minimal Next.js project and makes it the current directory."""
    (tmp_path / "package.json").write_text(json.dumps({
        "name": "demo",
        "dependencies": {"next": "14.2.0", "react": "18.3.1"},
    }))
    monkeypatch.chdir(tmp_path)
    return tmp_path
