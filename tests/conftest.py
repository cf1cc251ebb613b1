"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

ECHO_SERVER = Path(__file__).parent / "fixtures" / "echo_server.py"


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def echo_server_command() -> tuple[str, list[str]]:
    """Command line for the stdio test server."""
    return sys.executable, [str(ECHO_SERVER)]
