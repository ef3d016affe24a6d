"""
Carbon Agent - Test Fixtures
"""

import socket

import pytest

from .helpers import Collector, FakeConnection


@pytest.fixture
async def collector():
    """Running collector bound to an ephemeral localhost port."""
    server = Collector()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def unused_endpoint() -> str:
    """Endpoint with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"127.0.0.1:{port}"


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()
