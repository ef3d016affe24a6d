"""
Carbon Agent - Test Helpers

An in-process carbon collector plus socket and connection doubles.
"""

import asyncio
import time
from typing import Dict, List, Optional, Tuple

from carbon_agent.graphite import GraphiteConnectionError


class Collector:
    """Minimal carbon server: records every line received."""

    def __init__(self):
        self.lines: asyncio.Queue = asyncio.Queue()
        self.connections = 0
        self.by_connection: List[List[str]] = []
        self._server: Optional[asyncio.Server] = None
        self._writers: List[asyncio.StreamWriter] = []
        self.port = 0

    @property
    def endpoint(self) -> str:
        return f"127.0.0.1:{self.port}"

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]

    def drop_clients(self) -> None:
        """Close every accepted connection from the server side."""
        for writer in self._writers:
            writer.close()
        self._writers = []

    async def stop(self) -> None:
        self.drop_clients()
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def next_line(self, timeout: float = 2.0) -> str:
        return await asyncio.wait_for(self.lines.get(), timeout=timeout)

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self._writers.append(writer)
        received: List[str] = []
        self.by_connection.append(received)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                text = line.decode("utf-8")
                received.append(text)
                await self.lines.put(text)
        except ConnectionError:
            pass
        finally:
            writer.close()


class FakeSocket:
    """Socket double; `accept` caps how many bytes each send reports."""

    def __init__(self, accept: Optional[int] = None, error: Optional[Exception] = None):
        self.accept = accept
        self.error = error
        self.timeout: Optional[float] = None
        self.data: List[bytes] = []
        self.closed = False

    def settimeout(self, timeout: float) -> None:
        self.timeout = timeout

    def send(self, data: bytes) -> int:
        if self.error:
            raise self.error
        self.data.append(data)
        return len(data) if self.accept is None else min(self.accept, len(data))

    def close(self) -> None:
        self.closed = True


class FakeConnection:
    """Connection double recording sends; names in `fail` raise on send."""

    def __init__(self, fail: Optional[Dict[str, Exception]] = None):
        self.fail = fail or {}
        self.sent: List[Tuple[float, str, str]] = []
        self.opened = 0
        self.closed = 0
        self.is_open = False

    async def open(self) -> None:
        self.opened += 1
        self.is_open = True

    async def send(self, name: str, value: str) -> None:
        if name in self.fail:
            raise self.fail[name]
        self.sent.append((time.monotonic(), name, value))

    async def close(self) -> None:
        self.closed += 1
        self.is_open = False

    def names(self) -> List[str]:
        return [name for _, name, _ in self.sent]


async def wait_until(predicate, timeout: float = 2.0, step: float = 0.01) -> None:
    """Poll `predicate` until it holds or `timeout` elapses."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met within timeout")
        await asyncio.sleep(step)


class FlakyConnection(FakeConnection):
    """FakeConnection that can lose its link and fail the next dials."""

    def __init__(self):
        super().__init__()
        self.open_failures = 0

    def drop(self) -> None:
        self.is_open = False

    async def open(self) -> None:
        self.opened += 1
        if self.open_failures:
            self.open_failures -= 1
            raise GraphiteConnectionError("dial stats:2003: connection refused")
        self.is_open = True

    async def send(self, name: str, value: str) -> None:
        if not self.is_open:
            await self.open()
        await super().send(name, value)
