"""
Carbon Agent - Carbon Connection

Owns the single outbound TCP socket to the carbon endpoint and delivers
metric lines over it, one write per line.
"""

import asyncio
import socket
from typing import Optional, Tuple

import structlog

from .errors import GraphiteConnectionError, ShortWriteError
from .protocol import format_line

logger = structlog.get_logger(__name__)


def parse_endpoint(endpoint: str) -> Tuple[str, int]:
    """Split "host:port" (or "[v6-host]:port") into its parts."""
    host, sep, port = endpoint.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"Invalid endpoint {endpoint!r}, expected host:port")
    if not 0 < int(port) <= 65535:
        raise ValueError(f"Invalid port in endpoint {endpoint!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


class CarbonConnection:
    """Best-effort line writer with reconnect-on-demand.

    Blocking socket calls run in a worker thread. Only one caller (the
    publisher loop) may use an instance, so calls never overlap.
    """

    def __init__(self, endpoint: str, timeout: float):
        self.endpoint = endpoint
        self.timeout = timeout
        self._address = parse_endpoint(endpoint)
        self._sock: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    async def open(self) -> None:
        """Dial the endpoint, replacing any existing socket."""
        try:
            sock = await asyncio.to_thread(socket.create_connection, self._address)
        except OSError as e:
            raise GraphiteConnectionError(f"dial {self.endpoint}: {e}") from e

        self._discard()
        self._sock = sock
        logger.debug("Connected to carbon", endpoint=self.endpoint)

    async def send(self, name: str, value: str) -> None:
        """Write one metric line.

        With no live socket, exactly one reconnect is attempted first. Any
        write failure drops the socket so the next send dials again.
        """
        if self._sock is None:
            await self.open()

        line = format_line(name, value)
        sock = self._sock
        try:
            # Write deadline for this line only
            sock.settimeout(self.timeout)
            written = await asyncio.to_thread(sock.send, line)
        except OSError as e:
            self._discard()
            raise GraphiteConnectionError(f"write {self.endpoint}: {e}") from e

        if written != len(line):
            self._discard()
            raise ShortWriteError(name, value, written, len(line))

    async def close(self) -> None:
        """Close the socket if one is open."""
        if self._sock is not None:
            self._discard()
            logger.debug("Carbon connection closed", endpoint=self.endpoint)

    def _discard(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.close()
        except OSError as e:
            logger.debug("Socket close failed", endpoint=self.endpoint, error=str(e))
