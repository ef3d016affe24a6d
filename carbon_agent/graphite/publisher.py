"""
Carbon Agent - Graphite Publisher

Publishes registered vars to a Graphite (carbon) server on a fixed interval.

A single coordinator task owns the registry, the connection and the publish
schedule. Callers talk to it only through its inbox:

    graphite = await Graphite.connect("stats:2003", interval=10, timeout=1)
    graphite.register("app.load", load_var)
    ...
    await graphite.shutdown()
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional, Union

import structlog

from ..vars import Var
from .connection import CarbonConnection
from .schedule import next_publish_delay

logger = structlog.get_logger(__name__)

DEFAULT_QUEUE_SIZE = 1024


@dataclass(frozen=True)
class _Registration:
    name: str
    var: Var


@dataclass(frozen=True)
class _ShutdownRequest:
    done: asyncio.Future


_Message = Union[_Registration, _ShutdownRequest]


class Graphite:
    """Periodic publisher of named vars to one carbon endpoint."""

    def __init__(
        self,
        endpoint: str,
        interval: float,
        timeout: float,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        connection: Optional[CarbonConnection] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self.endpoint = endpoint
        self.interval = interval
        self.timeout = timeout

        self._connection = connection or CarbonConnection(endpoint, timeout)
        self._vars: Dict[str, Var] = {}
        self._inbox: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._last_publish = time.monotonic()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    async def connect(
        cls,
        endpoint: str,
        interval: float,
        timeout: float,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        connection: Optional[CarbonConnection] = None,
    ) -> "Graphite":
        """Open the connection and start publishing.

        Raises GraphiteConnectionError if the endpoint cannot be dialed; no
        background task is started in that case.
        """
        graphite = cls(endpoint, interval, timeout, queue_size, connection)
        await graphite._connection.open()
        graphite._start()
        return graphite

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def register(self, name: str, var: Var) -> None:
        """Publish `var` under `name` from the next pass on.

        Fire-and-forget: returns immediately and never raises. Safe to call
        from other threads. Re-registering a name replaces the previous var.
        """
        message = _Registration(name, var)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is None or running is self._loop:
            self._enqueue(message)
        else:
            try:
                self._loop.call_soon_threadsafe(self._enqueue, message)
            except RuntimeError:
                # Loop already closed
                logger.warning("Registration dropped", metric=name, reason="loop closed")

    async def shutdown(self) -> None:
        """Stop publishing and close the connection.

        Returns once the coordinator has closed the connection and exited.
        """
        if self._closed or not self.is_running:
            return

        done = asyncio.get_running_loop().create_future()
        await self._inbox.put(_ShutdownRequest(done))
        await done
        await self._task

    def _start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._last_publish = time.monotonic()
        self._task = asyncio.create_task(self._run())
        logger.info(
            "Graphite publisher started",
            endpoint=self.endpoint,
            interval=self.interval,
            timeout=self.timeout,
        )

    def _enqueue(self, message: _Registration) -> None:
        if self._closed:
            logger.warning("Registration dropped", metric=message.name, reason="shut down")
            return
        try:
            self._inbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Registration dropped", metric=message.name, reason="inbox full")

    async def _run(self) -> None:
        """Coordinator loop: registrations, publish timer, shutdown."""
        while True:
            delay = next_publish_delay(self._last_publish, self.interval, time.monotonic())
            if delay <= 0:
                # Overdue: let callers run, then serve what they queued first
                await asyncio.sleep(0)
                while not self._inbox.empty():
                    if await self._handle(self._inbox.get_nowait()):
                        return
                await self._post_all()
                continue

            try:
                message: _Message = await asyncio.wait_for(self._inbox.get(), timeout=delay)
            except asyncio.TimeoutError:
                await self._post_all()
                continue

            if await self._handle(message):
                return

    async def _handle(self, message: _Message) -> bool:
        """Apply one inbox message; True once the loop must exit."""
        if isinstance(message, _Registration):
            self._vars[message.name] = message.var
            logger.debug("Var registered", metric=message.name)
            return False

        await self._close()
        if not message.done.done():
            message.done.set_result(True)
        return True

    async def _post_all(self) -> None:
        """Publish every registered var once."""
        sent = failed = 0
        for name, var in list(self._vars.items()):
            try:
                await self._connection.send(name, var.render())
                sent += 1
            except Exception as e:
                failed += 1
                logger.warning("Publish failed", metric=name, error=str(e))

        self._last_publish = time.monotonic()
        logger.debug("Publish pass complete", sent=sent, failed=failed)

    async def _close(self) -> None:
        self._closed = True
        await self._connection.close()

        dropped = 0
        while not self._inbox.empty():
            message = self._inbox.get_nowait()
            if isinstance(message, _Registration):
                dropped += 1
                logger.warning("Registration dropped", metric=message.name, reason="shut down")
            elif isinstance(message, _ShutdownRequest):
                message.done.set_result(True)

        logger.info("Graphite publisher stopped", endpoint=self.endpoint, dropped=dropped)
