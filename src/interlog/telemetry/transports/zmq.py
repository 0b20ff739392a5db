"""ZeroMQ transport for log streaming."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .base import Transport, TransportUnreachable


logger = logging.getLogger(__name__)


@dataclass
class ZmqTransport(Transport):
    """
    Transport that pushes payloads over ZeroMQ.

    The collector side binds; this side connects. Sends never block: when
    the high water mark is reached the send fails and the batch is retried.

    Config:
        endpoint: ZMQ endpoint (e.g., "tcp://collector:5555")
        topic: Topic frame prepended to each message (pub sockets only)
        socket_type: push | pub (default: push)
        high_water_mark: Max queued messages before sends fail
    """
    endpoint: str = "tcp://localhost:5555"
    topic: str = "interlog"
    socket_type: str = "push"  # push | pub
    high_water_mark: int = 10000

    # Internal state
    _context: Any = field(default=None, init=False)
    _socket: Any = field(default=None, init=False)

    async def start(self) -> None:
        try:
            import zmq
            import zmq.asyncio
        except ImportError:
            raise RuntimeError("pyzmq required: pip install pyzmq")

        self._context = zmq.asyncio.Context()

        if self.socket_type == "pub":
            self._socket = self._context.socket(zmq.PUB)
        else:
            self._socket = self._context.socket(zmq.PUSH)

        self._socket.set_hwm(self.high_water_mark)
        self._socket.setsockopt(zmq.LINGER, 0)
        self._socket.connect(self.endpoint)

        logger.info(f"ZMQ transport connected to {self.endpoint} ({self.socket_type})")

    async def stop(self) -> None:
        if self._socket:
            self._socket.close()
            self._socket = None
        if self._context:
            self._context.term()
            self._context = None

        logger.info("ZMQ transport stopped")

    async def send(self, payload: bytes) -> bool:
        import zmq

        if not self._socket:
            await self.start()

        frames = [payload] if self.socket_type != "pub" else [self.topic.encode(), payload]
        try:
            await self._socket.send_multipart(frames, flags=zmq.NOBLOCK)
        except zmq.Again as e:
            raise TransportUnreachable(f"ZMQ peer not accepting at {self.endpoint}") from e
        return True

    @property
    def supports_best_effort(self) -> bool:
        return True

    async def send_best_effort(self, payload: bytes) -> None:
        try:
            await self.send(payload)
        except TransportUnreachable as e:
            logger.debug(f"Best-effort ZMQ send dropped: {e}")

    async def health_check(self) -> bool:
        return self._socket is not None
