"""Base transport interface."""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Union


class TransportError(Exception):
    """Base exception for transport failures."""
    pass


class TransportTimeout(TransportError):
    """The remote did not answer within the client-side timeout."""
    pass


class TransportUnreachable(TransportError):
    """The remote could not be reached (DNS, connect, reset)."""
    pass


class Transport(ABC):
    """
    Abstract base class for payload transports.

    A transport moves one serialized batch to its destination. `send`
    reports success with True; an explicit rejection by the remote is
    False; network trouble raises a TransportError.
    """

    @abstractmethod
    async def send(self, payload: bytes) -> bool:
        ...

    @property
    def supports_best_effort(self) -> bool:
        """Whether `send_best_effort` is available."""
        return False

    async def send_best_effort(self, payload: bytes) -> None:
        """
        Fire-and-forget send used during shutdown.

        The outcome is not observed and failures are not raised.
        """
        raise NotImplementedError(f"{type(self).__name__} has no best-effort variant")

    async def start(self) -> None:
        """Initialize the transport (called on startup)."""
        pass

    async def stop(self) -> None:
        """Clean up the transport (called on shutdown)."""
        pass

    async def health_check(self) -> bool:
        """Check if the transport is healthy."""
        return True


SendFunction = Callable[[bytes], Union[bool, Awaitable[bool]]]


async def _call(fn: Callable, payload: bytes):
    result = fn(payload)
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass
class CallableTransport(Transport):
    """
    Transport backed by plain functions.

    Usage:
        transport = CallableTransport(send_fn=lambda payload: post(payload))

    Both functions may be sync or async.
    """
    send_fn: SendFunction
    best_effort_fn: Callable[[bytes], object] | None = None

    async def send(self, payload: bytes) -> bool:
        return bool(await _call(self.send_fn, payload))

    @property
    def supports_best_effort(self) -> bool:
        return self.best_effort_fn is not None

    async def send_best_effort(self, payload: bytes) -> None:
        if self.best_effort_fn is None:
            return await super().send_best_effort(payload)
        await _call(self.best_effort_fn, payload)
