"""Transports - destinations for serialized batches."""

from .base import (
    CallableTransport,
    Transport,
    TransportError,
    TransportTimeout,
    TransportUnreachable,
)
from .console import ConsoleTransport
from .file import FileTransport, RotatingJsonlWriter
from .http import HttpTransport
from .zmq import ZmqTransport

__all__ = [
    "Transport",
    "TransportError",
    "TransportTimeout",
    "TransportUnreachable",
    "CallableTransport",
    "ConsoleTransport",
    "FileTransport",
    "RotatingJsonlWriter",
    "HttpTransport",
    "ZmqTransport",
]
