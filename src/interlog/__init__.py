"""Interaction logger - batched, retrying client-side event collection."""

__version__ = "0.1.0"

from .clock import ClockReconciler
from .collector import InteractionCollector, create_transport
from .config import Config

__all__ = [
    "ClockReconciler",
    "Config",
    "InteractionCollector",
    "create_transport",
]
