"""Telemetry core - buffering, flush triggers, retrying delivery."""

from .batcher import TelemetryBatcher
from .buffer import EventBuffer
from .events import Batch, EventRecord, FailureKind, encode_batch, mask_value
from .pipeline import DeliveryPipeline
from .retention import ExportSnapshot, FailedBatchRetention

__all__ = [
    "Batch",
    "EventRecord",
    "FailureKind",
    "encode_batch",
    "mask_value",
    "EventBuffer",
    "TelemetryBatcher",
    "DeliveryPipeline",
    "FailedBatchRetention",
    "ExportSnapshot",
]
