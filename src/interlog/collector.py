"""Interaction collector - the entry point producers talk to.

Producers call `record()` from any thread; it never blocks on the network
and never raises. Batches are drained by the flush triggers and delivered
on the event loop captured by `start()`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Mapping

from .clock import ClockReconciler
from .config import Config
from .telemetry.batcher import TelemetryBatcher
from .telemetry.events import Batch, EventRecord, new_session_id
from .telemetry.pipeline import DeliveryPipeline
from .telemetry.retention import ExportSnapshot, FailedBatchRetention
from .telemetry.transports import (
    ConsoleTransport,
    FileTransport,
    HttpTransport,
    Transport,
    ZmqTransport,
)


logger = logging.getLogger(__name__)


def create_transport(config: Config) -> Transport:
    """Build the transport named by the config."""
    transport_type = config.transport.type
    options = config.transport.options

    if transport_type == "http":
        return HttpTransport(
            endpoint_url=config.transport.endpoint_url,
            timeout_seconds=config.transport.timeout_seconds,
            headers=dict(config.transport.headers),
            **options,
        )
    elif transport_type == "file":
        return FileTransport(**options)
    elif transport_type == "console":
        return ConsoleTransport(**options)
    elif transport_type == "zmq":
        return ZmqTransport(**options)
    raise ValueError(f"Unknown transport type: {transport_type!r}")


@dataclass
class InteractionCollector:
    """
    Records interaction events and ships them in batches.

    Usage:
        collector = InteractionCollector(config=Config.from_yaml("config.yaml"))
        async with collector:
            collector.record("click", {"x": 10, "y": 20})
    """
    config: Config = field(default_factory=Config)

    # Built from config when not supplied
    transport: Transport | None = None
    clock: ClockReconciler = field(default_factory=ClockReconciler)
    session_id: str = field(default_factory=new_session_id)
    page_id: str | None = None

    # Internal state
    _retention: FailedBatchRetention = field(default_factory=FailedBatchRetention, init=False)
    _pipeline: DeliveryPipeline = field(init=False)
    _batcher: TelemetryBatcher = field(init=False)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)
    _timer_task: asyncio.Task | None = field(default=None, init=False)
    _closed: bool = field(default=False, init=False)
    _record_errors: int = field(default=0, init=False)
    _errors_lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self):
        if self.transport is None:
            self.transport = create_transport(self.config)
        if self.page_id is None:
            self.page_id = self.config.collector.page_id

        self._pipeline = DeliveryPipeline(
            transport=self.transport,
            retention=self._retention,
            max_retries=self.config.retry.max_retries,
            base_delay_seconds=self.config.retry.base_delay_seconds,
        )
        self._batcher = TelemetryBatcher(
            max_buffer=self.config.flush.max_buffer,
            flush_interval_seconds=self.config.flush.interval_seconds,
        )

    async def start(self) -> None:
        """Bind to the running loop, start the transport and the flush timer."""
        if self._closed:
            raise RuntimeError("Collector has been shut down")
        if self._loop is not None:
            return

        self._loop = asyncio.get_running_loop()
        await self.transport.start()
        self._batcher.submit = self._submit
        self._timer_task = asyncio.create_task(self._batcher.timer_loop())

        logger.info(
            f"Interaction collector started (session={self.session_id}, "
            f"page={self.page_id}, transport={type(self.transport).__name__})"
        )

        # Events recorded before start may already exceed the threshold
        if self._batcher.buffer_size >= self._batcher.max_buffer:
            self._batcher.flush()

    def record(self, type: str, attributes: Mapping[str, Any] | None = None) -> None:
        """
        Record one interaction event.

        Never raises and never waits on the network.
        """
        try:
            event = EventRecord.create(
                type,
                clock=self.clock,
                session_id=self.session_id,
                page_id=self.page_id,
                attributes=attributes,
            )
            self._batcher.add(event)
        except Exception:
            with self._errors_lock:
                self._record_errors += 1
            logger.exception(f"Failed to record {type!r} event")

    def flush_now(self) -> None:
        """Drain and deliver immediately, outside the timer cadence."""
        if self._batcher.submit is None:
            logger.warning("Collector not running, events stay buffered")
            return
        self._batcher.flush()

    def _submit(self, batch: Batch, best_effort: bool) -> None:
        if self._closed:
            self._retain_late(batch)
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        try:
            if running is self._loop:
                self._pipeline.submit(batch, best_effort)
            else:
                self._loop.call_soon_threadsafe(self._submit_on_loop, batch, best_effort)
        except RuntimeError as e:
            # Loop already closed; keep the batch rather than lose it
            logger.error(f"Cannot schedule delivery of batch {batch.batch_id}: {e}")
            self._retention.record_failed(batch)

    def _submit_on_loop(self, batch: Batch, best_effort: bool) -> None:
        # Shutdown may have started between scheduling and running
        if self._closed:
            self._retain_late(batch)
            return
        self._pipeline.submit(batch, best_effort)

    def _retain_late(self, batch: Batch) -> None:
        logger.warning(f"Batch {batch.batch_id} drained during shutdown, keeping it for export")
        self._retention.record_failed(batch)

    async def shutdown(self) -> None:
        """
        Final best-effort flush, then tear down.

        Retries already in flight get `shutdown_grace_seconds` to finish and
        are abandoned after that.
        """
        if self._closed:
            return
        self._closed = True
        self._batcher.submit = None

        self._batcher.stop()
        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass

        if self._loop is not None:
            batch = self._batcher.drain()
            if batch is not None:
                await self._pipeline.deliver(batch, best_effort=True)

            grace = self.config.collector.shutdown_grace_seconds
            if grace > 0 and not await self._pipeline.wait_idle(timeout=grace):
                logger.warning(f"In-flight retries still running after {grace}s grace")

            await self._pipeline.cancel_pending()
            await self.transport.stop()

        logger.info(f"Interaction collector stopped. Stats: {self.stats}")

    def export_snapshot(self) -> ExportSnapshot:
        """Copy of failed batches and still-buffered records."""
        return ExportSnapshot(
            failed=self._retention.snapshot(),
            pending=self._batcher.buffer.snapshot(),
            session_id=self.session_id,
        )

    @property
    def retention(self) -> FailedBatchRetention:
        return self._retention

    @property
    def pipeline(self) -> DeliveryPipeline:
        return self._pipeline

    @property
    def batcher(self) -> TelemetryBatcher:
        return self._batcher

    @property
    def stats(self) -> dict:
        return {
            "session": self.session_id,
            "record_errors": self._record_errors,
            "buffer": self._batcher.buffer.stats,
            "flush": self._batcher.stats,
            "delivery": self._pipeline.stats,
        }

    async def __aenter__(self) -> InteractionCollector:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()
