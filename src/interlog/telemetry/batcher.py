"""Flush triggering for the event buffer."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .buffer import EventBuffer
from .events import Batch, EventRecord


logger = logging.getLogger(__name__)


@dataclass
class TelemetryBatcher:
    """
    Decides when the buffer is drained.

    Three triggers funnel into the same drain:
    - threshold: `add` flushes as soon as the buffer holds `max_buffer` events
    - timer: `timer_loop` flushes every `flush_interval_seconds`
    - shutdown: `flush(best_effort=True)`

    Only one drain runs at a time. A trigger that arrives mid-drain is
    coalesced; whatever it would have drained waits for the next trigger.
    """
    # Batch configuration
    max_buffer: int = 500
    flush_interval_seconds: float = 5.0

    # Receives each drained batch: submit(batch, best_effort)
    submit: Callable[[Batch, bool], None] | None = None

    buffer: EventBuffer = field(default_factory=EventBuffer)

    # Internal state
    _drain_lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _last_flush: float = field(default_factory=time.time, init=False)
    _stats: dict = field(default_factory=dict, init=False)
    _stats_lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _running: bool = field(default=False, init=False)

    def __post_init__(self):
        self._stats = {
            "flushes": 0,
            "threshold_flushes": 0,
            "timer_flushes": 0,
            "coalesced": 0,
        }

    def add(self, record: EventRecord) -> None:
        """Append a record, flushing immediately if the threshold is crossed."""
        if self.buffer.append(record) >= self.max_buffer and self.submit is not None:
            if self.flush() is not None:
                self._count("threshold_flushes")

    def flush(self, best_effort: bool = False) -> Batch | None:
        """
        Drain the buffer and hand the batch to `submit`.

        Returns the drained batch, or None if the buffer was empty or a
        drain was already in progress.
        """
        if self.submit is None:
            logger.warning("No submit target configured, leaving events buffered")
            return None

        return self._drain(self.submit, best_effort)

    def drain(self) -> Batch | None:
        """Drain under the same guard as `flush`, without submitting."""
        return self._drain(None, False)

    def _drain(self, submit: Callable[[Batch, bool], None] | None, best_effort: bool) -> Batch | None:
        if not self._drain_lock.acquire(blocking=False):
            self._count("coalesced")
            return None

        try:
            batch = self.buffer.drain_all()
            if batch is None:
                return None

            self._last_flush = time.time()
            self._count("flushes")
            if submit is not None:
                submit(batch, best_effort)
            return batch
        finally:
            self._drain_lock.release()

    def _count(self, name: str) -> None:
        # Producer threads and the loop thread both update stats
        with self._stats_lock:
            self._stats[name] += 1

    async def timer_loop(self) -> None:
        """
        Background loop that flushes on a fixed period.

        Ensures events don't sit in the buffer during low traffic.
        """
        self._running = True
        logger.info(f"Flush timer started (interval={self.flush_interval_seconds}s)")

        while self._running:
            try:
                await asyncio.sleep(self.flush_interval_seconds)
                if self.flush() is not None:
                    self._count("timer_flushes")
            except asyncio.CancelledError:
                logger.info("Flush timer cancelled")
                break
            except Exception as e:
                logger.error(f"Flush timer error: {e}")

    def stop(self) -> None:
        """Stop the timer loop after its current sleep."""
        self._running = False

    @property
    def buffer_size(self) -> int:
        """Current buffer size."""
        return len(self.buffer)

    @property
    def stats(self) -> dict:
        """Get batcher statistics."""
        with self._stats_lock:
            counts = dict(self._stats)
        return {
            **counts,
            "buffer_size": self.buffer_size,
            "seconds_since_flush": time.time() - self._last_flush,
        }
