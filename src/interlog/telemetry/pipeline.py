"""Batch delivery with bounded exponential-backoff retries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from .events import Batch, FailureKind, encode_batch
from .retention import FailedBatchRetention
from .transports.base import Transport, TransportTimeout, TransportUnreachable


logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_delay_seconds: float) -> float:
    """Delay before the retry that follows a failed `attempt`."""
    return base_delay_seconds * (2 ** attempt)


@dataclass
class DeliveryPipeline:
    """
    Delivers drained batches and retries failures in the background.

    Each batch is sent once, then retried up to `max_retries` times with
    delays of `base_delay_seconds * 2**attempt`. A batch that still fails
    moves to retention. A best-effort batch on a transport without a
    best-effort variant gets one normal attempt and goes straight to
    retention if it fails. Retries run as tracked asyncio tasks so they never
    block producers or each other, and can be awaited or cancelled at
    shutdown. All methods and counters are confined to the event loop
    thread; the collector hands batches over with `call_soon_threadsafe`.
    """
    transport: Transport
    retention: FailedBatchRetention = field(default_factory=FailedBatchRetention)

    # Retry policy
    max_retries: int = 4
    base_delay_seconds: float = 0.5

    # Injectable for tests
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    # Internal state
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "batches_sent": 0,
            "events_sent": 0,
            "attempts": 0,
            "retries_scheduled": 0,
            "batches_failed": 0,
            "best_effort_sent": 0,
            "abandoned": 0,
            **{kind.value: 0 for kind in FailureKind},
        }

    def submit(self, batch: Batch, best_effort: bool = False) -> asyncio.Task:
        """
        Schedule delivery of a batch and return immediately.

        Must be called on the event loop thread.
        """
        return self._spawn(self.deliver(batch, best_effort=best_effort))

    async def deliver(self, batch: Batch, attempt: int = 0, best_effort: bool = False) -> None:
        """Send one attempt of a batch, scheduling a retry if it fails."""
        payload = encode_batch(batch)

        if best_effort and self.transport.supports_best_effort:
            try:
                await self.transport.send_best_effort(payload)
            except Exception as e:
                logger.debug(f"Best-effort send of batch {batch.batch_id} raised: {e}")
            self._stats["best_effort_sent"] += 1
            logger.info(f"Best-effort send of batch {batch.batch_id} ({len(batch)} events)")
            return

        self._stats["attempts"] += 1
        failure = await self._attempt(batch, payload)

        if failure is None:
            self._stats["batches_sent"] += 1
            self._stats["events_sent"] += len(batch)
            if attempt:
                logger.info(f"Batch {batch.batch_id} delivered on retry {attempt}")
            return

        self._stats[failure.value] += 1
        if best_effort:
            # Final send with no fire-and-forget variant: nothing will retry it
            self._stats["batches_failed"] += 1
            self.retention.record_failed(batch)
            return
        self._retry(batch, attempt, failure)

    async def _attempt(self, batch: Batch, payload: bytes) -> FailureKind | None:
        """Run the transport once. Returns None on success."""
        try:
            if await self.transport.send(payload):
                return None
            return FailureKind.TRANSPORT_REJECTED
        except TransportTimeout as e:
            logger.warning(f"Batch {batch.batch_id} timed out: {e}")
            return FailureKind.TRANSPORT_TIMEOUT
        except TransportUnreachable as e:
            logger.warning(f"Batch {batch.batch_id} undeliverable: {e}")
            return FailureKind.TRANSPORT_UNREACHABLE
        except Exception as e:
            logger.warning(f"Transport raised delivering batch {batch.batch_id}: {e!r}")
            return FailureKind.TRANSPORT_EXCEPTION

    def _retry(self, batch: Batch, attempt: int, failure: FailureKind) -> None:
        if attempt >= self.max_retries:
            self._stats["batches_failed"] += 1
            self.retention.record_failed(batch)
            return

        delay = backoff_delay(attempt, self.base_delay_seconds)
        self._stats["retries_scheduled"] += 1
        logger.info(
            f"Batch {batch.batch_id} failed ({failure.value}), "
            f"retry {attempt + 1}/{self.max_retries} in {delay:.2f}s"
        )
        self._spawn(self._deliver_later(batch, attempt + 1, delay))

    async def _deliver_later(self, batch: Batch, attempt: int, delay: float) -> None:
        await self.sleep(delay)
        await self.deliver(batch, attempt)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self, timeout: float | None = None) -> bool:
        """
        Wait until every submitted batch and scheduled retry has finished.

        Returns False if work is still running when `timeout` expires; that
        work is left running.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            await asyncio.wait(list(self._tasks), timeout=remaining)
        return True

    async def cancel_pending(self) -> int:
        """Cancel in-flight deliveries and retries. Returns how many were abandoned."""
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        if tasks:
            logger.warning(f"Abandoned {len(tasks)} in-flight deliveries at shutdown")
        self._stats["abandoned"] += len(tasks)
        return len(tasks)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def stats(self) -> dict:
        return {
            **self._stats,
            "in_flight": self.in_flight,
            "retained_batches": len(self.retention),
        }
