"""Shared test fixtures for the interaction logger."""

from __future__ import annotations

import asyncio
import json

import pytest

from interlog.clock import ClockReconciler
from interlog.telemetry.events import Batch, EventRecord
from interlog.telemetry.transports.base import Transport


class ManualClock:
    """Monotonic clock the test advances by hand (milliseconds)."""

    def __init__(self, start: float = 0.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, ms: float) -> None:
        self.value += ms


class ScriptedTransport(Transport):
    """
    Transport whose outcomes are scripted per call.

    `outcomes` is consumed in order; each item is True, False or an
    exception instance to raise. Once exhausted, `default` is used.
    """

    def __init__(self, outcomes=(), default=True, best_effort: bool = False):
        self.outcomes = list(outcomes)
        self.default = default
        self.best_effort = best_effort
        self.payloads: list[bytes] = []
        self.best_effort_payloads: list[bytes] = []
        self.started = False
        self.stopped = False

    async def send(self, payload: bytes) -> bool:
        self.payloads.append(payload)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    @property
    def supports_best_effort(self) -> bool:
        return self.best_effort

    async def send_best_effort(self, payload: bytes) -> None:
        self.best_effort_payloads.append(payload)

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def batches(self) -> list[list[dict]]:
        return [json.loads(p)["batch"] for p in self.payloads]

    def best_effort_batches(self) -> list[list[dict]]:
        return [json.loads(p)["batch"] for p in self.best_effort_payloads]


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock(start=500.0)


@pytest.fixture
def clock(manual_clock) -> ClockReconciler:
    return ClockReconciler(wall_clock=lambda: 1_700_000_000_000.0, monotonic_clock=manual_clock)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_record(clock):
    def factory(event_type: str = "click", /, **attributes) -> EventRecord:
        return EventRecord.create(
            event_type,
            clock=clock,
            session_id="sess0001",
            page_id="checkout",
            attributes=attributes,
        )
    return factory


@pytest.fixture
def make_batch(make_record):
    def factory(size: int = 3) -> Batch:
        return Batch(records=tuple(make_record(seq=i) for i in range(size)))
    return factory
