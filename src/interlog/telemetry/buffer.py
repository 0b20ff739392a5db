"""Thread-safe event buffer."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from .events import Batch, EventRecord


@dataclass
class EventBuffer:
    """
    Ordered, growable sequence of event records.

    The single mutation point for all producers. `append` and `drain_all`
    are serialized by one lock, so every record lands in exactly one drain.
    """
    _records: list[EventRecord] = field(default_factory=list, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "appended": 0,
            "drained": 0,
        }

    def append(self, record: EventRecord) -> int:
        """Add a record and return the new buffer length."""
        with self._lock:
            self._records.append(record)
            self._stats["appended"] += 1
            return len(self._records)

    def drain_all(self) -> Batch | None:
        """
        Atomically remove every held record.

        Returns None when the buffer is empty.
        """
        with self._lock:
            if not self._records:
                return None
            records, self._records = self._records, []
            self._stats["drained"] += len(records)
        return Batch(records=tuple(records))

    def snapshot(self) -> tuple[EventRecord, ...]:
        """Copy of the current contents; the buffer is left untouched."""
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def stats(self) -> dict:
        return {**self._stats, "buffered": len(self)}
