"""Local retention of batches that could not be delivered."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .events import Batch, EventRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportSnapshot:
    """
    Point-in-time copy of everything not yet delivered.

    `failed` holds batches that exhausted their retries, in arrival order;
    `pending` holds the records still waiting in the buffer.
    """
    failed: tuple[Batch, ...]
    pending: tuple[EventRecord, ...]
    session_id: str
    exported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def event_count(self) -> int:
        return sum(len(batch) for batch in self.failed) + len(self.pending)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session_id,
            "exported_at": self.exported_at.isoformat(),
            "failed": [
                {"batch_id": batch.batch_id, "batch": batch.to_list()}
                for batch in self.failed
            ],
            "pending": [record.to_dict() for record in self.pending],
        }

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def write(self, path: str | Path) -> Path:
        """Write the snapshot as JSON, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json(indent=2), encoding="utf-8")
        logger.info(f"Exported {self.event_count} undelivered events to {path}")
        return path


@dataclass
class FailedBatchRetention:
    """
    Unbounded, ordered store of batches that exhausted delivery retries.

    Append-only from the pipeline; readers get copies. Growth is the
    caller's to manage via `clear()`.
    """
    _batches: list[Batch] = field(default_factory=list, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def record_failed(self, batch: Batch) -> None:
        with self._lock:
            self._batches.append(batch)
            total = len(self._batches)
        logger.error(
            f"Batch {batch.batch_id} ({len(batch)} events) retained after "
            f"exhausting retries ({total} batches retained)"
        )

    def snapshot(self) -> tuple[Batch, ...]:
        with self._lock:
            return tuple(self._batches)

    def clear(self) -> list[Batch]:
        """Remove and return every retained batch."""
        with self._lock:
            batches, self._batches = self._batches, []
        return batches

    def __len__(self) -> int:
        return len(self._batches)

    @property
    def event_count(self) -> int:
        with self._lock:
            return sum(len(batch) for batch in self._batches)
