"""Interaction event records and batches."""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from ..clock import ClockReconciler


logger = logging.getLogger(__name__)

# Top-level keys every wire record carries
RESERVED_FIELDS = frozenset({"t", "ms", "session", "page", "type"})

# Prefix applied to caller attributes that collide with a reserved field
COLLISION_PREFIX = "attr_"

MASK = "***"

_SCALARS = (str, int, float, bool, type(None))


class FailureKind(str, Enum):
    """Why a delivery attempt failed. Used for logging and stats only."""
    TRANSPORT_REJECTED = "transport_rejected"
    TRANSPORT_TIMEOUT = "transport_timeout"
    TRANSPORT_UNREACHABLE = "transport_unreachable"
    TRANSPORT_EXCEPTION = "transport_exception"


def new_session_id() -> str:
    """Opaque 16 character identifier for one collector lifetime."""
    return uuid.uuid4().hex[:16]


def mask_value(value: Any, masked: bool, limit: int = 200) -> str:
    """
    Render a user-entered value for recording.

    The caller decides whether the value is sensitive (e.g. a password
    field); masked values never leave the process.
    """
    if masked:
        return MASK
    if value is None:
        return ""
    return str(value)[:limit]


def _json_safe(value: Any) -> bool:
    """Scalars that encode as strict JSON; NaN and infinities do not."""
    if isinstance(value, float):
        return math.isfinite(value)
    return isinstance(value, _SCALARS)


def coerce_attributes(attributes: Mapping[str, Any] | None) -> dict[str, Any]:
    """
    Normalize caller attributes into flat, JSON-safe scalars.

    Non-scalar values (and non-finite floats) are stringified; values that
    cannot be stringified are dropped. Keys that collide with reserved wire
    fields are namespaced. When two keys end up with the same name the
    first value is kept.
    """
    if not attributes:
        return {}

    result: dict[str, Any] = {}
    for key, value in attributes.items():
        key = str(key)
        if key in RESERVED_FIELDS:
            logger.warning(f"Attribute '{key}' collides with a reserved field, "
                           f"recording as '{COLLISION_PREFIX}{key}'")
            key = f"{COLLISION_PREFIX}{key}"

        if key in result:
            logger.warning(f"Attribute '{key}' given twice, keeping the first value")
            continue

        if not _json_safe(value):
            try:
                value = str(value)
            except Exception as e:
                logger.debug(f"Dropping attribute '{key}': {e}")
                continue

        result[key] = value
    return result


@dataclass(frozen=True, slots=True)
class EventRecord:
    """
    A single recorded interaction.

    Immutable once created; attributes are exposed as a read-only mapping.
    """
    timestamp_wall: float
    session_id: str
    page_id: str
    type: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def timestamp_iso(self) -> str:
        return ClockReconciler.iso(self.timestamp_wall)

    @classmethod
    def create(
        cls,
        type: str,
        clock: ClockReconciler,
        session_id: str,
        page_id: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> EventRecord:
        """Factory that stamps the record and normalizes attributes."""
        return cls(
            timestamp_wall=clock.now(),
            session_id=session_id,
            page_id=page_id,
            type=str(type),
            attributes=MappingProxyType(coerce_attributes(attributes)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Flat wire representation."""
        return {
            "t": self.timestamp_iso,
            "ms": self.timestamp_wall,
            "session": self.session_id,
            "page": self.page_id,
            "type": self.type,
            **self.attributes,
        }


@dataclass(frozen=True, slots=True)
class Batch:
    """An ordered group of records drained from the buffer together."""
    records: tuple[EventRecord, ...]
    batch_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(self.records)

    def to_list(self) -> list[dict[str, Any]]:
        return [record.to_dict() for record in self.records]


def _encode_record(record: EventRecord) -> str:
    try:
        return json.dumps(record.to_dict(), allow_nan=False)
    except (TypeError, ValueError) as e:
        logger.debug(f"Record {record.type!r} not JSON-safe, stringifying offending fields: {e}")
        fallback = record.to_dict()
        for key, value in record.attributes.items():
            try:
                json.dumps(value, allow_nan=False)
            except (TypeError, ValueError):
                fallback[key] = str(value)
        return json.dumps(fallback, allow_nan=False)


def encode_batch(batch: Batch) -> bytes:
    """Serialize a batch into the `{"batch": [...]}` transport payload."""
    body = ",".join(_encode_record(record) for record in batch.records)
    return ('{"batch":[' + body + "]}").encode("utf-8")
