"""File-based transport: spools batches to rotating JSONL files."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from .base import Transport


@dataclass
class RotatingJsonlWriter:
    """
    Appends JSON lines to rotating files.

    Creates new files based on time interval or size.
    Pattern can include strftime codes for time-based rotation.
    """
    # Path pattern (can include strftime codes like %Y%m%d)
    path_pattern: str = "interlog-%Y%m%d.jsonl"

    # Base directory
    directory: str = "./logs"

    # Max file size in bytes (0 = no size limit)
    max_bytes: int = 100 * 1024 * 1024  # 100MB

    encoding: str = "utf-8"

    # Internal state
    _current_path: str = field(default="", init=False)
    _current_file: Any = field(default=None, init=False)
    _current_size: int = field(default=0, init=False)

    def write(self, rows: Iterable[dict[str, Any]]) -> int:
        """Write rows, one JSON object per line. Returns the row count."""
        expected_path = os.path.join(
            self.directory,
            datetime.now().strftime(self.path_pattern),
        )

        if expected_path != self._current_path or self._needs_size_rotation():
            self._rotate(expected_path)

        count = 0
        for row in rows:
            line = json.dumps(row, default=str) + "\n"
            self._current_file.write(line)
            self._current_size += len(line.encode(self.encoding))
            count += 1

        self._current_file.flush()
        return count

    def close(self) -> None:
        if self._current_file:
            self._current_file.close()
            self._current_file = None
            self._current_path = ""

    @property
    def current_path(self) -> str:
        return self._current_path

    def _needs_size_rotation(self) -> bool:
        if self.max_bytes == 0:
            return False
        return self._current_size >= self.max_bytes

    def _rotate(self, new_path: str) -> None:
        size_rotation = new_path == self._current_path and self._needs_size_rotation()
        if self._current_file:
            self._current_file.close()

        Path(self.directory).mkdir(parents=True, exist_ok=True)

        # Size rotation moves on to the next free numbered suffix
        if size_rotation:
            base, ext = os.path.splitext(new_path)
            suffix = 1
            while os.path.exists(f"{base}.{suffix}{ext}"):
                suffix += 1
            new_path = f"{base}.{suffix}{ext}"

        self._current_path = new_path
        self._current_file = open(new_path, "a", encoding=self.encoding)
        self._current_size = os.path.getsize(new_path)


@dataclass
class FileTransport(Transport):
    """
    Transport that appends every delivered record to local JSONL files.

    Handy as an offline spool when no collector is reachable.
    """
    directory: str = "./logs"
    path_pattern: str = "interlog-%Y%m%d.jsonl"
    max_bytes: int = 100 * 1024 * 1024

    _writer: RotatingJsonlWriter | None = field(default=None, init=False)

    async def start(self) -> None:
        if self._writer is None:
            self._writer = RotatingJsonlWriter(
                path_pattern=self.path_pattern,
                directory=self.directory,
                max_bytes=self.max_bytes,
            )

    async def stop(self) -> None:
        if self._writer:
            self._writer.close()
            self._writer = None

    async def send(self, payload: bytes) -> bool:
        if self._writer is None:
            await self.start()

        records = json.loads(payload)["batch"]
        self._writer.write(records)
        return True

    @property
    def supports_best_effort(self) -> bool:
        return True

    async def send_best_effort(self, payload: bytes) -> None:
        await self.send(payload)
