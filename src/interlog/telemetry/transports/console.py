"""Console transport for development/debugging."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass

from .base import Transport


@dataclass
class ConsoleTransport(Transport):
    """
    Transport that writes payloads to console (stdout/stderr).

    Useful for development and debugging.
    """
    # Output destination
    stream: str = "stdout"  # stdout | stderr

    # Output format
    format: str = "json"  # json | compact | pretty

    # Prefix for each line
    prefix: str = "[INTERLOG] "

    async def send(self, payload: bytes) -> bool:
        out = sys.stdout if self.stream == "stdout" else sys.stderr

        for line in self._format_payload(payload):
            print(f"{self.prefix}{line}", file=out)
        return True

    @property
    def supports_best_effort(self) -> bool:
        return True

    async def send_best_effort(self, payload: bytes) -> None:
        await self.send(payload)

    def _format_payload(self, payload: bytes) -> list[str]:
        if self.format == "json":
            return [payload.decode("utf-8")]

        records = json.loads(payload)["batch"]
        if self.format == "compact":
            return [
                f"{r['t']} {r['session']} {r['page']} {r['type']}"
                for r in records
            ]
        # pretty
        return [json.dumps(r, indent=2) for r in records]
