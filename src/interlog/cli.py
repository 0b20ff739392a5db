#!/usr/bin/env python3
"""
CLI tool for working with exported interaction logs.

Usage:
    python -m interlog.cli inspect pending-logs.json
    python -m interlog.cli replay pending-logs.json --endpoint http://localhost:8050/logs
    python -m interlog.cli receive --config config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Any

import httpx
from colorama import Fore, Style, just_fix_windows_console


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def load_export(path: str) -> dict[str, Any]:
    """Read an export snapshot written by `ExportSnapshot.write`."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if "failed" not in data or "pending" not in data:
        raise ValueError(f"{path} is not an interlog export (missing failed/pending)")
    return data


def export_batches(data: dict[str, Any]) -> list[list[dict[str, Any]]]:
    """Failed batches in order, followed by the pending records as one batch."""
    batches = [entry["batch"] for entry in data["failed"] if entry.get("batch")]
    if data["pending"]:
        batches.append(data["pending"])
    return batches


def cmd_inspect(args) -> int:
    """Summarize an export snapshot."""
    data = load_export(args.file)
    failed = data["failed"]
    pending = data["pending"]

    print(colorize("\nSession:", Style.BRIGHT), data.get("session", "unknown"))
    print(colorize("Exported:", Style.BRIGHT), data.get("exported_at", "unknown"))
    print(colorize("Failed batches:", Style.BRIGHT), len(failed))
    print(colorize("Pending events:", Style.BRIGHT), len(pending))

    types: Counter = Counter()
    for batch in export_batches(data):
        types.update(record.get("type", "?") for record in batch)

    print(colorize("\nEvent types:", Style.BRIGHT))
    for event_type, count in types.most_common():
        print(f"  {colorize(event_type, Fore.CYAN)} {count}")
    if not types:
        print(colorize("  (none)", Style.DIM))

    return 0


async def cmd_replay(args) -> int:
    """Re-send every batch in an export to a collector endpoint."""
    data = load_export(args.file)
    batches = export_batches(data)
    if not batches:
        print(colorize("Nothing to replay", Style.DIM))
        return 0

    failures = 0
    async with httpx.AsyncClient(timeout=args.timeout) as client:
        for i, batch in enumerate(batches, 1):
            try:
                response = await client.post(args.endpoint, json={"batch": batch})
                ok = 200 <= response.status_code < 300
                status = str(response.status_code)
            except httpx.HTTPError as e:
                ok = False
                status = type(e).__name__

            color = Fore.GREEN if ok else Fore.RED
            print(f"  batch {i}/{len(batches)} ({len(batch)} events): {colorize(status, color)}")
            failures += 0 if ok else 1

    if failures:
        print(colorize(f"{failures} batch(es) failed", Fore.RED), file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    just_fix_windows_console()

    parser = argparse.ArgumentParser(
        description="CLI tool for interlog exports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Summarize an export snapshot")
    inspect_parser.add_argument("file", help="Export JSON file")

    # replay command
    replay_parser = subparsers.add_parser("replay", help="Re-send an export to a collector")
    replay_parser.add_argument("file", help="Export JSON file")
    replay_parser.add_argument(
        "--endpoint",
        default="http://localhost:8050/logs",
        help="Collector endpoint URL",
    )
    replay_parser.add_argument("--timeout", type=float, default=8.0, help="Request timeout (seconds)")

    # receive command
    receive_parser = subparsers.add_parser("receive", help="Run the development receiver")
    receive_parser.add_argument("--config", help="YAML config file")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "inspect":
            return cmd_inspect(args)
        elif args.command == "replay":
            return asyncio.run(cmd_replay(args))
        elif args.command == "receive":
            from .receiver import run
            run(args.config)
            return 0
    except (OSError, ValueError) as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
