"""Configuration for the interaction collector."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any


@dataclass
class TransportConfig:
    """
    Where batches are delivered.

    Can be set via constructor arguments, environment variables
    (INTERLOG_*) or a config file.
    """
    type: str = "http"  # http | file | console | zmq

    # Collector endpoint (http transport)
    endpoint_url: str = field(
        default_factory=lambda: os.environ.get("INTERLOG_ENDPOINT_URL", "http://localhost:8050/logs")
    )

    # Client-side request timeout (seconds)
    timeout_seconds: float = field(
        default_factory=lambda: float(os.environ.get("INTERLOG_TIMEOUT", "8"))
    )

    headers: dict[str, str] = field(default_factory=dict)

    # Extra keyword arguments for the transport class
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class FlushConfig:
    """When the buffer is drained."""
    interval_seconds: float = 5.0
    max_buffer: int = 500


@dataclass
class RetryConfig:
    """Exponential backoff for failed deliveries."""
    max_retries: int = 4
    base_delay_seconds: float = 0.5


@dataclass
class CollectorConfig:
    """Identity and lifecycle of one collector instance."""
    page_id: str = field(
        default_factory=lambda: os.environ.get("INTERLOG_PAGE_ID", "default")
    )

    # How long in-flight retries may keep running after shutdown (0 = abandon)
    shutdown_grace_seconds: float = 0.0


@dataclass
class ReceiverConfig:
    """Development log receiver."""
    host: str = "0.0.0.0"
    port: int = 8050
    output_dir: str = "./logs"
    path_pattern: str = "interlog-%Y%m%d.jsonl"


@dataclass
class Config:
    """Main configuration container."""
    transport: TransportConfig = field(default_factory=TransportConfig)
    flush: FlushConfig = field(default_factory=FlushConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    receiver: ReceiverConfig = field(default_factory=ReceiverConfig)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from dictionary."""
        return cls(
            transport=TransportConfig(**data.get("transport", {})),
            flush=FlushConfig(**data.get("flush", {})),
            retry=RetryConfig(**data.get("retry", {})),
            collector=CollectorConfig(**data.get("collector", {})),
            receiver=ReceiverConfig(**data.get("receiver", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)
