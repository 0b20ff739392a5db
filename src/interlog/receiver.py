"""FastAPI application - development log receiver.

Accepts the collector's `{"batch": [...]}` payloads and appends every record
to rotating JSONL files. Meant for local testing of the delivery path, not
as a production ingestion service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from pydantic import BaseModel, ConfigDict, Field

from .config import Config, ReceiverConfig
from .telemetry.transports.file import RotatingJsonlWriter


logger = logging.getLogger(__name__)


class WireRecord(BaseModel):
    """One record as sent by the collector; attributes ride along as extras."""
    model_config = ConfigDict(extra="allow")

    t: str
    ms: float
    session: str
    page: str
    type: str


class BatchPayload(BaseModel):
    batch: list[WireRecord] = Field(default_factory=list)


class IngestResponse(BaseModel):
    accepted: int


class HealthResponse(BaseModel):
    status: str
    batches: int
    events: int
    sessions: int
    output_file: str | None = None


def create_app(config: ReceiverConfig | None = None) -> FastAPI:
    """Build a receiver app writing under `config.output_dir`."""
    config = config or ReceiverConfig()
    writer = RotatingJsonlWriter(
        path_pattern=config.path_pattern,
        directory=config.output_dir,
    )
    stats: dict[str, Any] = {"batches": 0, "events": 0, "sessions": set()}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Receiver writing to {config.output_dir}")
        yield
        writer.close()
        logger.info(f"Receiver stopped after {stats['events']} events")

    app = FastAPI(
        title="Interlog Receiver",
        description="Development sink for batched interaction logs.",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.post("/logs", response_model=IngestResponse)
    async def ingest(payload: BatchPayload) -> IngestResponse:
        rows = [record.model_dump() for record in payload.batch]
        count = writer.write(rows)

        stats["batches"] += 1
        stats["events"] += count
        stats["sessions"].update(record.session for record in payload.batch)

        logger.info(f"Received batch of {count} events -> {writer.current_path}")
        return IngestResponse(accepted=count)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            batches=stats["batches"],
            events=stats["events"],
            sessions=len(stats["sessions"]),
            output_file=writer.current_path or None,
        )

    return app


def run(config_path: str | None = None):
    """Run the receiver with uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = Config.from_yaml(config_path) if config_path else Config()
    app = create_app(config.receiver)

    uvicorn.run(app, host=config.receiver.host, port=config.receiver.port)


if __name__ == "__main__":
    run()
