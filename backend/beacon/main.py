"""FastAPI diagnostics surface for a running beacon."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException

from .broadcast import Broadcast
from .config import beacon_config, diagnostics_config
from .schemas import BeaconStatus

app = FastAPI(title="Broadcast Beacon", version="0.1.0")

logger = logging.getLogger(__name__)

_beacon: Optional[Broadcast] = None


@app.on_event("startup")
async def startup_event() -> None:
    global _beacon
    _beacon = Broadcast(beacon_config.port, logger=logging.getLogger("beacon"))
    logger.info(
        "Beacon on UDP port %s (diagnostics on port %s)",
        beacon_config.port,
        diagnostics_config.api_port,
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    global _beacon
    if _beacon is not None:
        _beacon.stop()
    _beacon = None


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/beacon/status", response_model=BeaconStatus)
async def beacon_status() -> BeaconStatus:
    if _beacon is None:
        raise HTTPException(status_code=503, detail="Beacon not running")
    return BeaconStatus(
        port=_beacon.port,
        error=_describe(_beacon.error()),
        receiver_error=_describe(_beacon.reader.error()),
        sender_error=_describe(_beacon.writer.error()),
    )


def _describe(err: Optional[Exception]) -> Optional[str]:
    return str(err) if err is not None else None
