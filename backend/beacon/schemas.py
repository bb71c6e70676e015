"""Pydantic schemas shared between the beacon and the diagnostics API."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SourceAddress(BaseModel):
    host: str = Field(..., description="Originating IPv4 address")
    port: int = Field(..., description="Originating UDP port")

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class ReceivedMessage(BaseModel):
    data: bytes = Field(..., description="Datagram payload, copied off the socket")
    source: SourceAddress


class BeaconStatus(BaseModel):
    port: int
    error: Optional[str] = Field(None, description="Aggregated beacon error")
    receiver_error: Optional[str] = None
    sender_error: Optional[str] = None
