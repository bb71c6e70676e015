"""Configuration management for the broadcast beacon.

Environment variables allow tuning ports, queue sizes and restart policy
without code changes.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes", "on")


@dataclass
class BeaconConfig:
    """Settings for the send/receive engine."""

    port: int = int(os.environ.get("BEACON_PORT", 21025))
    recv_queue_size: int = int(os.environ.get("BEACON_RECV_QUEUE_SIZE", 16))
    max_datagram: int = int(os.environ.get("BEACON_MAX_DATAGRAM", 65536))
    write_timeout: float = float(os.environ.get("BEACON_WRITE_TIMEOUT", 1.0))
    poll_interval: float = float(os.environ.get("BEACON_POLL_INTERVAL", 0.5))
    debug: bool = _env_flag("BEACON_DEBUG")


@dataclass
class SupervisorConfig:
    # Don't retry too frenetically: failing to open a socket is usually
    # either permanent or takes a while to get solved.
    failure_threshold: float = float(os.environ.get("BEACON_FAILURE_THRESHOLD", 2))
    failure_backoff: float = float(os.environ.get("BEACON_FAILURE_BACKOFF", 60))
    failure_decay: float = float(os.environ.get("BEACON_FAILURE_DECAY", 30))
    max_backoff: float = float(os.environ.get("BEACON_MAX_BACKOFF", 600))
    stop_timeout: float = float(os.environ.get("BEACON_STOP_TIMEOUT", 10))


@dataclass
class DiagnosticsConfig:
    api_port: int = int(os.environ.get("BEACON_API_PORT", 8000))


beacon_config = BeaconConfig()
supervisor_config = SupervisorConfig()
diagnostics_config = DiagnosticsConfig()
