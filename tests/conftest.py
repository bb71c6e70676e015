import socket
import time

import pytest

from beacon.config import BeaconConfig, SupervisorConfig


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def fast_config() -> BeaconConfig:
    return BeaconConfig(
        recv_queue_size=16,
        max_datagram=65536,
        write_timeout=1.0,
        poll_interval=0.05,
        debug=False,
    )


@pytest.fixture
def fast_supervisor() -> SupervisorConfig:
    return SupervisorConfig(
        failure_threshold=2,
        failure_backoff=0.1,
        failure_decay=30,
        max_backoff=1.0,
        stop_timeout=2.0,
    )


@pytest.fixture
def wait_for():
    def _wait_for(condition, timeout: float = 2.0, interval: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if condition():
                return True
            time.sleep(interval)
        return condition()

    return _wait_for
