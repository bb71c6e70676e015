import logging
import queue
import socket
import threading

import pytest

from beacon import Broadcast
from beacon.config import BeaconConfig
from beacon.sender import BroadcastSender


def _recv(beacon, timeout=2.0):
    results = queue.Queue()
    threading.Thread(target=lambda: results.put(beacon.recv()), daemon=True).start()
    return results.get(timeout=timeout)


@pytest.fixture
def loopback_only(monkeypatch):
    monkeypatch.setattr(BroadcastSender, "destinations", lambda self: ["127.0.0.1"])


@pytest.fixture
def beacon(free_port, fast_config, fast_supervisor, loopback_only, wait_for):
    b = Broadcast(free_port, config=fast_config, supervisor=fast_supervisor)
    assert wait_for(lambda: b.reader._sock is not None and b.writer._sock is not None)
    yield b
    b.stop()


@pytest.mark.parametrize("port", [-1, 65536, 100000])
def test_rejects_invalid_port(port):
    with pytest.raises(ValueError):
        Broadcast(port)


def test_send_then_recv_in_order(beacon):
    payloads = [b"hello-%d" % i for i in range(8)] + [b"", bytes(range(256))]
    for payload in payloads:
        beacon.send(payload)

    received = [_recv(beacon) for _ in payloads]
    assert [data for data, _ in received] == payloads
    for _, source in received:
        assert source.host == "127.0.0.1"
    assert beacon.error() is None


def test_recv_reports_peer_source(beacon):
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as peer:
        peer.sendto(b"peer here", ("127.0.0.1", beacon.port))
        peer_port = peer.getsockname()[1]
        data, source = _recv(beacon)
    assert data == b"peer here"
    assert (source.host, source.port) == ("127.0.0.1", peer_port)


def test_send_blocks_without_running_sender(free_port, fast_config, fast_supervisor, loopback_only):
    b = Broadcast(free_port, config=fast_config, supervisor=fast_supervisor)
    b.stop()
    done = threading.Event()

    def send():
        b.send(b"nobody listening")
        done.set()

    threading.Thread(target=send, daemon=True).start()
    assert not done.wait(0.3)


def test_error_prefers_receiver(beacon):
    read_err, write_err = OSError("read"), OSError("write")
    beacon.writer._errors.set_error(write_err)
    assert beacon.error() is write_err
    beacon.reader._errors.set_error(read_err)
    assert beacon.error() is read_err
    beacon.reader._errors.clear()
    beacon.writer._errors.clear()
    assert beacon.error() is None


def test_bind_failure_surfaces_through_error(
    free_port, fast_config, fast_supervisor, loopback_only, wait_for
):
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as blocker:
        blocker.bind(("", free_port))
        with Broadcast(free_port, config=fast_config, supervisor=fast_supervisor) as b:
            assert wait_for(lambda: isinstance(b.error(), OSError))


def test_failed_sender_is_restarted(beacon, wait_for):
    first = beacon.writer._sock
    first.close()
    beacon.send(b"lost")
    assert wait_for(lambda: beacon.writer._sock is not first)
    beacon.send(b"after restart")
    data, _ = _recv(beacon)
    assert data == b"after restart"
    assert wait_for(lambda: beacon.writer.error() is None)


def test_second_beacon_on_same_port_reports_bind_error(
    free_port, fast_config, fast_supervisor, loopback_only, wait_for
):
    with Broadcast(free_port, config=fast_config, supervisor=fast_supervisor) as first:
        assert wait_for(lambda: first.reader._sock is not None)
        with Broadcast(free_port, config=fast_config, supervisor=fast_supervisor) as second:
            assert wait_for(lambda: isinstance(second.error(), OSError))
            assert isinstance(second.reader.error(), OSError)
        assert first.error() is None


def test_debug_config_leaves_injected_logger_alone(
    free_port, fast_supervisor, loopback_only
):
    config = BeaconConfig(poll_interval=0.05, debug=True)
    logger = logging.getLogger("beacon-test-injected")
    logger.setLevel(logging.WARNING)
    with Broadcast(free_port, config=config, supervisor=fast_supervisor, logger=logger):
        assert logger.level == logging.WARNING


def test_debug_config_raises_own_logger_level(free_port, fast_supervisor, loopback_only):
    config = BeaconConfig(poll_interval=0.05, debug=True)
    own = logging.getLogger("beacon.broadcast")
    previous = own.level
    try:
        with Broadcast(free_port, config=config, supervisor=fast_supervisor):
            assert own.level == logging.DEBUG
    finally:
        own.setLevel(previous)
