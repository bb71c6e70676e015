"""IPv4 broadcast beacon: blocking send/recv over supervised UDP sockets."""
from __future__ import annotations

import logging
import queue
from typing import Optional, Protocol, Tuple

from .channel import Rendezvous
from .config import BeaconConfig, SupervisorConfig, beacon_config, supervisor_config
from .receiver import BroadcastReceiver
from .schemas import ReceivedMessage, SourceAddress
from .sender import BroadcastSender
from .supervisor import Supervisor


class Beacon(Protocol):
    def send(self, data: bytes) -> None:
        ...

    def recv(self) -> Tuple[bytes, SourceAddress]:
        ...

    def error(self) -> Optional[Exception]:
        ...

    def stop(self) -> None:
        ...


class Broadcast:
    """Announce and discover peers on every local IPv4 broadcast domain.

    Supervision starts on construction. ``send`` blocks until the sender
    thread takes the payload and ``recv`` blocks until a datagram arrives;
    neither ever raises. Failures are only visible through ``error()``.
    """

    def __init__(
        self,
        port: int,
        *,
        config: Optional[BeaconConfig] = None,
        supervisor: Optional[SupervisorConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not 0 <= port <= 65535:
            raise ValueError(f"invalid port {port}")

        self.port = port
        self._config = config or beacon_config
        self._log = logger or logging.getLogger(__name__)
        if logger is None and self._config.debug:
            self._log.setLevel(logging.DEBUG)

        self._inbox: Rendezvous[bytes] = Rendezvous()
        self._outbox: "queue.Queue[ReceivedMessage]" = queue.Queue(
            maxsize=self._config.recv_queue_size
        )

        self.reader = BroadcastReceiver(port, self._outbox, self._config, self._log)
        self.writer = BroadcastSender(port, self._inbox, self._config, self._log)

        self._supervisor = Supervisor(
            "broadcastBeacon", supervisor or supervisor_config, self._log
        )
        self._supervisor.add(self.reader)
        self._supervisor.add(self.writer)
        self._supervisor.start()

    @classmethod
    def from_config(cls, logger: Optional[logging.Logger] = None) -> "Broadcast":
        return cls(beacon_config.port, logger=logger)

    def send(self, data: bytes) -> None:
        self._inbox.put(data)

    def recv(self) -> Tuple[bytes, SourceAddress]:
        message = self._outbox.get()
        return message.data, message.source

    def error(self) -> Optional[Exception]:
        err = self.reader.error()
        if err is not None:
            return err
        return self.writer.error()

    def stop(self) -> None:
        self._supervisor.stop()

    def __enter__(self) -> "Broadcast":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
