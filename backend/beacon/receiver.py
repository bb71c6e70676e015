"""UDP listener that feeds received broadcasts into a bounded queue."""
from __future__ import annotations

import logging
import queue
import socket
import threading
from typing import Optional

from .config import BeaconConfig, beacon_config
from .errorstate import ErrorState
from .schemas import ReceivedMessage, SourceAddress


class BroadcastReceiver:
    """Listens on ``port`` on all IPv4 interfaces.

    A read error ends ``serve``; restarting is the supervisor's job.
    """

    def __init__(
        self,
        port: int,
        outbox: "queue.Queue[ReceivedMessage]",
        config: BeaconConfig = beacon_config,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.port = port
        self._outbox = outbox
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._sock: Optional[socket.socket] = None
        self._stopping = threading.Event()
        self._errors = ErrorState()

    def error(self) -> Optional[Exception]:
        return self._errors.error()

    def serve(self) -> None:
        self._log.debug("%r starting", self)
        try:
            try:
                self._sock = self._open_socket()
            except OSError as exc:
                self._log.debug("%r: %s", self, exc)
                self._errors.set_error(exc)
                return
            if self._stopping.is_set():
                self._sock.close()
                return
            with self._sock:
                self._read_loop(self._sock)
        finally:
            self._log.debug("%r stopping", self)

    def stop(self) -> None:
        self._stopping.set()
        if self._sock is not None:
            self._sock.close()

    def _open_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("", self.port))
            sock.settimeout(self._config.poll_interval)
        except OSError:
            sock.close()
            raise
        return sock

    def _read_loop(self, sock: socket.socket) -> None:
        while True:
            try:
                data, addr = sock.recvfrom(self._config.max_datagram)
            except socket.timeout:
                # Poll tick so a descriptor closed by stop() is noticed.
                continue
            except OSError as exc:
                self._log.debug("%r: %s", self, exc)
                self._errors.set_error(exc)
                return

            self._errors.clear()
            self._log.debug("recv %d bytes from %s:%s", len(data), addr[0], addr[1])

            message = ReceivedMessage(
                data=bytes(data),
                source=SourceAddress(host=addr[0], port=addr[1]),
            )
            try:
                self._outbox.put_nowait(message)
            except queue.Full:
                self._log.debug("dropping message")

    def __repr__(self) -> str:
        return f"broadcastReader@{id(self):#x}"
