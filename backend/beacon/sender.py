"""UDP sender that broadcasts each payload on every local IPv4 subnet."""
from __future__ import annotations

import errno
import logging
import socket
import threading
from typing import List, Optional

import psutil

from .addresses import BROADCAST_FALLBACK, interface_broadcasts
from .channel import Rendezvous
from .config import BeaconConfig, beacon_config
from .errorstate import ErrorState

TEMPORARY_ERRNOS = frozenset(
    {
        errno.EINTR,
        errno.EMFILE,
        errno.ENFILE,
        errno.ECONNRESET,
        errno.ECONNABORTED,
        errno.EAGAIN,
        errno.EWOULDBLOCK,
    }
)


def is_temporary(exc: OSError) -> bool:
    return exc.errno in TEMPORARY_ERRNOS


class BroadcastSender:
    """Sends from an OS-chosen port to ``port`` on each broadcast address."""

    def __init__(
        self,
        port: int,
        inbox: Rendezvous[bytes],
        config: BeaconConfig = beacon_config,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.port = port
        self._inbox = inbox
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
            with self._sock:
                self._send_loop(self._sock)
        finally:
            self._log.debug("%r stopping", self)

    def stop(self) -> None:
        self._stopping.set()
        if self._sock is not None:
            self._sock.close()

    def destinations(self) -> List[str]:
        return interface_broadcasts()

    def _open_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError:
            sock.close()
            raise
        return sock

    def _send_loop(self, sock: socket.socket) -> None:
        while not self._stopping.is_set():
            data = self._inbox.get(timeout=self._config.poll_interval)
            if data is None:
                continue
            if not self._send_round(sock, data):
                return

    def _send_round(self, sock: socket.socket, data: bytes) -> bool:
        """Attempt every destination once. Returns False on a fatal error."""
        try:
            dsts = self.destinations()
        except (OSError, psutil.Error) as exc:
            self._log.debug("%r: %s", self, exc)
            self._errors.set_error(exc)
            return True

        if not dsts:
            dsts = [BROADCAST_FALLBACK]
        self._log.debug("addresses: %s", dsts)

        success = 0
        for ip in dsts:
            dst = (ip, self.port)
            try:
                sock.settimeout(self._config.write_timeout)
                try:
                    sock.sendto(data, dst)
                finally:
                    sock.settimeout(None)
            except socket.timeout as exc:
                # A write should never time out; treat it as a dead socket.
                self._log.debug("%r: %s", self, exc)
                self._errors.set_error(exc)
                return False
            except OSError as exc:
                if is_temporary(exc):
                    self._log.debug("%r: %s", self, exc)
                    continue
                self._log.debug("%r: %s", self, exc)
                self._errors.set_error(exc)
                return False

            self._log.debug("sent %d bytes to %s:%d", len(data), ip, self.port)
            success += 1

        if success > 0:
            self._errors.clear()
        return True

    def __repr__(self) -> str:
        return f"broadcastWriter@{id(self):#x}"
