"""Thread-safe holder for the last error seen by a service."""
from __future__ import annotations

import threading
from typing import Optional


class ErrorState:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._error: Optional[Exception] = None

    def set_error(self, error: Optional[Exception]) -> None:
        with self._lock:
            self._error = error

    def clear(self) -> None:
        self.set_error(None)

    def error(self) -> Optional[Exception]:
        with self._lock:
            return self._error
