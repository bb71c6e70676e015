"""Unbuffered handoff between producers and a single consumer."""
from __future__ import annotations

import threading
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class Rendezvous(Generic[T]):
    """``put`` returns only once a consumer has taken the item.

    Waiting producers are served one at a time, in no guaranteed order.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._item: Optional[T] = None
        self._full = False
        self._offered = 0
        self._taken = 0

    def put(self, item: T) -> None:
        with self._cond:
            while self._full:
                self._cond.wait()
            self._item = item
            self._full = True
            self._offered += 1
            ticket = self._offered
            self._cond.notify_all()
            while self._taken < ticket:
                self._cond.wait()

    def get(self, timeout: Optional[float] = None) -> Optional[T]:
        """Take the offered item, or return ``None`` after ``timeout``."""
        with self._cond:
            if not self._cond.wait_for(lambda: self._full, timeout):
                return None
            item = self._item
            self._item = None
            self._full = False
            self._taken += 1
            self._cond.notify_all()
            return item
