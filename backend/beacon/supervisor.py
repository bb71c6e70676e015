"""Restart-with-backoff supervision for long-running socket services.

Each registered service runs ``serve()`` in its own thread. Whenever
``serve()`` returns or raises without a stop having been requested, the
service counts as failed and is restarted. Failures decay over time; once
they pile up past the threshold the supervisor waits out a backoff before
the next attempt, doubling it on every consecutive overflow.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable, List, Optional, Protocol

from .config import SupervisorConfig, supervisor_config


class Service(Protocol):
    def serve(self) -> None:
        ...

    def stop(self) -> None:
        ...


class RestartPolicy:
    """Tracks decaying failures and decides how long to wait before a restart."""

    def __init__(
        self,
        threshold: float,
        backoff: float,
        decay: float,
        max_backoff: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.backoff = backoff
        self.decay = decay
        self.max_backoff = max_backoff
        self._clock = clock
        self._failures = 0.0
        self._last_failure: Optional[float] = None
        self._restarted_at: Optional[float] = None
        self._overflows = 0

    @property
    def failures(self) -> float:
        return self._failures

    def report_failure(self) -> float:
        """Record one failure and return the delay before restarting."""
        now = self._clock()
        if self._last_failure is not None and self.decay > 0:
            elapsed = now - self._last_failure
            self._failures *= math.pow(0.5, elapsed / self.decay)
        # A run that outlived the decay period ends the backoff escalation.
        if self._restarted_at is not None and now - self._restarted_at >= self.decay:
            self._overflows = 0
        self._last_failure = now
        self._failures += 1

        delay = 0.0
        if self._failures > self.threshold:
            delay = min(self.backoff * (2 ** self._overflows), self.max_backoff)
            self._overflows += 1
        self._restarted_at = now + delay
        return delay


class Supervisor:
    def __init__(
        self,
        name: str,
        config: SupervisorConfig = supervisor_config,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self._config = config
        self._log = logger or logging.getLogger(__name__)
        self._services: List[Service] = []
        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._started = False

    def add(self, service: Service) -> None:
        with self._lock:
            self._services.append(service)
            if self._started:
                self._spawn(service)

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._started = True
            for service in self._services:
                self._spawn(service)

    def stop(self) -> None:
        self._stop_event.set()
        with self._lock:
            services = list(self._services)
            threads = list(self._threads)
        for service in services:
            service.stop()
        deadline = time.monotonic() + self._config.stop_timeout
        for thread in threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                self._log.warning("%s: %s did not stop in time", self.name, thread.name)

    def is_running(self) -> bool:
        with self._lock:
            threads = list(self._threads)
        return any(t.is_alive() for t in threads)

    def _policy(self) -> RestartPolicy:
        return RestartPolicy(
            threshold=self._config.failure_threshold,
            backoff=self._config.failure_backoff,
            decay=self._config.failure_decay,
            max_backoff=self._config.max_backoff,
        )

    def _spawn(self, service: Service) -> None:
        thread = threading.Thread(
            target=self._run,
            args=(service,),
            name=f"{self.name}/{service!r}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _run(self, service: Service) -> None:
        policy = self._policy()
        while not self._stop_event.is_set():
            try:
                service.serve()
            except Exception:  # noqa: BLE001 - a crashing service must not kill supervision
                self._log.exception("%s: service %r panicked", self.name, service)
            if self._stop_event.is_set():
                return

            delay = policy.report_failure()
            if delay > 0:
                self._log.warning(
                    "%s: service %r failing repeatedly, backing off for %.0fs",
                    self.name,
                    service,
                    delay,
                )
                if self._stop_event.wait(delay):
                    return
            self._log.debug("%s: restarting %r", self.name, service)
