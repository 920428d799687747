"""Fixed-capacity admission pool gating concurrent connections."""

from __future__ import annotations

import logging
import threading

from config import MAX_CONNECTIONS_BOUND, MIN_CONNECTIONS_BOUND

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when the concurrency bound is outside the accepted range."""


class AdmissionToken:
    """One acquired slot. Released exactly once, also usable as a context manager."""

    __slots__ = ("_controller", "_released", "_lock")

    def __init__(self, controller: AdmissionController) -> None:
        self._controller = controller
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        self._controller.release(self)

    def __enter__(self) -> AdmissionToken:
        return self

    def __exit__(self, *_exc_info: object) -> None:
        if not self._released:
            self.release()

    def _mark_released(self) -> bool:
        with self._lock:
            if self._released:
                return False
            self._released = True
            return True


class AdmissionController:
    """Counting permit pool with capacity fixed at construction.

    ``acquire`` blocks until a slot is free. Waiters are served in no
    particular order. The pool has no notion of client identity; it limits the
    total number of in-flight connections for one server instance.
    """

    def __init__(self, capacity: int) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int):
            raise ConfigurationError(f"capacity must be an integer, got {capacity!r}")
        if not MIN_CONNECTIONS_BOUND <= capacity <= MAX_CONNECTIONS_BOUND:
            raise ConfigurationError(
                "invalid maximum number of connections "
                f"({MIN_CONNECTIONS_BOUND}-{MAX_CONNECTIONS_BOUND}), got {capacity}"
            )

        self._capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._count_lock = threading.Lock()
        self._outstanding = 0
        self._peak_outstanding = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def outstanding(self) -> int:
        with self._count_lock:
            return self._outstanding

    @property
    def peak_outstanding(self) -> int:
        with self._count_lock:
            return self._peak_outstanding

    def acquire(self, timeout: float | None = None) -> AdmissionToken | None:
        """Block until a slot is free; return None only if ``timeout`` elapses."""
        if not self._semaphore.acquire(timeout=timeout):
            return None

        with self._count_lock:
            self._outstanding += 1
            self._peak_outstanding = max(self._peak_outstanding, self._outstanding)
            outstanding = self._outstanding
        logger.debug("admission acquired outstanding=%s capacity=%s", outstanding, self._capacity)
        return AdmissionToken(self)

    def release(self, token: AdmissionToken) -> None:
        if token._controller is not self:
            raise ValueError("token was issued by a different controller")
        if not token._mark_released():
            raise RuntimeError("admission token released twice")

        with self._count_lock:
            self._outstanding -= 1
            outstanding = self._outstanding
        self._semaphore.release()
        logger.debug("admission released outstanding=%s capacity=%s", outstanding, self._capacity)
