"""Absolute deadline threaded through a request."""
from __future__ import annotations

import time
from typing import Callable, Optional


class Deadline:
    """A point in time after which no new remote call may start."""

    def __init__(self, timeout_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.timeout_seconds = timeout_seconds
        self.expires_at = clock() + timeout_seconds

    @classmethod
    def after(cls, timeout_seconds: Optional[float], **kwargs) -> Optional["Deadline"]:
        return None if timeout_seconds is None else cls(timeout_seconds, **kwargs)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def bound(self, timeout: Optional[float]) -> float:
        """The tighter of ``timeout`` and the time left before expiry."""
        left = self.remaining()
        return left if timeout is None else min(timeout, left)
