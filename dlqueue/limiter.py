"""Token-based bandwidth limiting shared by the downloads of one queue."""

from __future__ import annotations

import threading
import time

TOKEN_BYTES = 1024


class BandwidthLimiter:
    """Hands out one token per ``TOKEN_BYTES`` of the allowed byte rate.

    A rate of zero means no limit. Once ``stop`` is set, waiting callers
    are released at once.
    """

    def __init__(self, rate: int, stop: threading.Event) -> None:
        if rate < 0:
            raise ValueError("rate must not be negative")
        self.rate = rate
        self._stop = stop
        self._lock = threading.Lock()
        self._interval = TOKEN_BYTES / rate if rate else 0.0
        self._next = time.monotonic() + self._interval

    def wait_for_token(self) -> None:
        """Block until the next token is due or the limiter is stopped."""
        if self.rate == 0:
            return
        with self._lock:
            now = time.monotonic()
            due = self._next if self._next > now else now
            self._next = due + self._interval
        delay = due - time.monotonic()
        if delay > 0:
            self._stop.wait(delay)