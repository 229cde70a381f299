import threading
import time
from datetime import datetime, timedelta, timezone

from cargo_gateway.errors import RateLimitExceeded
from cargo_gateway.schemas import RateLimiterState


class RateLimiter:
    """
    Fixed-window request counter owned by exactly one adapter.

    The window is reset lazily on the next call once it has expired; there is
    no background timer. check + increment happen under one lock.
    """

    def __init__(self, max_requests: int, window_seconds: float = 60.0, clock=time.monotonic, name: str | None = None):
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._request_count = 0
        self._window_start = clock()

    def _roll_window(self, now: float):
        if now - self._window_start > self.window_seconds:
            self._request_count = 0
            self._window_start = now

    def check_and_increment(self):
        with self._lock:
            now = self._clock()
            self._roll_window(now)
            if self._request_count >= self.max_requests:
                raise RateLimitExceeded(
                    f"Rate limit of {self.max_requests} requests per {self.window_seconds:g}s exceeded. "
                    "Please try again later.",
                    carrier=self.name,
                )
            self._request_count += 1

    @property
    def request_count(self) -> int:
        with self._lock:
            self._roll_window(self._clock())
            return self._request_count

    def snapshot(self) -> RateLimiterState:
        with self._lock:
            now = self._clock()
            self._roll_window(now)
            remaining = max(0.0, self.window_seconds - (now - self._window_start))
            return RateLimiterState(
                request_count=self._request_count,
                max_requests=self.max_requests,
                window_seconds=self.window_seconds,
                window_start=self._window_start,
                reset_at=datetime.now(timezone.utc) + timedelta(seconds=remaining),
            )
