"""
BigPost Rate Limiter - sliding window for outbound carrier calls

BigPost allows 100 requests per rolling minute per API key. Requests over
the window are refused locally (no network call) so a burst of checkouts
cannot get the key throttled.

One limiter instance is shared by every BigPostClient using the same key;
pass it explicitly to each client. The check-and-record step holds a lock
so the window stays consistent when clients run on several threads.
"""
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class SlidingWindowConfig:
    """Configuration for the carrier request window."""
    max_requests: int = 100
    window_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings) -> "SlidingWindowConfig":
        return cls(
            max_requests=settings.BIGPOST_RATE_LIMIT_MAX_REQUESTS,
            window_seconds=settings.BIGPOST_RATE_LIMIT_WINDOW_SECONDS,
        )


class SlidingWindowRateLimiter:
    """
    Counts requests in the trailing `window_seconds`.

    `try_acquire()` records the request and returns True when there is room,
    otherwise returns False and records nothing.
    """

    def __init__(
        self,
        config: Optional[SlidingWindowConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or SlidingWindowConfig()
        self._clock = clock
        self._requests: Deque[float] = deque()
        self._lock = threading.Lock()
        self._rejected = 0

    def _evict(self, now: float) -> None:
        cutoff = now - self.config.window_seconds
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()

    def try_acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._requests) >= self.config.max_requests:
                self._rejected += 1
                logger.warning(
                    f"[BigPost] Local rate limit reached: "
                    f"{len(self._requests)}/{self.config.max_requests} "
                    f"in {self.config.window_seconds:.0f}s"
                )
                return False
            self._requests.append(now)
            return True

    def retry_after(self) -> float:
        """Seconds until the oldest request leaves the window (0 if there is room)."""
        with self._lock:
            now = self._clock()
            self._evict(now)
            if len(self._requests) < self.config.max_requests:
                return 0.0
            return max(0.0, self._requests[0] + self.config.window_seconds - now)

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()
            self._rejected = 0

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            self._evict(self._clock())
            return {
                "requests_in_window": len(self._requests),
                "max_requests": self.config.max_requests,
                "window_seconds": self.config.window_seconds,
                "rejected_total": self._rejected,
            }
