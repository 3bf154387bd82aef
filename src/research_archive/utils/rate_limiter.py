"""
Process-wide minimum-interval rate limiting.
"""

import time
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MinIntervalRateLimiter:
    """Serializes callers so that consecutive requests are spaced apart.

    All callers share one "last request" timestamp. The lock is held while
    waiting, so concurrent callers are released one at a time, each at
    least ``min_interval`` seconds after the previous one.
    """

    def __init__(
        self,
        min_interval: float,
        name: str = "",
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")
        self.min_interval = min_interval
        self.name = name
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._lock = threading.Lock()
        self._last_request_time: Optional[float] = None

    @property
    def last_request_time(self) -> Optional[float]:
        return self._last_request_time

    def wait(self) -> float:
        """Block until a request may be issued and claim the slot.

        Returns:
            Seconds spent waiting
        """
        with self._lock:
            waited = 0.0
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug(f"Rate limiting {self.name or 'requests'}: sleeping {waited:.2f}s")
                    self._sleep(waited)

            self._last_request_time = self._clock()
            return waited

    def reset(self) -> None:
        with self._lock:
            self._last_request_time = None


_arxiv_limiter: Optional[MinIntervalRateLimiter] = None
_arxiv_limiter_lock = threading.Lock()


def get_arxiv_rate_limiter(min_interval: float = 3.0) -> MinIntervalRateLimiter:
    """Shared limiter for every arXiv request in the process.

    The interval of the first call wins; later calls get the same instance.
    """
    global _arxiv_limiter
    with _arxiv_limiter_lock:
        if _arxiv_limiter is None:
            _arxiv_limiter = MinIntervalRateLimiter(min_interval, name="arxiv")
        return _arxiv_limiter
