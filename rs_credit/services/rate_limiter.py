"""
Rate limiting for AI extraction calls.

ExtractionRateLimiter serialises calls to the extraction provider:
- a minimum spacing between consecutive calls;
- a per-minute token bucket, waited on when empty;
- a daily quota, which fails hard once exhausted.

Clock, sleep and "today" are injectable so tests never touch real timers.
"""

import logging
import threading
import time
from datetime import date
from typing import Callable, Dict, Optional

from rs_credit.core.config import settings
from rs_credit.core.exceptions import QuotaExceededError

logger = logging.getLogger(__name__)


class TokenBucket:
    """Classic token bucket refilled continuously at `refill_rate` tokens per second."""

    def __init__(self, capacity: float, refill_rate: float, clock: Callable[[], float] = time.monotonic):
        if capacity <= 0 or refill_rate <= 0:
            raise ValueError("capacity and refill_rate must be positive")
        self.capacity = capacity
        self.refill_rate = refill_rate
        self._clock = clock
        self._tokens = float(capacity)
        self._last_refill = clock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.refill_rate)
        self._last_refill = now

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    def time_until_available(self, tokens: float = 1.0) -> float:
        self._refill()
        missing = tokens - self._tokens
        return 0.0 if missing <= 0 else missing / self.refill_rate

    def try_consume(self, tokens: float = 1.0) -> bool:
        self._refill()
        if self._tokens >= tokens:
            self._tokens -= tokens
            return True
        return False


class ExtractionRateLimiter:
    def __init__(
        self,
        requests_per_minute: int = settings.ai.requests_per_minute,
        requests_per_day: int = settings.ai.requests_per_day,
        min_interval_seconds: float = settings.ai.min_interval_seconds,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        today: Callable[[], date] = date.today,
    ):
        self.requests_per_day = requests_per_day
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._today = today
        self._bucket = TokenBucket(requests_per_minute, requests_per_minute / 60.0, clock)
        self._lock = threading.Lock()
        self._last_call: Optional[float] = None
        self._day = today()
        self._requests_today = 0

    def _roll_day(self) -> None:
        today = self._today()
        if today != self._day:
            self._day = today
            self._requests_today = 0

    @property
    def requests_today(self) -> int:
        self._roll_day()
        return self._requests_today

    @property
    def requests_remaining(self) -> int:
        return max(0, self.requests_per_day - self.requests_today)

    def acquire(self) -> float:
        """
        Block until a call may be made, then count it.

        Returns:
            Seconds spent waiting.

        Raises:
            QuotaExceededError: daily quota exhausted. No waiting happens.
        """
        with self._lock:
            self._roll_day()
            if self._requests_today >= self.requests_per_day:
                logger.warning("Daily AI extraction quota exhausted")
                raise QuotaExceededError("Daily AI extraction quota exhausted.", daily=True)

            waited = 0.0
            while True:
                wait = self._bucket.time_until_available()
                if self._last_call is not None:
                    wait = max(wait, self._last_call + self.min_interval_seconds - self._clock())
                if wait <= 0:
                    break
                logger.info(f"AI rate limit reached, waiting {wait:.2f}s")
                self._sleep(wait)
                waited += wait

            self._bucket.try_consume()
            self._last_call = self._clock()
            self._requests_today += 1
            return waited

    def status(self) -> Dict[str, float]:
        today = self.requests_today
        return {
            "requests_today": today,
            "requests_remaining": self.requests_remaining,
            "requests_per_day": self.requests_per_day,
            "percentage_used": round(today / self.requests_per_day * 100) if self.requests_per_day else 100,
            "minute_tokens_available": int(self._bucket.available),
        }
