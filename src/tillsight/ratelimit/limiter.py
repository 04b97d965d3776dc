"""Per-user sliding-window limiter for external generation attempts."""

import logging
import math
import threading
from datetime import UTC, datetime, timedelta
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class RateLimitDecision(BaseModel):
    """Outcome of a reservation attempt."""

    allowed: bool = Field(description="Whether a new generation may start")
    retry_after_ms: int = Field(default=0, ge=0, description="Wait before the next slot frees up")


class RateLimiter:
    """
    Sliding-window counter keyed by user.

    Only started generation attempts are recorded: a denial never adds a
    timestamp, so repeated denials cannot keep the window from draining.
    A started attempt that later fails keeps its slot.
    """

    def __init__(
        self,
        max_per_window: int = 5,
        window: timedelta = timedelta(seconds=60),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the limiter.

        Args:
            max_per_window: Attempts allowed per user inside one window
            window: Length of the trailing window
            clock: Time source (defaults to UTC now)
        """
        if max_per_window < 1:
            raise ValueError("max_per_window must be at least 1")
        self.max_per_window = max_per_window
        self.window = window
        self._clock = clock or (lambda: datetime.now(UTC))
        self._windows: Dict[str, List[datetime]] = {}
        self._lock = threading.Lock()

    def check_and_reserve(self, user_id: str) -> RateLimitDecision:
        """Reserve a generation slot for ``user_id`` if one is free."""
        with self._lock:
            now = self._clock()
            fresh = self._prune(user_id, now)

            if len(fresh) >= self.max_per_window:
                remaining = self.window - (now - fresh[0])
                retry_after_ms = max(1, math.ceil(remaining.total_seconds() * 1000))
                logger.warning(
                    f"Rate limit reached for {user_id}: {len(fresh)}/{self.max_per_window} "
                    f"(retry in {retry_after_ms}ms)"
                )
                return RateLimitDecision(allowed=False, retry_after_ms=retry_after_ms)

            fresh.append(now)
            self._windows[user_id] = fresh[-self.max_per_window:]
            return RateLimitDecision(allowed=True)

    def remaining(self, user_id: str) -> int:
        """Slots still free for ``user_id`` (does not reserve)."""
        with self._lock:
            return self.max_per_window - len(self._prune(user_id, self._clock()))

    def _prune(self, user_id: str, now: datetime) -> List[datetime]:
        """Drop timestamps older than the window. Caller holds the lock."""
        fresh = [ts for ts in self._windows.get(user_id, []) if now - ts < self.window]
        if fresh:
            self._windows[user_id] = fresh
        else:
            self._windows.pop(user_id, None)
        return fresh
