"""
API Rate Limiter: shared call budget for an upstream provider.

The pricing provider allows a fixed number of calls per day and per minute
for the whole deployment, not per user. Every outbound call is gated here.

INVARIANTS:
- callsToday never exceeds the daily limit within one UTC day
- callsThisMinute never exceeds the minute limit within one window
- Every ATTEMPT is counted, whatever its outcome
- The minute window rolls lazily: the first check after the deadline
  resets the count and moves the deadline to now + 60s
- The daily counter rolls over when the UTC date changes
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from threading import Lock

from pokevault.config import DAILY_LIMIT, MINUTE_LIMIT, MINUTE_WINDOW_SECONDS, settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ApiRateLimiter:
    """
    Thread-safe daily and per-minute call budget.

    Usage:
        if limiter.try_acquire():
            await client.fetch(...)

    ``can_proceed`` and ``record_call`` are also exposed separately; callers
    that use them must call ``can_proceed`` first.
    """

    # Configuration
    name: str = "pricing"
    daily_limit: int = DAILY_LIMIT
    minute_limit: int = MINUTE_LIMIT
    clock: Callable[[], datetime] = _utcnow

    # State
    _calls_today: int = 0
    _calls_this_minute: int = 0
    _current_date: date = field(init=False)
    _minute_window_reset_at: datetime = field(init=False)
    _lock: Lock = field(default_factory=Lock)

    def __post_init__(self) -> None:
        now = self.clock()
        self._current_date = now.date()
        self._minute_window_reset_at = now + timedelta(seconds=MINUTE_WINDOW_SECONDS)

    def _roll_windows(self) -> None:
        """Reset counters whose window has passed. Caller holds the lock."""
        now = self.clock()

        today = now.date()
        if today != self._current_date:
            self._current_date = today
            self._calls_today = 0
            logger.info(
                "DAILY_COUNTERS_RESET",
                extra={"limiter": self.name, "new_date": today.isoformat()},
            )

        if now > self._minute_window_reset_at:
            self._calls_this_minute = 0
            self._minute_window_reset_at = now + timedelta(seconds=MINUTE_WINDOW_SECONDS)

    def _has_budget(self) -> bool:
        return self._calls_today < self.daily_limit and self._calls_this_minute < self.minute_limit

    def can_proceed(self) -> bool:
        """Check whether another call fits in both budgets."""
        with self._lock:
            self._roll_windows()
            return self._has_budget()

    def record_call(self) -> None:
        """Count one call attempt against both budgets."""
        with self._lock:
            self._roll_windows()
            self._calls_today += 1
            self._calls_this_minute += 1

            logger.debug(
                "API_CALL_RECORDED",
                extra={
                    "limiter": self.name,
                    "calls_today": self._calls_today,
                    "calls_this_minute": self._calls_this_minute,
                },
            )

    def try_acquire(self) -> bool:
        """
        Check and record in one step.

        Returns:
            True if the call was admitted and counted, False if either
            budget is exhausted (nothing is counted).
        """
        with self._lock:
            self._roll_windows()
            if not self._has_budget():
                logger.warning(
                    "RATE_LIMIT_EXCEEDED",
                    extra={
                        "limiter": self.name,
                        "calls_today": self._calls_today,
                        "daily_limit": self.daily_limit,
                        "calls_this_minute": self._calls_this_minute,
                        "minute_limit": self.minute_limit,
                    },
                )
                return False
            self._calls_today += 1
            self._calls_this_minute += 1
            return True

    @property
    def calls_today(self) -> int:
        with self._lock:
            self._roll_windows()
            return self._calls_today

    @property
    def calls_this_minute(self) -> int:
        with self._lock:
            self._roll_windows()
            return self._calls_this_minute

    @property
    def minute_window_reset_at(self) -> datetime:
        with self._lock:
            self._roll_windows()
            return self._minute_window_reset_at

    def get_diagnostics(self) -> dict[str, int | str]:
        """
        Get current usage diagnostics.

        Returns:
            Dict with current usage, limits and the next minute reset.
        """
        with self._lock:
            self._roll_windows()
            return {
                "date": self._current_date.isoformat(),
                "api_calls_today": self._calls_today,
                "daily_limit": self.daily_limit,
                "api_calls_this_minute": self._calls_this_minute,
                "minute_limit": self.minute_limit,
                "next_minute_reset": self._minute_window_reset_at.isoformat(),
            }


# =============================================================================
# GLOBAL LIMITER INSTANCES
# =============================================================================

_pricing_limiter: ApiRateLimiter | None = None
_artwork_limiter: ApiRateLimiter | None = None


def get_pricing_limiter() -> ApiRateLimiter:
    """Get the process-wide pricing API limiter."""
    global _pricing_limiter
    if _pricing_limiter is None:
        _pricing_limiter = ApiRateLimiter(
            name="pricing",
            daily_limit=settings.daily_api_limit,
            minute_limit=settings.minute_api_limit,
        )
    return _pricing_limiter


def get_artwork_limiter() -> ApiRateLimiter:
    """Get the process-wide artwork API limiter."""
    global _artwork_limiter
    if _artwork_limiter is None:
        _artwork_limiter = ApiRateLimiter(
            name="artwork",
            daily_limit=settings.artwork_daily_limit,
            minute_limit=settings.artwork_minute_limit,
        )
    return _artwork_limiter


def reset_rate_limiters() -> None:
    """Reset the global limiters (for testing)."""
    global _pricing_limiter, _artwork_limiter
    _pricing_limiter = None
    _artwork_limiter = None
