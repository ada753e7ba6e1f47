"""
Tests for the upstream call budget.

INVARIANTS:
- callsThisMinute never exceeds the minute limit within one window
- callsToday never exceeds the daily limit within one day
- Denied attempts are not counted
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from pokevault.config import settings
from pokevault.services.rate_limiter import (
    ApiRateLimiter,
    get_artwork_limiter,
    get_pricing_limiter,
    reset_rate_limiters,
)


class TestMinuteWindow:
    def test_fresh_limiter_can_proceed(self, clock) -> None:
        """A new limiter has its whole budget."""
        limiter = ApiRateLimiter(clock=clock)

        assert limiter.can_proceed()
        assert limiter.calls_today == 0
        assert limiter.calls_this_minute == 0

    def test_minute_limit_is_a_hard_bound(self, clock) -> None:
        """No more than minute_limit calls are admitted within one window."""
        limiter = ApiRateLimiter(daily_limit=200, minute_limit=60, clock=clock)

        admitted = sum(1 for _ in range(100) if limiter.try_acquire())

        assert admitted == 60
        assert limiter.calls_this_minute == 60
        assert not limiter.can_proceed()

    def test_window_resets_lazily_after_deadline(self, clock) -> None:
        """The first check after the deadline resets the minute count."""
        limiter = ApiRateLimiter(daily_limit=200, minute_limit=2, clock=clock)
        limiter.try_acquire()
        limiter.try_acquire()
        assert not limiter.can_proceed()

        clock.advance(seconds=61)

        assert limiter.can_proceed()
        assert limiter.calls_this_minute == 0
        assert limiter.minute_window_reset_at == clock.now + timedelta(seconds=60)

    def test_window_not_reset_at_exact_deadline(self, clock) -> None:
        """The window only rolls once the deadline has passed."""
        limiter = ApiRateLimiter(daily_limit=200, minute_limit=1, clock=clock)
        limiter.try_acquire()

        clock.advance(seconds=60)

        assert not limiter.can_proceed()

    def test_daily_count_survives_minute_reset(self, clock) -> None:
        """Minute rollover leaves the daily count alone."""
        limiter = ApiRateLimiter(daily_limit=200, minute_limit=5, clock=clock)
        for _ in range(5):
            limiter.try_acquire()

        clock.advance(seconds=61)

        assert limiter.calls_this_minute == 0
        assert limiter.calls_today == 5


class TestDailyBudget:
    def test_daily_limit_is_a_hard_bound(self, clock) -> None:
        """Across many minute windows, no more than daily_limit calls pass."""
        limiter = ApiRateLimiter(daily_limit=200, minute_limit=60, clock=clock)

        admitted = 0
        for _ in range(10):
            admitted += sum(1 for _ in range(60) if limiter.try_acquire())
            clock.advance(seconds=61)

        assert admitted == 200
        assert limiter.calls_today == 200
        assert not limiter.can_proceed()

    def test_daily_counter_rolls_over_at_utc_midnight(self, clock) -> None:
        """A new UTC date starts a new daily budget."""
        limiter = ApiRateLimiter(daily_limit=3, minute_limit=10, clock=clock)
        for _ in range(3):
            limiter.try_acquire()
        assert not limiter.can_proceed()

        clock.advance(hours=13)

        assert limiter.can_proceed()
        assert limiter.calls_today == 0

    def test_same_day_does_not_roll_over(self, clock) -> None:
        """Hours passing within one day keep the daily count."""
        limiter = ApiRateLimiter(daily_limit=3, minute_limit=10, clock=clock)
        for _ in range(3):
            limiter.try_acquire()

        clock.advance(hours=11)

        assert not limiter.can_proceed()


class TestRecording:
    def test_record_call_increments_both_counters(self, clock) -> None:
        """record_call counts against both budgets."""
        limiter = ApiRateLimiter(clock=clock)

        limiter.record_call()
        limiter.record_call()

        assert limiter.calls_today == 2
        assert limiter.calls_this_minute == 2

    def test_record_call_is_unconditional(self, clock) -> None:
        """record_call does not check the budget; callers check first."""
        limiter = ApiRateLimiter(daily_limit=1, minute_limit=1, clock=clock)

        limiter.record_call()
        limiter.record_call()

        assert limiter.calls_today == 2

    def test_denied_acquire_counts_nothing(self, clock) -> None:
        """A refused try_acquire leaves the counters unchanged."""
        limiter = ApiRateLimiter(daily_limit=10, minute_limit=1, clock=clock)
        assert limiter.try_acquire()

        assert not limiter.try_acquire()

        assert limiter.calls_today == 1
        assert limiter.calls_this_minute == 1

    def test_concurrent_acquires_respect_limit(self, clock) -> None:
        """Threads racing on one limiter never exceed the minute limit."""
        limiter = ApiRateLimiter(daily_limit=1000, minute_limit=100, clock=clock)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: limiter.try_acquire(), range(400)))

        assert sum(results) == 100
        assert limiter.calls_this_minute == 100


class TestDiagnostics:
    def test_diagnostics_report_usage_and_limits(self, clock) -> None:
        """Diagnostics expose counters, limits and the next reset."""
        limiter = ApiRateLimiter(daily_limit=200, minute_limit=60, clock=clock)
        limiter.try_acquire()

        diagnostics = limiter.get_diagnostics()

        assert diagnostics["api_calls_today"] == 1
        assert diagnostics["daily_limit"] == 200
        assert diagnostics["api_calls_this_minute"] == 1
        assert diagnostics["minute_limit"] == 60
        assert diagnostics["date"] == "2026-03-14"
        assert diagnostics["next_minute_reset"] == (clock.now + timedelta(seconds=60)).isoformat()


class TestGlobalLimiters:
    def test_pricing_limiter_is_shared(self) -> None:
        """The pricing limiter is one instance per process."""
        assert get_pricing_limiter() is get_pricing_limiter()

    def test_pricing_limiter_uses_settings(self) -> None:
        limiter = get_pricing_limiter()

        assert limiter.daily_limit == settings.daily_api_limit
        assert limiter.minute_limit == settings.minute_api_limit

    def test_artwork_budget_is_separate(self) -> None:
        """Artwork lookups do not spend the pricing budget."""
        get_artwork_limiter().try_acquire()

        assert get_pricing_limiter().calls_today == 0

    def test_reset_creates_new_instances(self) -> None:
        limiter = get_pricing_limiter()
        limiter.try_acquire()

        reset_rate_limiters()

        assert get_pricing_limiter() is not limiter
        assert get_pricing_limiter().calls_today == 0
