"""Tests for the per-user sliding-window rate limiter."""

from datetime import timedelta

import pytest

from conftest import FakeClock
from tillsight.ratelimit import RateLimiter


class TestRateLimiter:
    """Five generations per user per sixty seconds."""

    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(max_per_window=5, window=timedelta(seconds=60), clock=self.clock)

    def test_sixth_attempt_denied(self):
        """6 attempts within 10 seconds: the 6th is denied."""
        for _ in range(5):
            assert self.limiter.check_and_reserve("u1").allowed
            self.clock.advance(2)

        decision = self.limiter.check_and_reserve("u1")

        assert decision.allowed is False
        assert decision.retry_after_ms > 0

    def test_retry_after_counts_from_oldest_entry(self):
        for _ in range(5):
            self.limiter.check_and_reserve("u1")
            self.clock.advance(2)

        # oldest at t=0, now t=10
        decision = self.limiter.check_and_reserve("u1")

        assert decision.retry_after_ms == 50_000

    def test_allowed_after_window_elapses(self):
        for _ in range(5):
            self.limiter.check_and_reserve("u1")
            self.clock.advance(2)
        assert not self.limiter.check_and_reserve("u1").allowed

        self.clock.advance(60)

        assert self.limiter.check_and_reserve("u1").allowed

    def test_denials_do_not_consume_slots(self):
        """Repeated denials never keep the window from draining."""
        for _ in range(5):
            self.limiter.check_and_reserve("u1")
        for _ in range(10):
            self.clock.advance(1)
            assert not self.limiter.check_and_reserve("u1").allowed

        # All five reservations were made at t=0
        self.clock.advance(50)

        assert self.limiter.check_and_reserve("u1").allowed
        assert self.limiter.remaining("u1") == 4

    def test_oldest_slot_frees_first(self):
        self.limiter.check_and_reserve("u1")
        self.clock.advance(30)
        for _ in range(4):
            self.limiter.check_and_reserve("u1")
        assert not self.limiter.check_and_reserve("u1").allowed

        self.clock.advance(30)

        assert self.limiter.check_and_reserve("u1").allowed
        assert not self.limiter.check_and_reserve("u1").allowed

    def test_users_are_isolated(self):
        for _ in range(5):
            self.limiter.check_and_reserve("u1")

        assert self.limiter.check_and_reserve("u2").allowed
        assert not self.limiter.check_and_reserve("u1").allowed

    def test_remaining_does_not_reserve(self):
        assert self.limiter.remaining("u1") == 5
        assert self.limiter.remaining("u1") == 5

        self.limiter.check_and_reserve("u1")

        assert self.limiter.remaining("u1") == 4

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            RateLimiter(max_per_window=0)
