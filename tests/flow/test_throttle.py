"""Tests for the leading-edge throttle."""

import threading

import pytest

from cadence.core.clock import ManualClock
from cadence.core.errors import InvalidConfigError
from cadence.flow.throttle import LeadingEdgeLimiter, throttle


class TestLeadingEdgeLimiter:
    """Tests for LeadingEdgeLimiter."""

    def test_negative_delay_rejected(self):
        with pytest.raises(InvalidConfigError):
            LeadingEdgeLimiter(delay=-1)

    def test_first_acquire_always_allowed(self, manual_clock):
        limiter = LeadingEdgeLimiter(delay=10.0, clock=manual_clock)
        assert limiter.try_acquire() is True
        assert limiter.last_fire == manual_clock.now()

    def test_within_window_dropped(self, manual_clock):
        limiter = LeadingEdgeLimiter(delay=1.0, clock=manual_clock)
        limiter.try_acquire()
        manual_clock.advance(0.5)
        assert limiter.try_acquire() is False
        assert limiter.dropped == 1

    def test_window_boundary_is_inclusive(self, manual_clock):
        limiter = LeadingEdgeLimiter(delay=1.0, clock=manual_clock)
        limiter.try_acquire()
        manual_clock.advance(1.0)
        assert limiter.try_acquire() is True

    def test_dropped_call_does_not_extend_window(self, manual_clock):
        limiter = LeadingEdgeLimiter(delay=1.0, clock=manual_clock)
        limiter.try_acquire()
        manual_clock.advance(0.9)
        limiter.try_acquire()
        manual_clock.advance(0.1)
        assert limiter.try_acquire() is True

    def test_wait_time(self, manual_clock):
        limiter = LeadingEdgeLimiter(delay=1.0, clock=manual_clock)
        assert limiter.get_wait_time() == 0.0
        limiter.try_acquire()
        manual_clock.advance(0.25)
        assert limiter.get_wait_time() == pytest.approx(0.75)
        manual_clock.advance(5)
        assert limiter.get_wait_time() == 0.0

    def test_zero_delay_allows_everything(self, manual_clock):
        limiter = LeadingEdgeLimiter(delay=0, clock=manual_clock)
        assert all(limiter.try_acquire() for _ in range(5))


class TestThrottle:
    """Tests for throttle()."""

    def test_first_call_runs_and_rest_dropped(self, manual_clock):
        calls = []

        def record(value):
            calls.append(value)
            return value * 2

        wrapped = throttle(record, 0.1, clock=manual_clock)
        assert wrapped(1) == 2
        assert wrapped(2) is None
        assert wrapped(3) is None
        assert calls == [1]

        manual_clock.advance(0.1)
        assert wrapped(4) == 8
        assert calls == [1, 4]
        assert wrapped.limiter.executed == 2
        assert wrapped.limiter.dropped == 2

    def test_failing_call_still_occupies_window(self, manual_clock):
        attempts = []

        def flaky():
            attempts.append(1)
            raise ConnectionError("down")

        wrapped = throttle(flaky, 1.0, clock=manual_clock)
        with pytest.raises(ConnectionError):
            wrapped()
        assert wrapped() is None
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_async_wrapper(self, manual_clock):
        async def fetch(x):
            return x + 1

        wrapped = throttle(fetch, 1.0, clock=manual_clock)
        assert await wrapped(1) == 2
        assert await wrapped(2) is None
        manual_clock.advance(1.0)
        assert await wrapped(3) == 4

    def test_wrappers_do_not_share_state(self):
        clock = ManualClock()
        a = throttle(lambda: "a", 1.0, clock=clock)
        b = throttle(lambda: "b", 1.0, clock=clock)
        assert a() == "a"
        assert b() == "b"

    def test_threads_admit_exactly_one(self, manual_clock):
        calls = []
        wrapped = throttle(lambda: calls.append(1), 60.0, clock=manual_clock)

        threads = [threading.Thread(target=wrapped) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert wrapped.limiter.dropped == 19

    def test_real_clock_default(self):
        wrapped = throttle(lambda: "ok", 60.0)
        assert wrapped() == "ok"
        assert wrapped() is None
