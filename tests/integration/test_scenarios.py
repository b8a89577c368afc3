"""
End-to-end scenarios combining the flow wrappers with real time.

These tests sleep on the event loop and are marked slow.
"""

import asyncio

import pytest

from cadence.core.errors import DeadlineExceeded
from cadence.flow import debounce, limit_concurrency, memoize_with, retry, throttle, timeout


pytestmark = pytest.mark.slow


class TestBurstScenario:
    """Debounce, throttle and the concurrency gate under the same burst."""

    @pytest.mark.asyncio
    async def test_debounce_burst(self):
        calls = []
        wrapped = debounce(calls.append, 0.1)

        for value in ("a", "b", "c"):
            wrapped(value)
        await asyncio.sleep(0.15)

        assert calls == ["c"]

    @pytest.mark.asyncio
    async def test_throttle_burst(self):
        calls = []
        wrapped = throttle(calls.append, 0.1)

        for value in ("a", "b", "c"):
            wrapped(value)
        assert calls == ["a"]

        await asyncio.sleep(0.15)
        wrapped("d")
        assert calls == ["a", "d"]

    @pytest.mark.asyncio
    async def test_concurrency_peak(self):
        active = 0
        peak = 0

        async def hold(i):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.1)
            active -= 1
            return i

        limited = limit_concurrency(hold, 2)
        results = await asyncio.gather(*(limited(i) for i in range(4)))

        assert results == [0, 1, 2, 3]
        assert peak == 2


class TestDeadlineScenario:
    @pytest.mark.asyncio
    async def test_half_and_double_deadline(self):
        async def settle_after(seconds):
            await asyncio.sleep(seconds)
            return seconds

        assert await timeout(settle_after(0.05), 0.1) == 0.05
        with pytest.raises(DeadlineExceeded):
            await timeout(settle_after(0.2), 0.1)


class TestRetryScenario:
    @pytest.mark.asyncio
    async def test_total_wait_matches_backoff(self):
        loop = asyncio.get_running_loop()
        failures = 3
        stamps = []

        async def flaky():
            stamps.append(loop.time())
            if len(stamps) <= failures:
                raise ConnectionError("unavailable")
            return "ok"

        wrapped = retry(flaky, 4, 0.02)
        assert await wrapped() == "ok"
        # 0.02 + 0.04 + 0.08
        assert stamps[-1] - stamps[0] >= 0.13


class TestComposition:
    @pytest.mark.asyncio
    async def test_retry_inside_gate_with_cache(self):
        calls = []

        async def lookup(symbol):
            calls.append(symbol)
            if calls.count(symbol) == 1:
                raise ConnectionError("cold start")
            await asyncio.sleep(0.01)
            return symbol.lower()

        fetch = limit_concurrency(
            memoize_with(retry(lookup, 2, 0.01), lambda symbol: symbol), 2
        )

        results = await asyncio.gather(*(fetch(s) for s in ("AAPL", "MSFT", "AAPL")))
        assert results == ["aapl", "msft", "aapl"]
        assert fetch.gate.active == 0
