"""Tests for retry and retry_with_backoff."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from structlog.testing import capture_logs

from cadence.core.errors import InvalidConfigError
from cadence.flow.retry import ExponentialBackoff, RetryContext, retry, retry_with_backoff


def failing_times(n, result="ok", error=ConnectionError):
    """Build a sync callable that raises ``error`` on its first ``n`` calls."""
    state = {"calls": 0}

    def op(*args, **kwargs):
        state["calls"] += 1
        if state["calls"] <= n:
            raise error(f"failure {state['calls']}")
        return result

    op.state = state
    return op


class TestExponentialBackoff:
    """Tests for ExponentialBackoff policy."""

    def test_default_configuration(self):
        policy = ExponentialBackoff()
        assert policy.max_attempts == 3
        assert policy.base_delay == 1.0

    def test_delay_doubles(self):
        policy = ExponentialBackoff(max_attempts=5, base_delay=0.1)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == pytest.approx([0.1, 0.2, 0.4, 0.8])

    def test_no_cap(self):
        policy = ExponentialBackoff(max_attempts=30, base_delay=1.0)
        assert policy.delay_for(20) == 2.0**19

    def test_should_retry(self):
        policy = ExponentialBackoff(max_attempts=3)
        assert policy.should_retry(1)
        assert policy.should_retry(2)
        assert not policy.should_retry(3)

    def test_total_delay(self):
        policy = ExponentialBackoff(max_attempts=4, base_delay=0.1)
        assert policy.total_delay(2) == pytest.approx(0.3)
        assert policy.total_delay(0) == 0

    def test_invalid_attempts(self):
        with pytest.raises(InvalidConfigError):
            ExponentialBackoff(max_attempts=0)

    def test_invalid_delay(self):
        with pytest.raises(InvalidConfigError):
            ExponentialBackoff(base_delay=-0.5)


class TestRetryContext:
    """Tests for RetryContext."""

    @patch("cadence.flow.retry.time.sleep")
    def test_run_sleeps_between_attempts(self, mock_sleep):
        ctx = RetryContext(ExponentialBackoff(max_attempts=3, base_delay=0.5))
        op = failing_times(2)

        assert ctx.run(op) == "ok"
        assert ctx.attempts == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]

    @patch("cadence.flow.retry.time.sleep")
    def test_run_reraises_last_error(self, mock_sleep):
        ctx = RetryContext(ExponentialBackoff(max_attempts=3, base_delay=0.1))
        op = failing_times(10)

        with pytest.raises(ConnectionError, match="failure 3"):
            ctx.run(op)
        assert ctx.attempts == 3
        assert str(ctx.last_error) == "failure 3"
        assert mock_sleep.call_count == 2

    @pytest.mark.asyncio
    async def test_run_async_accepts_sync_callable(self):
        ctx = RetryContext(ExponentialBackoff(max_attempts=2, base_delay=0))
        assert await ctx.run_async(failing_times(1)) == "ok"


class TestRetry:
    """Tests for retry()."""

    def test_success_first_try(self):
        recorder = MagicMock(return_value="done")

        def op(*args, **kwargs):
            return recorder(*args, **kwargs)

        wrapped = retry(op, 3, 0.01)
        assert wrapped("a", k=1) == "done"
        recorder.assert_called_once_with("a", k=1)

    def test_on_retry_receives_delays(self):
        seen = []
        op = failing_times(2)
        wrapped = retry(op, 4, 0.01, on_retry=lambda a, e, d: seen.append((a, type(e), d)))

        assert wrapped() == "ok"
        assert seen == [(1, ConnectionError, 0.01), (2, ConnectionError, 0.02)]

    def test_exhausted_raises_last_error(self):
        op = failing_times(10, error=ValueError)
        wrapped = retry(op, 3, 0)

        with pytest.raises(ValueError, match="failure 3"):
            wrapped()
        assert op.state["calls"] == 3

    def test_single_attempt_never_retries(self):
        op = failing_times(1)
        wrapped = retry(op, 1, 0)
        with capture_logs() as logs:
            with pytest.raises(ConnectionError):
                wrapped()
        assert op.state["calls"] == 1
        assert logs == []

    def test_fresh_counter_per_call(self):
        op = failing_times(2)
        wrapped = retry(op, 3, 0)
        assert wrapped() == "ok"
        assert wrapped() == "ok"
        assert op.state["calls"] == 4

    def test_defaults_from_settings(self, monkeypatch):
        monkeypatch.setenv("CADENCE_RETRY_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("CADENCE_RETRY_BASE_DELAY", "0")
        wrapped = retry(failing_times(4))
        assert wrapped.policy.max_attempts == 5
        assert wrapped() == "ok"

    def test_default_policy(self):
        wrapped = retry(lambda: None)
        assert wrapped.policy == ExponentialBackoff(max_attempts=3, base_delay=1.0)

    def test_invalid_config(self):
        with pytest.raises(InvalidConfigError):
            retry(lambda: None, 0, 1.0)

    def test_logs_attempts_and_exhaustion(self):
        wrapped = retry(failing_times(10), 2, 0)
        with capture_logs() as logs:
            with pytest.raises(ConnectionError):
                wrapped()
        events = [entry["event"] for entry in logs]
        assert events == ["retry.attempt_failed", "retry.exhausted"]

    @pytest.mark.asyncio
    async def test_async_retry_timing(self):
        attempts = []

        async def flaky():
            attempts.append(asyncio.get_running_loop().time())
            if len(attempts) < 3:
                raise ConnectionError("down")
            return "up"

        wrapped = retry(flaky, 3, 0.02)
        assert await wrapped() == "up"
        gaps = [b - a for a, b in zip(attempts, attempts[1:])]
        assert gaps[0] >= 0.015
        assert gaps[1] >= 0.035

    @pytest.mark.asyncio
    async def test_async_exhausted(self):
        op = AsyncMock(side_effect=TimeoutError("slow"))
        wrapped = retry(op, 2, 0)
        with pytest.raises(TimeoutError, match="slow"):
            await wrapped()
        assert op.await_count == 2


class TestRetryWithBackoff:
    """Tests for retry_with_backoff()."""

    @pytest.mark.asyncio
    async def test_succeeds_after_failures(self):
        op = AsyncMock(side_effect=[ConnectionError("a"), ConnectionError("b"), 42])
        with patch("cadence.flow.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            assert await retry_with_backoff(op, 3, 0.1) == 42
        assert [c.args[0] for c in mock_sleep.await_args_list] == pytest.approx([0.1, 0.2])

    @pytest.mark.asyncio
    async def test_reraises_last_error(self):
        op = AsyncMock(side_effect=[ValueError("first"), KeyError("second")])
        with pytest.raises(KeyError):
            await retry_with_backoff(op, 2, 0)

    @pytest.mark.asyncio
    async def test_sync_operation(self):
        assert await retry_with_backoff(failing_times(1, result=7), 2, 0) == 7

    @pytest.mark.asyncio
    async def test_invalid_config(self):
        with pytest.raises(InvalidConfigError):
            await retry_with_backoff(lambda: 1, 2, -1)


class TestRetryAwaitableFromPlainCallable:
    """Plain callables that return awaitables are retried when the await fails."""

    @pytest.mark.asyncio
    async def test_lambda_around_coroutine_is_retried(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise ConnectionError("down")
            return "up"

        wrapped = retry(lambda: flaky(), 3, 0)
        assert await wrapped() == "up"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_exhausted_reraises_last_awaited_error(self):
        calls = []

        async def always_down():
            calls.append(1)
            raise ConnectionError(f"failure {len(calls)}")

        seen = []
        wrapped = retry(lambda: always_down(), 3, 0.01, on_retry=lambda a, e, d: seen.append((a, d)))
        with pytest.raises(ConnectionError, match="failure 3"):
            await wrapped()
        assert len(calls) == 3
        assert seen == [(1, 0.01), (2, 0.02)]

    @pytest.mark.asyncio
    async def test_async_callable_object(self):
        class Client:
            def __init__(self):
                self.calls = 0

            async def __call__(self, path):
                self.calls += 1
                if self.calls < 2:
                    raise TimeoutError("slow")
                return f"GET {path}"

        client = Client()
        wrapped = retry(client, 2, 0)
        assert await wrapped("/status") == "GET /status"
        assert client.calls == 2
