"""
Tests for the retry policy and backoff loop.
"""

import asyncio

import pytest

from llm_generation.errors import (
    EmptyContextError,
    NonRetryableError,
    ParseFailure,
    TransientBackendError,
    VerificationFailure,
)
from llm_generation.retry import (
    RetryDecision,
    RetryPolicy,
    backoff_delay,
    default_retry_predicate,
    execute_with_retry,
    next_retry,
)


class Flaky:
    """Operation failing with the given errors before succeeding."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class AlwaysFails:
    def __init__(self, error_factory=lambda: TransientBackendError("boom")):
        self.error_factory = error_factory
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        raise self.error_factory()


class TestRetryPolicy:
    """Test policy defaults and validation."""

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.initial_delay == 1.0
        assert policy.max_delay == 8.0
        assert policy.retry_predicate is default_retry_predicate

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"initial_delay": -1.0},
            {"initial_delay": 4.0, "max_delay": 2.0},
        ],
    )
    def test_invalid_policy_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestDefaultPredicate:
    """Test which failures are retried by default."""

    @pytest.mark.parametrize(
        "error",
        [TypeError("bad call"), SyntaxError("bad json"), NonRetryableError("nope"),
         EmptyContextError("fn"), ParseFailure(), VerificationFailure()],
    )
    def test_not_retried(self, error):
        assert default_retry_predicate(error) is False

    @pytest.mark.parametrize(
        "error",
        [TransientBackendError(), RuntimeError("network"), ConnectionError(), TimeoutError()],
    )
    def test_retried(self, error):
        assert default_retry_predicate(error) is True


class TestBackoff:
    """Test the pure backoff computation."""

    def test_doubles_from_initial_delay(self):
        policy = RetryPolicy(max_attempts=10, initial_delay=1.0, max_delay=100.0)
        assert [backoff_delay(k, policy) for k in range(1, 5)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        policy = RetryPolicy(max_attempts=10, initial_delay=1.0, max_delay=8.0)
        assert [backoff_delay(k, policy) for k in range(1, 7)] == [1.0, 2.0, 4.0, 8.0, 8.0, 8.0]

    @pytest.mark.parametrize("initial,maximum", [(0.5, 3.0), (2.0, 2.0), (0.0, 1.0)])
    def test_matches_closed_form(self, initial, maximum):
        policy = RetryPolicy(max_attempts=8, initial_delay=initial, max_delay=maximum)
        for k in range(1, 8):
            assert backoff_delay(k, policy) == min(initial * 2 ** (k - 1), maximum)

    def test_attempt_must_be_positive(self):
        with pytest.raises(ValueError):
            backoff_delay(0, RetryPolicy())


class TestNextRetry:
    """Test retry decisions without running an operation."""

    def test_retry_with_delay(self):
        decision = next_retry(1, TransientBackendError(), RetryPolicy())
        assert decision == RetryDecision(retry=True, delay=1.0)

    def test_stops_at_max_attempts(self):
        decision = next_retry(3, TransientBackendError(), RetryPolicy(max_attempts=3))
        assert decision.retry is False

    def test_predicate_rejects(self):
        decision = next_retry(1, TypeError("x"), RetryPolicy(max_attempts=5))
        assert decision.retry is False
        assert decision.delay == 0.0

    def test_custom_predicate(self):
        policy = RetryPolicy(retry_predicate=lambda e: isinstance(e, KeyError))
        assert next_retry(1, KeyError("k"), policy).retry is True
        assert next_retry(1, TransientBackendError(), policy).retry is False


class TestExecuteWithRetry:
    """Test the retry loop."""

    @pytest.mark.asyncio
    async def test_success_first_try(self, recording_logger, recording_sleep):
        op = Flaky()
        result = await execute_with_retry(op, logger=recording_logger, sleep=recording_sleep)

        assert result == "ok"
        assert op.calls == 1
        assert recording_sleep.delays == []
        assert recording_logger.events == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_attempts", [1, 2, 3, 5])
    async def test_always_failing_invoked_max_attempts_times(self, max_attempts, recording_sleep):
        op = AlwaysFails()
        policy = RetryPolicy(max_attempts=max_attempts)

        with pytest.raises(TransientBackendError):
            await execute_with_retry(op, policy, sleep=recording_sleep)

        assert op.calls == max_attempts
        assert len(recording_sleep.delays) == max_attempts - 1

    @pytest.mark.asyncio
    async def test_waits_follow_backoff(self, recording_sleep):
        op = AlwaysFails()
        policy = RetryPolicy(max_attempts=6, initial_delay=1.0, max_delay=8.0)

        with pytest.raises(TransientBackendError):
            await execute_with_retry(op, policy, sleep=recording_sleep)

        assert recording_sleep.delays == [1.0, 2.0, 4.0, 8.0, 8.0]

    @pytest.mark.asyncio
    async def test_fail_once_then_succeed(self, recording_logger, recording_sleep):
        op = Flaky(TransientBackendError("blip"), result="value")

        result = await execute_with_retry(op, logger=recording_logger, sleep=recording_sleep)

        assert result == "value"
        assert op.calls == 2
        assert recording_sleep.delays == [1.0]
        assert len(recording_logger.of("retry_attempt")) == 1
        assert recording_logger.of("terminal_failure") == []

    @pytest.mark.asyncio
    async def test_non_retryable_short_circuits(self, recording_logger, recording_sleep):
        op = AlwaysFails(lambda: TypeError("malformed call"))

        with pytest.raises(TypeError, match="malformed call"):
            await execute_with_retry(
                op, RetryPolicy(max_attempts=10), logger=recording_logger, sleep=recording_sleep
            )

        assert op.calls == 1
        assert recording_sleep.delays == []
        assert len(recording_logger.of("terminal_failure")) == 1

    @pytest.mark.asyncio
    async def test_propagates_original_exception(self, recording_sleep):
        error = TransientBackendError("last")
        op = AlwaysFails(lambda: error)

        with pytest.raises(TransientBackendError) as exc_info:
            await execute_with_retry(op, RetryPolicy(max_attempts=2), sleep=recording_sleep)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_logs_events_in_order(self, recording_logger, recording_sleep):
        op = AlwaysFails()

        with pytest.raises(TransientBackendError):
            await execute_with_retry(
                op, RetryPolicy(max_attempts=2), logger=recording_logger, sleep=recording_sleep
            )

        names = [name for name, _ in recording_logger.events]
        assert names == ["retry_attempt", "backoff", "retry_attempt", "terminal_failure"]
        attempts = recording_logger.of("retry_attempt")
        assert [(a["attempt"], a["max_attempts"]) for a in attempts] == [(1, 2), (2, 2)]
        assert recording_logger.of("backoff") == [{"delay": 1.0}]

    @pytest.mark.asyncio
    async def test_default_sleep_with_zero_delay(self):
        op = Flaky(TransientBackendError(), TransientBackendError())
        policy = RetryPolicy(initial_delay=0.0, max_delay=0.0)

        assert await execute_with_retry(op, policy) == "ok"
        assert op.calls == 3

    @pytest.mark.asyncio
    async def test_concurrent_calls_are_independent(self, recording_sleep):
        ops = [Flaky(TransientBackendError(), result=i) for i in range(5)]

        results = await asyncio.gather(
            *(execute_with_retry(op, sleep=recording_sleep) for op in ops)
        )

        assert results == [0, 1, 2, 3, 4]
        assert all(op.calls == 2 for op in ops)
