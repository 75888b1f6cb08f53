"""Tests for the retry engine."""

import pytest

from apilink import ApiError, ErrorKind, NotificationType, Notifier, with_retry
from apilink.errors import network_error, timeout_error


def _failing(*errors: BaseException, result: object = "ok"):
    """Build an operation that raises each error once, then returns result."""
    calls = {"count": 0}
    pending = list(errors)

    async def operation() -> object:
        calls["count"] += 1
        if pending:
            raise pending.pop(0)
        return result

    return operation, calls


def _rate_limited(seconds: int = 5) -> ApiError:
    return ApiError(
        ErrorKind.RATE_LIMITED, "slow down", status=429, retry_after_seconds=seconds
    )


def _server_error() -> ApiError:
    return ApiError(ErrorKind.SERVER_ERROR, "boom", status=500)


class TestBackoff:
    async def test_success_needs_no_retry(self, sleeper) -> None:
        """Test that a first success needs no retry."""
        operation, calls = _failing()
        assert await with_retry(operation, sleep=sleeper) == "ok"
        assert calls["count"] == 1
        assert sleeper.delays == []

    async def test_exponential_backoff_then_success(self, sleeper) -> None:
        """Test exponential backoff until success."""
        operation, calls = _failing(_server_error(), network_error())
        assert await with_retry(operation, retries=3, base_delay="1s", sleep=sleeper) == "ok"
        assert calls["count"] == 3
        assert sleeper.delays == [1.0, 2.0]

    async def test_exhausted_retries_reraise(self, sleeper) -> None:
        """Test re-raising once retries run out."""
        operation, calls = _failing(*[_server_error() for _ in range(5)])
        with pytest.raises(ApiError) as exc_info:
            await with_retry(operation, retries=3, base_delay="1s", sleep=sleeper)
        assert exc_info.value.kind is ErrorKind.SERVER_ERROR
        assert calls["count"] == 4
        assert sleeper.delays == [1.0, 2.0, 4.0]

    async def test_non_retryable_propagates_immediately(self, sleeper) -> None:
        """Test that non-retryable errors propagate at once."""
        operation, calls = _failing(ApiError(ErrorKind.FORBIDDEN, "no", status=403))
        with pytest.raises(ApiError):
            await with_retry(operation, sleep=sleeper)
        assert calls["count"] == 1
        assert sleeper.delays == []

    async def test_timeout_is_not_retried(self, sleeper) -> None:
        """Test that timeouts are not retried."""
        operation, calls = _failing(timeout_error())
        with pytest.raises(ApiError) as exc_info:
            await with_retry(operation, sleep=sleeper)
        assert exc_info.value.kind is ErrorKind.TIMEOUT
        assert calls["count"] == 1

    async def test_other_exceptions_propagate(self, sleeper) -> None:
        """Test that non-API exceptions propagate."""
        operation, calls = _failing(KeyError("x"))
        with pytest.raises(KeyError):
            await with_retry(operation, sleep=sleeper)
        assert calls["count"] == 1

    async def test_zero_retries(self, sleeper) -> None:
        """Test a single attempt with zero retries."""
        operation, calls = _failing(_server_error())
        with pytest.raises(ApiError):
            await with_retry(operation, retries=0, sleep=sleeper)
        assert calls["count"] == 1

    async def test_negative_retries_rejected(self, sleeper) -> None:
        """Test rejecting negative retries."""
        operation, _ = _failing()
        with pytest.raises(ValueError):
            await with_retry(operation, retries=-1, sleep=sleeper)


class TestRateLimit:
    async def test_waits_retry_after_then_retries_once(self, sleeper, sink) -> None:
        """Test waiting Retry-After seconds before one retry."""
        operation, calls = _failing(_rate_limited(5))
        result = await with_retry(
            operation, notifier=Notifier(sink), sleep=sleeper, base_delay="1s"
        )
        assert result == "ok"
        assert calls["count"] == 2
        assert sleeper.delays == [5]
        assert [n.type for n in sink.notifications] == [NotificationType.INFO]
        assert "5 seconds" in sink.notifications[0].message

    async def test_second_rate_limit_raises_with_wait_time(self, sleeper) -> None:
        """Test the error raised on a second rate limit."""
        operation, calls = _failing(_rate_limited(5), _rate_limited(5))
        with pytest.raises(ApiError) as exc_info:
            await with_retry(operation, retries=3, sleep=sleeper)
        error = exc_info.value
        assert error.kind is ErrorKind.RATE_LIMITED
        assert error.retry_after_seconds == 5
        assert "5" in error.message
        assert calls["count"] == 2
        assert sleeper.delays == [5]

    async def test_no_retries_left_raises_with_wait_time(self, sleeper) -> None:
        """Test the rate-limit error when no retries are left."""
        operation, calls = _failing(_rate_limited(30))
        with pytest.raises(ApiError, match="30 seconds"):
            await with_retry(operation, retries=0, sleep=sleeper)
        assert calls["count"] == 1
        assert sleeper.delays == []

    async def test_backoff_and_rate_limit_mix(self, sleeper, sink) -> None:
        """Test that a rate limit after a server error waits Retry-After, not the backoff."""
        operation, calls = _failing(_server_error(), _rate_limited(7))
        result = await with_retry(
            operation, retries=3, base_delay="1s", notifier=Notifier(sink), sleep=sleeper
        )
        assert result == "ok"
        assert calls["count"] == 3
        assert sleeper.delays == [1.0, 7.0]
        assert [n.type for n in sink.notifications] == [NotificationType.INFO]
