"""Tests for async retry utilities."""

import httpx
import pytest
from pydantic import ValidationError

from trackersync.core.config.models import GitHubSettings
from trackersync.core.remote.retry import RetryPolicy, is_retryable_error, retry_async


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://api.github.com/x")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class RecordingSleep:
    """Awaitable sleep stand-in that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestRetryPolicy:
    """Tests for the RetryPolicy model."""

    def test_defaults(self) -> None:
        """Test the default retry settings."""
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.base_delay == 1.0
        assert policy.multiplier == 2.0

    @pytest.mark.parametrize(
        "field,value",
        [("max_retries", -1), ("base_delay", 0), ("multiplier", 0.5), ("jitter_ratio", 1.5)],
    )
    def test_rejects_out_of_range(self, field, value) -> None:
        with pytest.raises(ValidationError, match=field):
            RetryPolicy(**{field: value})

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            RetryPolicy().max_retries = 5

    def test_from_settings(self) -> None:
        settings = GitHubSettings(max_retries=5, retry_base_delay=0.5)
        policy = RetryPolicy.from_settings(settings)
        assert policy.max_retries == 5
        assert policy.base_delay == 0.5

    def test_delay_without_jitter(self) -> None:
        """Test exponential backoff without jitter."""
        policy = RetryPolicy(base_delay=1.0, multiplier=2.0, jitter=False)
        assert [policy.delay_for(i) for i in range(3)] == [1.0, 2.0, 4.0]

    def test_delay_with_jitter(self) -> None:
        """Test delay stays within ±20% of the base."""
        policy = RetryPolicy(base_delay=1.0, jitter=True, jitter_ratio=0.2)
        for _ in range(20):
            assert 0.8 <= policy.delay_for(0) <= 1.2


class TestIsRetryableError:
    """Tests for transient error detection."""

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_retryable(self, status: int) -> None:
        assert is_retryable_error(_status_error(status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422])
    def test_client_errors_not_retryable(self, status: int) -> None:
        assert is_retryable_error(_status_error(status)) is False

    def test_timeout_retryable(self) -> None:
        assert is_retryable_error(httpx.ReadTimeout("slow")) is True

    def test_connect_error_retryable(self) -> None:
        assert is_retryable_error(httpx.ConnectError("refused")) is True

    def test_non_http_error_not_retryable(self) -> None:
        assert is_retryable_error(ValueError("nope")) is False


class TestRetryAsync:
    """Tests for retry_async."""

    @pytest.mark.asyncio
    async def test_success_first_try(self) -> None:
        sleep = RecordingSleep()

        async def operation() -> str:
            return "ok"

        assert await retry_async(operation, sleep=sleep) == "ok"
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self) -> None:
        """Test transient failures are retried with backoff."""
        sleep = RecordingSleep()
        attempts = []

        async def operation() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise _status_error(503)
            return "ok"

        policy = RetryPolicy(max_retries=3, base_delay=1.0, jitter=False)
        assert await retry_async(operation, policy, sleep=sleep) == "ok"
        assert len(attempts) == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        sleep = RecordingSleep()
        attempts = []

        async def operation() -> str:
            attempts.append(1)
            raise _status_error(404)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_async(operation, sleep=sleep)
        assert len(attempts) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        sleep = RecordingSleep()
        attempts = []

        async def operation() -> str:
            attempts.append(1)
            raise httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await retry_async(operation, RetryPolicy(max_retries=2, jitter=False), sleep=sleep)
        assert len(attempts) == 3
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_zero_retries(self) -> None:
        attempts = []

        async def operation() -> str:
            attempts.append(1)
            raise _status_error(500)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_async(operation, RetryPolicy(max_retries=0), sleep=RecordingSleep())
        assert len(attempts) == 1
