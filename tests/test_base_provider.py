"""
Tests for the provider base class, retry policy and shared helpers.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from wallet_trust.core.exceptions import ProviderError, RateLimitError, ValidationError
from wallet_trust.providers.base import (
    CachedProvider,
    format_age,
    iso_from_unix,
    normalize_evm_address,
    normalize_solana_address,
    parse_rate_limit_headers,
)
from wallet_trust.providers.retry import (
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
    calculate_backoff_delay,
    is_retryable_error,
    retry_with_backoff,
)


class Counter:
    """Async callable failing a fixed number of times before succeeding."""

    def __init__(self, failures: int = 0, error: Exception | None = None, result="ok"):
        self.failures = failures
        self.error = error or ProviderError("test", "transient", retryable=True)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


class MemoryCachedProvider(CachedProvider):
    """Concrete CachedProvider for cache tests."""

    async def is_available(self) -> bool:
        return True

    async def get_wallet_info(self, address):
        raise NotImplementedError

    async def get_tokens_created(self, address, force_refresh=False, manual_tokens=None):
        raise NotImplementedError


class TestRateLimitHeaders:
    """Tests for rate-limit header parsing."""

    def test_relative_reset(self):
        update = parse_rate_limit_headers(
            {"X-RateLimit-Remaining": "42", "X-RateLimit-Reset": "30"}, now=1000.0
        )
        assert update.remaining == 42
        assert update.reset_at == 1030.0
        assert update.limit is None

    def test_absolute_reset(self):
        update = parse_rate_limit_headers({"x-ratelimit-reset": "1700000000"}, now=1000.0)
        assert update.reset_at == 1700000000.0

    def test_alternate_spelling(self):
        update = parse_rate_limit_headers({"RateLimit-Limit": "300", "RateLimit-Remaining": "299"})
        assert update.limit == 300
        assert update.remaining == 299

    def test_absent_or_malformed(self):
        assert parse_rate_limit_headers({}) is None
        assert parse_rate_limit_headers({"content-type": "application/json"}) is None
        assert parse_rate_limit_headers({"x-ratelimit-remaining": "many"}) is None

    def test_provider_ingests_headers(self, make_provider):
        provider = make_provider()
        provider._update_rate_limit({"x-ratelimit-remaining": "7", "x-ratelimit-reset": "30"})

        snapshot = provider.get_rate_limit()
        assert snapshot.remaining == 7
        assert snapshot.reset_at > time.time()


class TestRequestPacing:
    """Tests for window backpressure and request spacing."""

    def test_default_interval(self, make_provider):
        assert make_provider().min_request_interval == 0.1

    def test_interval_from_per_second_limit(self, make_provider):
        provider = make_provider()
        provider.max_requests_per_second = 4
        assert provider.min_request_interval == 0.25

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_spaced(self, make_provider):
        provider = make_provider()
        provider.max_requests_per_second = 20
        started: list[float] = []

        async def request():
            started.append(time.monotonic())
            return len(started)

        await asyncio.gather(*(provider._execute_request(request, "op") for _ in range(3)))

        gaps = [b - a for a, b in zip(started, started[1:])]
        assert all(gap >= 0.04 for gap in gaps)

    @pytest.mark.asyncio
    async def test_request_consumes_window(self, make_provider):
        provider = make_provider()
        before = provider.get_rate_limit().remaining

        await provider._execute_request(Counter(), "op")

        assert provider.get_rate_limit().remaining == before - 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_respect_window(self, make_provider):
        provider = make_provider()
        provider.max_requests_per_second = 20
        provider._rate_limit_ceiling = 2
        provider._rate_limit_remaining = 2
        reset_at = time.time() + 0.3
        provider._rate_limit_reset_at = reset_at
        sent: list[float] = []

        async def request():
            sent.append(time.time())
            return len(sent)

        await asyncio.gather(*(provider._execute_request(request, "op") for _ in range(3)))

        assert len(sent) == 3
        assert sum(1 for t in sent if t < reset_at) == 2

    @pytest.mark.asyncio
    async def test_exhausted_window_waits_for_reset(self, make_provider):
        provider = make_provider()
        provider._rate_limit_remaining = 0
        provider._rate_limit_reset_at = time.time() + 0.05

        started = time.monotonic()
        await provider._execute_request(Counter(), "op")

        assert time.monotonic() - started >= 0.04


class TestExecuteRequest:
    """Tests for retries and error normalization."""

    @pytest.mark.asyncio
    async def test_transient_failures_retried(self, make_provider):
        call = Counter(failures=2)
        assert await make_provider()._execute_request(call, "op") == "ok"
        assert call.calls == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, make_provider):
        call = Counter(failures=10)
        with pytest.raises(ProviderError):
            await make_provider()._execute_request(call, "op")
        assert call.calls == 3

    @pytest.mark.asyncio
    async def test_validation_never_retried(self, make_provider):
        call = Counter(failures=10, error=ValidationError("address", "x", "bad"))
        with pytest.raises(ValidationError):
            await make_provider()._execute_request(call, "op")
        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_permanent_provider_error_not_retried(self, make_provider):
        call = Counter(failures=10, error=ProviderError("test", "Invalid API Key"))
        with pytest.raises(ProviderError):
            await make_provider()._execute_request(call, "op")
        assert call.calls == 1

    @pytest.mark.asyncio
    async def test_unknown_errors_wrapped(self, make_provider):
        call = Counter(failures=10, error=KeyError("result"))
        with pytest.raises(ProviderError) as exc_info:
            await make_provider(name="fake")._execute_request(call, "wallet info")
        assert exc_info.value.provider == "fake"
        assert "wallet info failed" in str(exc_info.value)
        assert call.calls == 1


class TestRetryPolicy:
    """Tests for backoff calculation and retry classification."""

    @pytest.mark.parametrize("attempt,expected", [(1, 1.0), (2, 2.0), (3, 4.0), (4, 8.0), (10, 10.0)])
    def test_exponential_backoff_without_jitter(self, attempt, expected):
        assert calculate_backoff_delay(attempt, DEFAULT_RETRY_CONFIG, rng=lambda: 0.5) == expected

    def test_jitter_bounds(self):
        assert calculate_backoff_delay(2, DEFAULT_RETRY_CONFIG, rng=lambda: 1.0) == pytest.approx(2.2)
        assert calculate_backoff_delay(2, DEFAULT_RETRY_CONFIG, rng=lambda: 0.0) == pytest.approx(1.8)

    def test_delay_floor(self):
        config = RetryConfig(initial_delay=0.1, min_delay=0.5)
        assert calculate_backoff_delay(1, config, rng=lambda: 0.5) == 0.5

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValueError):
            RetryConfig(min_delay=5.0, max_delay=1.0)

    @pytest.mark.parametrize("error,expected", [
        (RateLimitError("test"), True),
        (ProviderError("test", "HTTP 503", retryable=True), True),
        (ProviderError("test", "HTTP 404"), False),
        (ValidationError("address", "x", "bad"), False),
        (asyncio.TimeoutError(), True),
        (httpx.ConnectTimeout("slow"), True),
        (httpx.ConnectError("refused"), True),
        (ValueError("nope"), False),
    ])
    def test_is_retryable_error(self, error, expected):
        assert is_retryable_error(error) is expected

    @pytest.mark.asyncio
    async def test_on_retry_callback(self, fast_retry):
        seen = []
        call = Counter(failures=2)

        await retry_with_backoff(call, fast_retry, on_retry=lambda a, e, d: seen.append(a))

        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_should_retry_override(self, fast_retry):
        call = Counter(failures=1, error=ValueError("flaky parse"))
        result = await retry_with_backoff(call, fast_retry, should_retry=lambda e: True)
        assert result == "ok"
        assert call.calls == 2

    @pytest.mark.asyncio
    async def test_retry_after_respected_up_to_ceiling(self, fast_retry):
        delays = []
        call = Counter(failures=1, error=RateLimitError("test", retry_after_seconds=5))

        await retry_with_backoff(call, fast_retry, on_retry=lambda a, e, d: delays.append(d))

        assert delays == [fast_retry.max_delay]


class TestCachedProvider:
    """Tests for the in-memory TTL cache."""

    def test_set_and_get(self):
        provider = MemoryCachedProvider(name="mem")
        provider._set_cache("k", [1, 2])
        assert provider._get_from_cache("k") == [1, 2]

    def test_expired_entries_dropped(self):
        provider = MemoryCachedProvider(cache_ttl_seconds=0, name="mem")
        provider._set_cache("k", "v")
        assert provider._get_from_cache("k") is None
        assert "k" not in provider._cache

    def test_invalidate_and_clear(self):
        provider = MemoryCachedProvider(name="mem")
        provider._set_cache("a", 1)
        provider._set_cache("b", 2)
        provider._invalidate("a")
        assert provider._get_from_cache("a") is None
        provider.clear_cache()
        assert provider._get_from_cache("b") is None


class TestAddressHelpers:
    """Tests for address validation."""

    def test_evm_address_lowercased(self):
        address = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
        assert normalize_evm_address(f"  {address} ") == address.lower()

    @pytest.mark.parametrize("address", ["", "0x123", "742d35Cc6634C0532925a3b844Bc454e4438f44e", "0xZZ2d35Cc6634C0532925a3b844Bc454e4438f44e"])
    def test_evm_address_rejected(self, address):
        with pytest.raises(ValidationError):
            normalize_evm_address(address)

    def test_solana_address_case_kept(self, sol_address):
        assert normalize_solana_address(sol_address) == sol_address

    @pytest.mark.parametrize("address", ["", "short", "0OIl0OIl0OIl0OIl0OIl0OIl0OIl0OIl0OIl"])
    def test_solana_address_rejected(self, address):
        with pytest.raises(ValidationError):
            normalize_solana_address(address)


class TestTimeHelpers:
    """Tests for age formatting and Unix conversion."""

    NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(days=400), "1 year, 1 month"),
        (timedelta(days=45), "1 month, 15 days"),
        (timedelta(days=5), "5 days"),
        (timedelta(days=1), "1 day"),
        (timedelta(hours=3), "3 hours"),
        (timedelta(minutes=2), "2 minutes"),
    ])
    def test_format_age(self, delta, expected):
        assert format_age(self.NOW - delta, now=self.NOW) == expected

    def test_format_age_naive_is_utc(self):
        naive = (self.NOW - timedelta(days=5)).replace(tzinfo=None)
        assert format_age(naive, now=self.NOW) == "5 days"

    def test_iso_from_unix(self):
        assert iso_from_unix(0) == "1970-01-01T00:00:00Z"
        assert iso_from_unix("1700000000") == "2023-11-14T22:13:20Z"
        assert iso_from_unix(None) is None
        assert iso_from_unix("soon") is None
