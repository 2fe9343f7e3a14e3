"""
Tests for the provider health registry.
"""

import logging
import time

import pytest

from wallet_trust.core.models import RateLimitSnapshot
from wallet_trust.providers.registry import ProviderHealthRegistry


class ExplodingProvider:
    """Stand-in whose availability check raises."""

    name = "exploding"

    async def is_available(self) -> bool:
        raise RuntimeError("check crashed")

    def get_rate_limit(self) -> RateLimitSnapshot:
        return RateLimitSnapshot(remaining=1, reset_at=time.time() + 60)


class TestRegistration:
    """Tests for tracking provider names."""

    def test_registered_provider_starts_healthy(self, registry):
        registry.register("etherscan", rate_limit_ceiling=100)
        state = registry.state("etherscan")

        assert registry.is_healthy("etherscan")
        assert state.rate_limit_remaining == 100
        assert state.rate_limit_ceiling == 100
        assert state.last_error is None

    def test_unknown_provider_is_unhealthy(self, registry):
        assert not registry.is_healthy("nobody")
        assert registry.state("nobody") is None
        assert "nobody" not in registry

    def test_unregister(self, registry):
        registry.register("helius")
        registry.unregister("helius")
        assert "helius" not in registry
        registry.unregister("helius")

    def test_snapshot_is_a_copy(self, registry):
        registry.register("a")
        snapshot = registry.snapshot()
        registry.register("b")
        assert set(snapshot) == {"a"}


class TestHealthTransitions:
    """Tests for failure and recovery bookkeeping."""

    def test_mark_unhealthy_records_error(self, registry, caplog):
        registry.register("etherscan")
        registry.mark_unhealthy("etherscan", "HTTP 500")

        state = registry.state("etherscan")
        assert not state.healthy
        assert state.last_error == "HTTP 500"
        assert state.last_checked_at is not None
        assert "marked unhealthy" in caplog.text

    def test_mark_unhealthy_ignores_unknown(self, registry):
        registry.mark_unhealthy("ghost", "boom")
        assert "ghost" not in registry

    def test_set_health_recovers_and_clears_error(self, registry, caplog):
        caplog.set_level(logging.INFO, logger="wallet_trust.providers.registry")
        registry.register("etherscan")
        registry.mark_unhealthy("etherscan", "timeout")
        registry.set_health("etherscan", True)

        state = registry.state("etherscan")
        assert state.healthy
        assert state.last_error is None
        assert "recovered" in caplog.text

    def test_set_health_failure_keeps_previous_error(self, registry):
        registry.register("etherscan")
        registry.mark_unhealthy("etherscan", "timeout")
        registry.set_health("etherscan", False)
        assert registry.state("etherscan").last_error == "timeout"

    def test_states_are_replaced_not_mutated(self, registry):
        registry.register("etherscan")
        before = registry.state("etherscan")
        registry.mark_unhealthy("etherscan", "down")
        assert before.healthy
        assert registry.state("etherscan") is not before


class TestRateLimitTracking:
    """Tests for rate-limit counters."""

    def test_record_success_mirrors_snapshot(self, registry):
        registry.register("etherscan")
        registry.mark_unhealthy("etherscan", "flaky")
        registry.record_success("etherscan", RateLimitSnapshot(remaining=12, reset_at=1234.0))

        state = registry.state("etherscan")
        assert state.healthy
        assert state.last_error is None
        assert state.rate_limit_remaining == 12
        assert state.rate_limit_reset_at == 1234.0

    def test_ingest_headers(self, registry):
        registry.register("etherscan")
        registry.ingest_rate_limit_headers(
            "etherscan",
            {"X-RateLimit-Remaining": "5", "X-RateLimit-Limit": "100", "X-RateLimit-Reset": "1900000000"},
        )

        state = registry.state("etherscan")
        assert state.rate_limit_remaining == 5
        assert state.rate_limit_ceiling == 100
        assert state.rate_limit_reset_at == 1900000000.0

    def test_malformed_headers_ignored(self, registry):
        registry.register("etherscan")
        registry.ingest_rate_limit_headers("etherscan", {"x-ratelimit-remaining": "lots"})
        assert registry.state("etherscan").rate_limit_remaining == 60


class TestRefreshHealth:
    """Tests for probing providers."""

    @pytest.mark.asyncio
    async def test_refresh_applies_check_results(self, registry, make_provider):
        up = make_provider(name="up")
        down = make_provider(name="down", available=False)
        registry.register("up")
        registry.register("down")
        registry.mark_unhealthy("up", "earlier failure")

        await registry.refresh_health([up, down])

        assert registry.is_healthy("up")
        assert not registry.is_healthy("down")
        assert registry.state("down").last_error == "Availability check failed"

    @pytest.mark.asyncio
    async def test_refresh_survives_check_exception(self, registry):
        registry.register("exploding")
        await registry.refresh_health([ExplodingProvider()])

        state = registry.state("exploding")
        assert not state.healthy
        assert state.last_error == "check crashed"
