"""Pytest configuration and fixtures for wallet trust tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from wallet_trust.core.exceptions import ProviderError
from wallet_trust.core.models import TokenSummary, WalletInfo
from wallet_trust.core.types import Chain
from wallet_trust.orchestrator import OrchestratorConfig, ProviderOrchestrator
from wallet_trust.providers.base import BaseProvider
from wallet_trust.providers.registry import ProviderHealthRegistry
from wallet_trust.providers.retry import RetryConfig

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

# Near-zero delays so retry paths stay fast
FAST_RETRY = RetryConfig(
    max_attempts=3,
    initial_delay=0.001,
    backoff_factor=2.0,
    min_delay=0.0,
    max_delay=0.01,
    jitter=0.0,
)


class FakeProvider(BaseProvider):
    """In-memory provider with scripted results, failures and delays."""

    def __init__(
        self,
        name: str = "fake",
        chain: Chain = Chain.ETHEREUM,
        priority: int = 1,
        wallet_info: WalletInfo | None = None,
        tokens: list[TokenSummary] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        available: bool = True,
    ):
        super().__init__(name=name, priority=priority, retry_config=FAST_RETRY)
        self.chain = chain
        self.wallet_info = wallet_info or WalletInfo(
            created_at="2023-01-01T00:00:00Z", tx_count=42, age="1 year"
        )
        self.tokens = tokens if tokens is not None else []
        self.error = error
        self.delay = delay
        self.available = available
        self.calls: list[str] = []
        self.cancelled = False

    async def is_available(self) -> bool:
        return self.available

    async def _respond(self, operation: str, value):
        self.calls.append(operation)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return value

    async def get_wallet_info(self, address: str) -> WalletInfo:
        return await self._respond("wallet_info", self.wallet_info)

    async def get_tokens_created(
        self,
        address: str,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
    ) -> list[TokenSummary]:
        return await self._respond("tokens", self.tokens)


@pytest.fixture
def fixed_now() -> datetime:
    """Reference clock for wallet age calculations."""
    return FIXED_NOW


@pytest.fixture
def days_ago(fixed_now: datetime):
    """Build an ISO timestamp the given number of days before fixed_now."""

    def _days_ago(days: float) -> str:
        return (fixed_now - timedelta(days=days)).isoformat()

    return _days_ago


@pytest.fixture
def registry() -> ProviderHealthRegistry:
    return ProviderHealthRegistry()


@pytest.fixture
def orchestrator(registry: ProviderHealthRegistry) -> ProviderOrchestrator:
    """Orchestrator with a short per-call timeout."""
    return ProviderOrchestrator(
        registry=registry,
        config=OrchestratorConfig(fallback_timeout=0.5, health_check_interval=0.01),
    )


@pytest.fixture
def eth_address() -> str:
    return "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


@pytest.fixture
def sol_address() -> str:
    return "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


@pytest.fixture
def provider_failure() -> ProviderError:
    return ProviderError("fake", "upstream unavailable")


@pytest.fixture
def full_metrics_token() -> TokenSummary:
    """Healthy launch with all four metrics present."""
    return TokenSummary(
        token="0x1111111111111111111111111111111111111111",
        name="Good Token",
        symbol="GOOD",
        initial_liquidity=75_000.0,
        holders_after_7_days=250,
        liquidity_locked=True,
        dev_sell_ratio=0.05,
    )


@pytest.fixture
def rug_token() -> TokenSummary:
    """Dumped launch: developer sold everything, no liquidity."""
    return TokenSummary(
        token="0x2222222222222222222222222222222222222222",
        symbol="RUG",
        dev_sell_ratio=0.95,
        initial_liquidity=0.0,
    )


@pytest.fixture
def bare_token() -> TokenSummary:
    """Launch with no metrics at all."""
    return TokenSummary(token="0x3333333333333333333333333333333333333333", name="Bare")


@pytest.fixture
def fast_retry() -> RetryConfig:
    return FAST_RETRY


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""

    def _make(**kwargs) -> FakeProvider:
        return FakeProvider(**kwargs)

    return _make
