"""Provider orchestration with per-chain failover.

Coordinates the registered providers for each chain: tries them in priority
order, races each attempt against a timeout, marks failing providers
unhealthy and falls back to neutral defaults when nothing answers.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Generic, TypeVar

from .core.config import (
    DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS,
    DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    AppConfig,
)
from .core.exceptions import ProviderError, ProviderTimeoutError, ValidationError
from .core.models import ProviderStatus, RateLimitSnapshot, TokenSummary, WalletInfo
from .core.types import Chain
from .providers.base import BaseProvider
from .providers.etherscan import EtherscanProvider
from .providers.helius import HeliusProvider
from .providers.registry import ProviderHealthRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class OrchestratorConfig:
    """Timeouts for provider calls and health probing."""

    fallback_timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS  # seconds per attempt
    health_check_interval: float = DEFAULT_HEALTH_CHECK_INTERVAL_SECONDS

    @classmethod
    def from_app_config(cls, config: AppConfig) -> "OrchestratorConfig":
        return cls(
            fallback_timeout=config.provider_timeout_seconds,
            health_check_interval=config.health_check_interval_seconds,
        )


@dataclass
class ProviderCallResult(Generic[T]):
    """Outcome of one provider attempt: a value or an error.

    ``provider`` is None when the value is the neutral default.
    """

    provider: str | None
    value: T | None = None
    error: ProviderError | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderOrchestrator:
    """Selects, calls and fails over between providers for each chain."""

    def __init__(
        self,
        registry: ProviderHealthRegistry | None = None,
        config: OrchestratorConfig | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Health registry (a private one is created if omitted)
            config: Timeout settings
        """
        self.registry = registry or ProviderHealthRegistry()
        self.config = config or OrchestratorConfig()
        self._providers: dict[Chain, list[BaseProvider]] = {chain: [] for chain in Chain}
        self._health_task: asyncio.Task | None = None

    # --- Registration -------------------------------------------------

    def register_provider(self, provider: BaseProvider, chain: Chain | str | None = None) -> None:
        """Register a provider for a chain, replacing one with the same name."""
        chain = Chain(chain) if chain else provider.chain
        providers = [p for p in self._providers[chain] if p.name != provider.name]
        providers.append(provider)
        # Stable sort keeps registration order for equal priorities
        providers.sort(key=lambda p: p.priority)
        self._providers[chain] = providers

        self.registry.register(provider.name, provider.get_rate_limit().remaining)
        provider.rate_limit_listener = partial(self.registry.ingest_rate_limit_headers, provider.name)
        logger.info(
            f"Registered {chain.value} provider: {provider.name} (priority: {provider.priority})"
        )

    def unregister_provider(self, name: str, chain: Chain | str | None = None) -> None:
        """Remove a provider from one chain, or from all chains if none is given."""
        chains = [Chain(chain)] if chain else list(self._providers)
        for c in chains:
            for p in self._providers[c]:
                if p.name == name:
                    p.rate_limit_listener = None
            self._providers[c] = [p for p in self._providers[c] if p.name != name]
        if not self.has_provider(name):
            self.registry.unregister(name)
        logger.info(f"Unregistered provider: {name}")

    def get_providers(self, chain: Chain | str) -> list[BaseProvider]:
        """Registered providers for a chain, in priority order."""
        return list(self._providers.get(Chain(chain), []))

    def get_all_providers(self) -> list[BaseProvider]:
        providers = [p for chain_providers in self._providers.values() for p in chain_providers]
        return sorted(providers, key=lambda p: p.priority)

    def get_provider(self, name: str, chain: Chain | str | None = None) -> BaseProvider | None:
        candidates = self.get_providers(chain) if chain else self.get_all_providers()
        for provider in candidates:
            if provider.name == name:
                return provider
        return None

    def has_provider(self, name: str, chain: Chain | str | None = None) -> bool:
        return self.get_provider(name, chain) is not None

    def provider_count(self, chain: Chain | str | None = None) -> int:
        if chain:
            return len(self.get_providers(chain))
        return sum(len(p) for p in self._providers.values())

    async def get_available_providers(self, chain: Chain | str) -> list[BaseProvider]:
        """Providers that are marked healthy and pass their availability check."""
        available = []
        for provider in self.get_providers(chain):
            if not self.registry.is_healthy(provider.name):
                logger.debug(f"Skipping unhealthy provider {provider.name}")
                continue
            try:
                if await provider.is_available():
                    available.append(provider)
            except Exception as e:
                logger.warning(f"Availability check for {provider.name} raised: {e}")
                self.registry.mark_unhealthy(provider.name, str(e))
        return available

    # --- Failover -----------------------------------------------------

    async def _call_provider(
        self,
        provider: BaseProvider,
        operation: str,
        call: Callable[[BaseProvider], Awaitable[T]],
    ) -> ProviderCallResult[T]:
        """Run one attempt under the timeout and capture its outcome."""
        timeout = self.config.fallback_timeout
        started = time.perf_counter()
        try:
            # wait_for cancels the underlying call when the timeout fires
            value = await asyncio.wait_for(call(provider), timeout=timeout)
        except ValidationError:
            raise
        except asyncio.TimeoutError:
            error: ProviderError = ProviderTimeoutError(provider.name, timeout, operation)
        except ProviderError as e:
            error = e
        except Exception as e:
            error = ProviderError(provider.name, f"{operation} failed: {e}")
        else:
            return ProviderCallResult(
                provider=provider.name,
                value=value,
                duration_ms=_elapsed_ms(started),
            )
        return ProviderCallResult(
            provider=provider.name,
            error=error,
            duration_ms=_elapsed_ms(started),
        )

    async def _with_failover(
        self,
        chain: Chain,
        operation: str,
        call: Callable[[BaseProvider], Awaitable[T]],
        default: Callable[[], T],
    ) -> ProviderCallResult[T]:
        providers = await self.get_available_providers(chain)
        if not providers:
            registered = [p.name for p in self.get_providers(chain)]
            logger.warning(
                f"No available {chain.value} providers for {operation} "
                f"(registered: {registered}), returning defaults"
            )
            return ProviderCallResult(provider=None, value=default())

        for provider in providers:
            logger.info(f"Attempting {operation} with {provider.name}")
            result = await self._call_provider(provider, operation, call)
            if result.ok:
                logger.info(f"{provider.name} completed {operation} in {result.duration_ms}ms")
                self.registry.record_success(provider.name, provider.get_rate_limit())
                return result

            logger.warning(f"Provider {provider.name} failed {operation}: {result.error}")
            self.registry.mark_unhealthy(provider.name, str(result.error))

        logger.warning(f"All {chain.value} providers failed for {operation}, returning defaults")
        return ProviderCallResult(provider=None, value=default())

    async def fetch_wallet_info(
        self, address: str, chain: Chain | str
    ) -> ProviderCallResult[WalletInfo]:
        """Like get_wallet_info, but also reports which provider answered."""
        return await self._with_failover(
            Chain(chain),
            "wallet info",
            lambda provider: provider.get_wallet_info(address),
            WalletInfo.unknown,
        )

    async def fetch_tokens_created(
        self,
        address: str,
        chain: Chain | str,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
    ) -> ProviderCallResult[list[TokenSummary]]:
        """Like get_tokens_created, but also reports which provider answered."""
        return await self._with_failover(
            Chain(chain),
            "token discovery",
            lambda provider: provider.get_tokens_created(address, force_refresh, manual_tokens),
            list,
        )

    async def get_wallet_info(self, address: str, chain: Chain | str) -> WalletInfo:
        """
        Wallet facts from the first provider that answers.

        Never raises for provider faults: returns WalletInfo.unknown() when
        no provider succeeds.
        """
        result = await self.fetch_wallet_info(address, chain)
        return result.value

    async def get_tokens_created(
        self,
        address: str,
        chain: Chain | str,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
    ) -> list[TokenSummary]:
        """Tokens launched by the address, or [] when no provider succeeds."""
        result = await self.fetch_tokens_created(address, chain, force_refresh, manual_tokens)
        return result.value

    # --- Health -------------------------------------------------------

    async def perform_health_check(self) -> None:
        logger.debug("Performing provider health check")
        await self.registry.refresh_health(self.get_all_providers())

    async def _health_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.perform_health_check()
            except Exception as e:
                logger.error(f"Health check failed: {e}")

    def start_health_checks(self, interval: float | None = None) -> None:
        """Start periodic probing in a background task. Requires a running loop."""
        self.stop_health_checks()
        interval = interval or self.config.health_check_interval
        self._health_task = asyncio.get_running_loop().create_task(self._health_loop(interval))
        logger.info(f"Started provider health checks (interval: {interval:g}s)")

    def stop_health_checks(self) -> None:
        if self._health_task is not None:
            self._health_task.cancel()
            self._health_task = None
            logger.info("Stopped provider health checks")

    @property
    def health_checks_running(self) -> bool:
        return self._health_task is not None and not self._health_task.done()

    async def get_provider_statuses(self) -> list[ProviderStatus]:
        """Diagnostic status of every provider, sorted by priority."""
        statuses = []
        for chain, providers in self._providers.items():
            for provider in providers:
                healthy = self.registry.is_healthy(provider.name)
                state = self.registry.state(provider.name)
                try:
                    available = healthy and await provider.is_available()
                    rate_limit = provider.get_rate_limit()
                    last_error = state.last_error if state else None
                except Exception as e:
                    available = False
                    rate_limit = RateLimitSnapshot(remaining=0, reset_at=time.time())
                    last_error = str(e)
                statuses.append(
                    ProviderStatus(
                        name=provider.name,
                        chain=chain,
                        priority=provider.priority,
                        available=available,
                        healthy=healthy,
                        rate_limit=rate_limit,
                        last_error=last_error,
                    )
                )
        return sorted(statuses, key=lambda s: s.priority)

    async def shutdown(self) -> None:
        """Stop health checks and release provider resources."""
        self.stop_health_checks()
        for provider in self.get_all_providers():
            await provider.aclose()


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def create_default_orchestrator(
    config: AppConfig,
    registry: ProviderHealthRegistry | None = None,
) -> ProviderOrchestrator:
    """
    Build an orchestrator with the providers whose API keys are configured.

    Registers Etherscan for Ethereum and Helius for Solana.
    """
    orchestrator = ProviderOrchestrator(
        registry=registry,
        config=OrchestratorConfig.from_app_config(config),
    )

    sources = config.get_available_sources()
    if "etherscan" in sources:
        settings = config.provider_settings("etherscan")
        orchestrator.register_provider(
            EtherscanProvider(
                api_key=config.etherscan_api_key,
                priority=settings.priority,
                max_requests_per_second=settings.max_requests_per_second,
                max_requests_per_minute=settings.max_requests_per_minute,
            ),
            Chain.ETHEREUM,
        )
    if "helius" in sources:
        settings = config.provider_settings("helius")
        orchestrator.register_provider(
            HeliusProvider(
                api_key=config.helius_api_key,
                priority=settings.priority,
                max_requests_per_second=settings.max_requests_per_second,
                max_requests_per_minute=settings.max_requests_per_minute,
            ),
            Chain.SOLANA,
        )

    if orchestrator.provider_count() == 0:
        logger.warning("No provider API keys configured; analyses will use default values")
    return orchestrator
