"""Base classes for chain-data providers.

Every provider implements the same four operations (availability check,
wallet info, tokens created, rate-limit snapshot). Outbound requests go
through ``_execute_request``, which applies window-based backpressure,
minimum request spacing and the retry policy before surfacing a
``ProviderError``.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from ..core.exceptions import ProviderError, ValidationError
from ..core.models import RateLimitSnapshot, TokenSummary, WalletInfo
from ..core.types import EVM_ADDRESS_PATTERN, SOLANA_ADDRESS_PATTERN, Chain
from .retry import DEFAULT_RETRY_CONFIG, RetryConfig, retry_with_backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_WINDOW_SECONDS = 60.0
DEFAULT_MIN_REQUEST_INTERVAL = 0.1  # seconds, when no per-second limit is configured

REMAINING_HEADERS = ("x-ratelimit-remaining", "ratelimit-remaining", "x-rate-limit-remaining")
RESET_HEADERS = ("x-ratelimit-reset", "ratelimit-reset", "x-rate-limit-reset")
LIMIT_HEADERS = ("x-ratelimit-limit", "ratelimit-limit", "x-rate-limit-limit")

# Reset values above this are absolute Unix timestamps, below it seconds-until-reset
_ABSOLUTE_RESET_THRESHOLD = 1_000_000_000


@dataclass(frozen=True)
class RateLimitUpdate:
    """Rate-limit values parsed from response headers. None = not reported."""

    remaining: int | None = None
    reset_at: float | None = None
    limit: int | None = None


def _first_int(headers: Mapping[str, str], names: tuple[str, ...]) -> int | None:
    for name in names:
        value = headers.get(name)
        if value is None:
            continue
        try:
            return int(float(str(value).strip()))
        except ValueError:
            logger.debug(f"Ignoring malformed rate-limit header {name}={value!r}")
    return None


def parse_rate_limit_headers(
    headers: Mapping[str, str],
    now: float | None = None,
) -> RateLimitUpdate | None:
    """
    Extract rate-limit counters from common header spellings.

    Args:
        headers: Response headers (any case)
        now: Current Unix time, for relative reset values

    Returns:
        RateLimitUpdate, or None when no usable header is present
    """
    lowered = {str(k).lower(): v for k, v in headers.items()}
    remaining = _first_int(lowered, REMAINING_HEADERS)
    reset = _first_int(lowered, RESET_HEADERS)
    limit = _first_int(lowered, LIMIT_HEADERS)

    if remaining is None and reset is None and limit is None:
        return None

    reset_at = None
    if reset is not None:
        if reset > _ABSOLUTE_RESET_THRESHOLD:
            reset_at = float(reset)
        else:
            reset_at = (now if now is not None else time.time()) + reset

    return RateLimitUpdate(remaining=remaining, reset_at=reset_at, limit=limit)


def normalize_evm_address(address: str) -> str:
    """Validate an EVM address and return it lowercased."""
    if not address or not isinstance(address, str):
        raise ValidationError("address", str(address), "address is required")
    address = address.strip()
    if not EVM_ADDRESS_PATTERN.match(address):
        raise ValidationError("address", address, "invalid Ethereum address format")
    return address.lower()


def normalize_solana_address(address: str) -> str:
    """Validate a Solana base58 address. Case is significant, so it is kept."""
    if not address or not isinstance(address, str):
        raise ValidationError("address", str(address), "address is required")
    address = address.strip()
    if not SOLANA_ADDRESS_PATTERN.match(address):
        raise ValidationError("address", address, "invalid Solana address format")
    return address


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def format_age(created_at: datetime, now: datetime | None = None) -> str:
    """Human-readable age, e.g. "1 year, 2 months" or "5 days"."""
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    seconds = max(0, int((now - created_at).total_seconds()))
    days = seconds // 86400
    months = days // 30
    years = days // 365

    if years > 0:
        return f"{_plural(years, 'year')}, {_plural(months % 12, 'month')}"
    if months > 0:
        return f"{_plural(months, 'month')}, {_plural(days % 30, 'day')}"
    if days > 0:
        return _plural(days, "day")
    hours = seconds // 3600
    if hours > 0:
        return _plural(hours, "hour")
    return _plural(seconds // 60, "minute")


def datetime_from_unix(value: Any) -> datetime | None:
    """Aware UTC datetime from Unix seconds (int or numeric string)."""
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def iso_from_unix(value: Any) -> str | None:
    """ISO-8601 UTC string (trailing Z) from Unix seconds."""
    moment = datetime_from_unix(value)
    if moment is None:
        return None
    return moment.isoformat().replace("+00:00", "Z")


class BaseProvider(ABC):
    """Abstract base class for all chain-data providers."""

    # Subclasses define their identity
    NAME: str = "unknown"
    CHAIN: Chain = Chain.ETHEREUM

    def __init__(
        self,
        name: str | None = None,
        priority: int = 1,
        max_requests_per_second: float | None = None,
        max_requests_per_minute: int = 60,
        retry_config: RetryConfig | None = None,
    ):
        """
        Initialize provider with rate limiting.

        Args:
            name: Provider name (defaults to the class NAME)
            priority: Selection order within a chain, lower is tried first
            max_requests_per_second: Derives the minimum spacing between requests
            max_requests_per_minute: Request ceiling per 60s window
            retry_config: Backoff policy for transient faults
        """
        self.name = name or self.NAME
        self.priority = priority
        self.chain = self.CHAIN
        self.max_requests_per_second = max_requests_per_second
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG

        self._rate_limit_ceiling = max_requests_per_minute
        self._rate_limit_remaining = max_requests_per_minute
        self._rate_limit_reset_at = time.time() + RATE_LIMIT_WINDOW_SECONDS
        self._next_request_at = 0.0  # monotonic clock
        # Called with raw response headers; the orchestrator points it at the registry
        self.rate_limit_listener: Callable[[Mapping[str, str]], None] | None = None

    @property
    def min_request_interval(self) -> float:
        if self.max_requests_per_second:
            return 1.0 / self.max_requests_per_second
        return DEFAULT_MIN_REQUEST_INTERVAL

    # --- Contract -----------------------------------------------------

    @abstractmethod
    async def is_available(self) -> bool:
        """Lightweight liveness check. Must not raise."""

    @abstractmethod
    async def get_wallet_info(self, address: str) -> WalletInfo:
        """Wallet facts for an address. Raises ProviderError on failure."""

    @abstractmethod
    async def get_tokens_created(
        self,
        address: str,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
    ) -> list[TokenSummary]:
        """Tokens launched by an address. Raises ProviderError on failure."""

    def get_rate_limit(self) -> RateLimitSnapshot:
        """Current rate-limit window state."""
        self._refresh_window()
        return RateLimitSnapshot(
            remaining=self._rate_limit_remaining,
            reset_at=self._rate_limit_reset_at,
        )

    async def aclose(self) -> None:
        """Release network resources. Override when holding a client."""

    # --- Rate limiting ------------------------------------------------

    def _refresh_window(self) -> None:
        now = time.time()
        if now >= self._rate_limit_reset_at:
            self._rate_limit_remaining = self._rate_limit_ceiling
            self._rate_limit_reset_at = now + RATE_LIMIT_WINDOW_SECONDS

    def _is_within_rate_limit(self) -> bool:
        self._refresh_window()
        return self._rate_limit_remaining > 0

    async def _wait_for_rate_limit(self) -> None:
        """Block until the current window has capacity (backpressure)."""
        while not self._is_within_rate_limit():
            wait = max(0.0, self._rate_limit_reset_at - time.time())
            logger.warning(f"[{self.name}] Rate limit reached, waiting {wait:.1f}s for reset")
            await asyncio.sleep(wait)

    async def _enforce_request_spacing(self) -> None:
        """Delay the caller until the minimum interval has elapsed."""
        now = time.monotonic()
        # Reserve the slot before sleeping so concurrent callers queue up
        scheduled = max(now, self._next_request_at)
        self._next_request_at = scheduled + self.min_request_interval
        wait = scheduled - now
        if wait > 0:
            logger.debug(f"[{self.name}] Request spacing: sleeping {wait * 1000:.0f}ms")
            await asyncio.sleep(wait)

    def _update_rate_limit(self, headers: Mapping[str, str]) -> None:
        """Best-effort ingestion of rate-limit response headers."""
        if self.rate_limit_listener is not None:
            self.rate_limit_listener(headers)
        update = parse_rate_limit_headers(headers)
        if update is None:
            return
        if update.limit is not None:
            self._rate_limit_ceiling = update.limit
        if update.remaining is not None:
            self._rate_limit_remaining = update.remaining
        if update.reset_at is not None:
            self._rate_limit_reset_at = update.reset_at

    async def _execute_request(
        self,
        request_fn: Callable[[], Awaitable[T]],
        operation: str,
    ) -> T:
        """
        Execute a request with pacing, retries and error normalization.

        Args:
            request_fn: Zero-argument coroutine factory performing the call
            operation: Name used in logs and error messages

        Returns:
            Result of request_fn

        Raises:
            ValidationError: Malformed input (never retried)
            ProviderError: Any other failure after the retry policy
        """

        async def paced_attempt() -> T:
            await self._wait_for_rate_limit()
            # No await between the window check and claiming the slot
            self._rate_limit_remaining -= 1
            await self._enforce_request_spacing()
            return await request_fn()

        try:
            return await retry_with_backoff(
                paced_attempt,
                self.retry_config,
                label=f"[{self.name}] {operation}",
            )
        except (ProviderError, ValidationError):
            raise
        except Exception as e:
            raise ProviderError(self.name, f"{operation} failed: {e}") from e

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"


class CachedProvider(BaseProvider):
    """Base class for providers with caching support."""

    def __init__(
        self,
        cache_ttl_seconds: int = 3600,
        **kwargs: Any,
    ):
        """
        Initialize cached provider.

        Args:
            cache_ttl_seconds: Cache time-to-live in seconds
            **kwargs: Passed to BaseProvider
        """
        super().__init__(**kwargs)
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: dict[str, tuple[Any, float]] = {}

    def _get_from_cache(self, key: str) -> Any | None:
        """Get value from cache if not expired."""
        if key in self._cache:
            value, timestamp = self._cache[key]
            if time.time() - timestamp < self.cache_ttl_seconds:
                logger.debug(f"[{self.name}] Cache hit: {key}")
                return value
            else:
                del self._cache[key]
        return None

    def _set_cache(self, key: str, value: Any) -> None:
        """Store value in cache."""
        self._cache[key] = (value, time.time())

    def _invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear_cache(self) -> None:
        """Clear the cache."""
        self._cache.clear()
