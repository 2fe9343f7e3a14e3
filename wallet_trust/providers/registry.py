"""Health and rate-limit bookkeeping for registered providers."""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Mapping

from ..core.models import ProviderHealthState, RateLimitSnapshot
from .base import parse_rate_limit_headers

if TYPE_CHECKING:
    from .base import BaseProvider

logger = logging.getLogger(__name__)


class ProviderHealthRegistry:
    """
    Tracks health state per provider name.

    Unknown names are reported unhealthy. States are immutable models and
    every mutation swaps in a new one, so readers never see a half-applied
    update.
    """

    def __init__(self):
        self._states: dict[str, ProviderHealthState] = {}

    def register(self, name: str, rate_limit_ceiling: int = 60) -> None:
        """Start tracking a provider as healthy with a full window."""
        self._states[name] = ProviderHealthState(
            healthy=True,
            rate_limit_remaining=rate_limit_ceiling,
            rate_limit_ceiling=rate_limit_ceiling,
        )

    def unregister(self, name: str) -> None:
        self._states.pop(name, None)

    def __contains__(self, name: str) -> bool:
        return name in self._states

    def state(self, name: str) -> ProviderHealthState | None:
        return self._states.get(name)

    def snapshot(self) -> dict[str, ProviderHealthState]:
        """Copy of all states, keyed by provider name."""
        return dict(self._states)

    def is_healthy(self, name: str) -> bool:
        state = self._states.get(name)
        return state is not None and state.healthy

    def _update(self, name: str, **changes) -> None:
        state = self._states.get(name)
        if state is None:
            return
        self._states[name] = state.model_copy(update=changes)

    def mark_unhealthy(self, name: str, error: str) -> None:
        """Record a failure. The provider is skipped until a health check succeeds."""
        if name not in self._states:
            return
        if self.is_healthy(name):
            logger.warning(f"Provider {name} marked unhealthy: {error}")
        self._update(
            name,
            healthy=False,
            last_error=error,
            last_checked_at=datetime.now(timezone.utc),
        )

    def set_health(self, name: str, healthy: bool, error: str | None = None) -> None:
        """Apply a health check result, logging transitions."""
        state = self._states.get(name)
        if state is None:
            return
        if state.healthy != healthy:
            if healthy:
                logger.info(f"Provider {name} recovered")
            else:
                logger.warning(f"Provider {name} failed health check: {error or 'unavailable'}")
        self._update(
            name,
            healthy=healthy,
            last_error=None if healthy else (error or state.last_error),
            last_checked_at=datetime.now(timezone.utc),
        )

    def record_success(self, name: str, rate_limit: RateLimitSnapshot) -> None:
        """Record a successful call, mirroring the provider's rate-limit snapshot."""
        self._update(
            name,
            healthy=True,
            last_error=None,
            rate_limit_remaining=rate_limit.remaining,
            rate_limit_reset_at=rate_limit.reset_at,
        )

    def ingest_rate_limit_headers(self, name: str, headers: Mapping[str, str]) -> None:
        """Update rate-limit fields from response headers. Malformed input is ignored."""
        update = parse_rate_limit_headers(headers)
        if update is None:
            return
        changes: dict = {}
        if update.remaining is not None:
            changes["rate_limit_remaining"] = update.remaining
        if update.reset_at is not None:
            changes["rate_limit_reset_at"] = update.reset_at
        if update.limit is not None:
            changes["rate_limit_ceiling"] = update.limit
        self._update(name, **changes)

    async def refresh_health(self, providers: Iterable["BaseProvider"]) -> None:
        """Check every provider and apply the results."""
        for provider in providers:
            try:
                available = await provider.is_available()
                error = None if available else "Availability check failed"
            except Exception as e:
                available = False
                error = str(e)
            self.set_health(provider.name, available, error)
            if available:
                self.record_success(provider.name, provider.get_rate_limit())
