"""Wallet analysis pipeline.

Fetches wallet facts and launched tokens concurrently through the
orchestrator, classifies each token, scores the wallet and packages the
result with metadata about how it was produced.

Usage:
    from wallet_trust.analyzer import WalletAnalyzer
    from wallet_trust.orchestrator import create_default_orchestrator

    analyzer = WalletAnalyzer(create_default_orchestrator(get_config()))
    analysis = await analyzer.analyze("0x...")
    print(analysis.score)
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import TypeVar

from . import __version__
from .core.exceptions import ValidationError
from .core.models import AnalysisMetadata, TokenLaunchSummary, WalletAnalysis, WalletInfo
from .core.types import Chain
from .orchestrator import ProviderCallResult, ProviderOrchestrator
from .providers.base import normalize_evm_address, normalize_solana_address
from .scoring.composite import compute_score
from .scoring.outcome import classify_tokens

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANALYSIS_CACHE_TTL_SECONDS = 300


def analysis_cache_key(address: str, chain: Chain | str) -> str:
    """Cache key for a wallet analysis: ``analysis:{chain}:{address}``."""
    return f"analysis:{Chain(chain).value}:{address.strip().lower()}"


def normalize_address(address: str, chain: Chain | str | None = None) -> tuple[str, Chain]:
    """
    Validate an address and resolve its chain.

    Raises:
        ValidationError: If the address is malformed or the chain can't be detected
    """
    address = (address or "").strip()
    resolved = Chain(chain) if chain else Chain.detect(address)
    if resolved is None:
        raise ValidationError("address", address, "not a valid Ethereum or Solana address")
    if resolved == Chain.ETHEREUM:
        return normalize_evm_address(address), resolved
    return normalize_solana_address(address), resolved


class WalletAnalyzer:
    """Runs the fetch, classify and score pipeline for one wallet at a time."""

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        cache_ttl_seconds: int = ANALYSIS_CACHE_TTL_SECONDS,
    ):
        self.orchestrator = orchestrator
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: dict[str, tuple[WalletAnalysis, float]] = {}

    def _get_cached(self, key: str) -> WalletAnalysis | None:
        if key in self._cache:
            analysis, stored_at = self._cache[key]
            if time.time() - stored_at < self.cache_ttl_seconds:
                return analysis
            del self._cache[key]
        return None

    def clear_cache(self) -> None:
        self._cache.clear()

    @staticmethod
    def _resolve(result: ProviderCallResult[T] | BaseException, default: T, operation: str):
        """Unpack one side of the concurrent fetch, isolating its failure."""
        if isinstance(result, ValidationError):
            raise result
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning(f"{operation} failed unexpectedly, using defaults: {result}")
            return default, None
        return result.value, result.provider

    async def analyze(
        self,
        address: str,
        chain: Chain | str | None = None,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
        now: datetime | None = None,
    ) -> WalletAnalysis:
        """
        Analyze a wallet and compute its trust score.

        Args:
            address: Wallet address (Ethereum or Solana)
            chain: Chain override; detected from the address format if omitted
            force_refresh: Bypass cached analyses and provider caches
            manual_tokens: Token addresses to analyze instead of discovery
                (Ethereum only; ignored on Solana)
            now: Reference time for wallet age

        Returns:
            WalletAnalysis with score, wallet facts and token summary

        Raises:
            ValidationError: If the address is malformed
        """
        address, chain = normalize_address(address, chain)
        manual_tokens = [t.strip() for t in manual_tokens or [] if t and t.strip()]
        manual_mode = bool(manual_tokens) and chain == Chain.ETHEREUM

        key = analysis_cache_key(address, chain)
        if not force_refresh and not manual_tokens:
            cached = self._get_cached(key)
            if cached is not None:
                logger.info(f"Using cached analysis for {address}")
                return cached.model_copy(
                    update={"metadata": cached.metadata.model_copy(update={"data_freshness": "cached"})}
                )

        logger.info(f"Analyzing {chain.value} wallet {address}")
        started = time.perf_counter()

        wallet_result, tokens_result = await asyncio.gather(
            self.orchestrator.fetch_wallet_info(address, chain),
            self.orchestrator.fetch_tokens_created(
                address, chain, force_refresh, manual_tokens or None
            ),
            return_exceptions=True,
        )
        wallet_info, wallet_provider = self._resolve(
            wallet_result, WalletInfo.unknown(), "Wallet info"
        )
        tokens, tokens_provider = self._resolve(tokens_result, [], "Token discovery")

        classified = classify_tokens(tokens)
        scoring = compute_score(wallet_info, classified, now=now)

        providers_used = []
        for name in (wallet_provider, tokens_provider):
            if name and name not in providers_used:
                providers_used.append(name)

        analysis = WalletAnalysis(
            address=address,
            chain=chain,
            scoring=scoring,
            wallet_info=wallet_info,
            token_launch_summary=TokenLaunchSummary.from_tokens(classified),
            metadata=AnalysisMetadata(
                processing_time=int((time.perf_counter() - started) * 1000),
                data_freshness="fresh",
                providers_used=providers_used,
                discovery_mode="manual" if manual_mode else "automatic",
            ),
            tool_version=__version__,
        )

        logger.info(
            f"Score for {address}: {scoring.score} "
            f"(confidence {scoring.confidence.level.value}, {len(classified)} token(s))"
        )
        if not manual_tokens:
            self._cache[key] = (analysis, time.time())
        return analysis
