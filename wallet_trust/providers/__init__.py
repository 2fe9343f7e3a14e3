"""Chain-data providers for wallet trust scoring.

This module contains:
- The provider contract with request pacing and retries (base, retry)
- Health and rate-limit bookkeeping (registry)
- Ethereum wallet and contract data (Etherscan)
- Solana wallet and mint data (Helius)
"""

from .base import BaseProvider, CachedProvider, parse_rate_limit_headers
from .etherscan import EtherscanProvider
from .helius import HeliusProvider
from .registry import ProviderHealthRegistry
from .retry import RetryConfig, retry_with_backoff

__all__ = [
    "BaseProvider",
    "CachedProvider",
    "parse_rate_limit_headers",
    "EtherscanProvider",
    "HeliusProvider",
    "ProviderHealthRegistry",
    "RetryConfig",
    "retry_with_backoff",
]
