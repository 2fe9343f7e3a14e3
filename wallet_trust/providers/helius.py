"""Helius provider for Solana wallet and mint data.

Uses Solana JSON-RPC for the wallet's signature history and the DAS
``getAssetsByAuthority`` method to find fungible mints the wallet controls.
"""

import logging
from typing import Any

import httpx

from ..core.exceptions import ProviderError, RateLimitError
from ..core.models import TokenSummary, WalletInfo
from ..core.types import Chain
from .base import (
    CachedProvider,
    datetime_from_unix,
    format_age,
    iso_from_unix,
    normalize_solana_address,
)
from .retry import RetryConfig

logger = logging.getLogger(__name__)

FUNGIBLE_INTERFACES = ("FungibleToken", "FungibleAsset")


class HeliusProvider(CachedProvider):
    """Fetches Solana wallet history from the Helius RPC."""

    NAME = "helius"
    CHAIN = Chain.SOLANA
    RPC_URL = "https://mainnet.helius-rpc.com/"

    SIGNATURE_PAGE_SIZE = 1000
    MAX_SIGNATURE_PAGES = 50  # 50,000 transactions
    ASSET_PAGE_SIZE = 1000
    MAX_ASSET_PAGES = 10

    def __init__(
        self,
        api_key: str,
        priority: int = 1,
        max_requests_per_second: float | None = 10,
        max_requests_per_minute: int = 600,
        cache_ttl_seconds: int = 300,
        retry_config: RetryConfig | None = None,
        client: httpx.AsyncClient | None = None,
        rpc_url: str | None = None,
    ):
        """
        Initialize Helius provider.

        Args:
            api_key: Helius API key
            priority: Selection order among Solana providers
            max_requests_per_second: Request spacing
            max_requests_per_minute: Window ceiling
            cache_ttl_seconds: TTL for discovered token lists
            retry_config: Backoff policy override
            client: Shared HTTP client (created lazily if omitted)
            rpc_url: RPC endpoint override
        """
        super().__init__(
            cache_ttl_seconds=cache_ttl_seconds,
            name=self.NAME,
            priority=priority,
            max_requests_per_second=max_requests_per_second,
            max_requests_per_minute=max_requests_per_minute,
            retry_config=retry_config,
        )
        self.api_key = api_key
        self.rpc_url = rpc_url or self.RPC_URL
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=30.0)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def is_available(self) -> bool:
        """Check the RPC node with getHealth."""
        if not self.api_key or not self._is_within_rate_limit():
            return False
        try:
            response = await self.client.post(
                self.rpc_url,
                params={"api-key": self.api_key},
                json={"jsonrpc": "2.0", "id": 1, "method": "getHealth"},
                timeout=5.0,
            )
            return response.status_code == 200 and response.json().get("result") == "ok"
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Helius availability check failed: {e}")
            return False

    async def _rpc(self, method: str, params: Any) -> Any:
        """Single JSON-RPC call returning ``result``."""
        response = await self.client.post(
            self.rpc_url,
            params={"api-key": self.api_key},
            json={"jsonrpc": "2.0", "id": method, "method": method, "params": params},
        )
        self._update_rate_limit(response.headers)

        if response.status_code == 429:
            raise RateLimitError(self.name, endpoint=method)
        if response.status_code >= 400:
            raise ProviderError(
                self.name,
                f"HTTP {response.status_code}",
                endpoint=method,
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.name, "Invalid JSON response", endpoint=method) from e

        error = data.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            if "rate limit" in message.lower():
                raise RateLimitError(self.name, endpoint=method)
            raise ProviderError(self.name, f"RPC error: {message}", endpoint=method)
        return data.get("result")

    async def _call(self, method: str, params: Any) -> Any:
        return await self._execute_request(lambda: self._rpc(method, params), method)

    async def _all_signatures(self, address: str) -> list[dict[str, Any]]:
        """Signature history, newest first, paging backwards."""
        signatures: list[dict[str, Any]] = []
        before: str | None = None
        for page in range(self.MAX_SIGNATURE_PAGES):
            options: dict[str, Any] = {"limit": self.SIGNATURE_PAGE_SIZE}
            if before:
                options["before"] = before
            batch = await self._call("getSignaturesForAddress", [address, options]) or []
            logger.debug(f"[{self.name}] Signatures page {page}: {len(batch)}")
            if not batch:
                break
            signatures.extend(batch)
            before = batch[-1].get("signature")
            if len(batch) < self.SIGNATURE_PAGE_SIZE:
                break
        else:
            logger.warning(
                f"[{self.name}] Signature history for {address} truncated at {len(signatures)}"
            )
        return signatures

    async def _all_assets(self, address: str) -> list[dict[str, Any]]:
        """Assets under the wallet's authority, following DAS pagination."""
        items: list[dict[str, Any]] = []
        for page in range(1, self.MAX_ASSET_PAGES + 1):
            result = await self._call(
                "getAssetsByAuthority",
                {"authorityAddress": address, "page": page, "limit": self.ASSET_PAGE_SIZE},
            )
            batch = (result or {}).get("items") or []
            items.extend(batch)
            if len(batch) < self.ASSET_PAGE_SIZE:
                break
        else:
            logger.warning(
                f"[{self.name}] Asset list for {address} truncated at {len(items)}"
            )
        return items

    async def get_wallet_info(self, address: str) -> WalletInfo:
        """Wallet age from the oldest signature; tx count from the full history."""
        address = normalize_solana_address(address)
        signatures = await self._all_signatures(address)
        if not signatures:
            return WalletInfo(created_at=None, first_tx_hash=None, tx_count=0, age=None)

        oldest = signatures[-1]
        created = datetime_from_unix(oldest.get("blockTime"))
        return WalletInfo(
            created_at=iso_from_unix(oldest.get("blockTime")),
            first_tx_hash=oldest.get("signature"),
            tx_count=len(signatures),
            age=format_age(created) if created else None,
        )

    async def get_tokens_created(
        self,
        address: str,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
    ) -> list[TokenSummary]:
        """Fungible mints where the wallet is the update/mint authority.

        Solana always uses automatic discovery; manual tokens are ignored.
        """
        address = normalize_solana_address(address)
        if manual_tokens:
            logger.info(f"[{self.name}] Manual tokens ignored for Solana, using automatic discovery")

        cache_key = f"tokens:{address}"
        if force_refresh:
            self._invalidate(cache_key)
        else:
            cached = self._get_from_cache(cache_key)
            if cached is not None:
                return cached

        items = await self._all_assets(address)

        tokens: dict[str, TokenSummary] = {}
        for asset in items:
            mint = asset.get("id")
            if not mint or mint in tokens or asset.get("interface") not in FUNGIBLE_INTERFACES:
                continue
            metadata = (asset.get("content") or {}).get("metadata") or {}
            tokens[mint] = TokenSummary(
                token=mint,
                name=metadata.get("name") or None,
                symbol=metadata.get("symbol") or None,
                creator=address,
                launch_at=asset.get("created_at"),
            )

        logger.info(f"[{self.name}] Found {len(tokens)} fungible mint(s) for {address}")
        found = list(tokens.values())
        self._set_cache(cache_key, found)
        return found
