"""Etherscan provider for Ethereum wallet and contract data.

Wallet facts come from the account transaction list; launched tokens are
the contracts the wallet deployed, with names and symbols taken from the
wallet's token transfers.
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
    normalize_evm_address,
)
from .retry import RetryConfig

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class EtherscanProvider(CachedProvider):
    """Fetches Ethereum wallet history from the Etherscan v2 API."""

    NAME = "etherscan"
    CHAIN = Chain.ETHEREUM
    BASE_URL = "https://api.etherscan.io/v2/api"
    CHAIN_ID = "1"  # Ethereum mainnet

    # Receipt lookups per discovery, to bound API usage
    MAX_CREATION_RECEIPTS = 20

    def __init__(
        self,
        api_key: str,
        priority: int = 1,
        max_requests_per_second: float | None = 2.5,
        max_requests_per_minute: int = 100,
        cache_ttl_seconds: int = 300,
        retry_config: RetryConfig | None = None,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ):
        """
        Initialize Etherscan provider.

        Args:
            api_key: Etherscan API key
            priority: Selection order among Ethereum providers
            max_requests_per_second: Free tier allows 3/sec
            max_requests_per_minute: Window ceiling
            cache_ttl_seconds: TTL for discovered token lists
            retry_config: Backoff policy override
            client: Shared HTTP client (created lazily if omitted)
            base_url: API endpoint override
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
        self.base_url = base_url or self.BASE_URL
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=15.0)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def is_available(self) -> bool:
        """Check the API with a cheap balance lookup."""
        if not self._is_within_rate_limit():
            return False
        try:
            response = await self.client.get(
                self.base_url,
                params={
                    "chainid": self.CHAIN_ID,
                    "module": "account",
                    "action": "balance",
                    "address": ZERO_ADDRESS,
                    "tag": "latest",
                    "apikey": self.api_key,
                },
                timeout=5.0,
            )
            if response.status_code != 200:
                return False
            data = response.json()
            # NOTOK means the key or request was rejected
            if str(data.get("message") or "").startswith("NOTOK"):
                logger.warning(f"Etherscan availability check rejected: {data.get('result')}")
                return False
            # status "0" is still a well-formed answer
            return data.get("status") in ("0", "1")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Etherscan availability check failed: {e}")
            return False

    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        """Single API call. Raises ProviderError subclasses on failure."""
        endpoint = f"{params.get('module')}/{params.get('action')}"
        query = {"chainid": self.CHAIN_ID, **params, "apikey": self.api_key}

        response = await self.client.get(self.base_url, params=query)
        self._update_rate_limit(response.headers)

        if response.status_code == 429:
            raise RateLimitError(
                self.name,
                retry_after_seconds=_float_or_none(response.headers.get("retry-after")),
                endpoint=endpoint,
            )
        if response.status_code >= 400:
            raise ProviderError(
                self.name,
                f"HTTP {response.status_code}",
                endpoint=endpoint,
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(self.name, "Invalid JSON response", endpoint=endpoint) from e

        message = str(data.get("message") or "")
        result = data.get("result")
        result_text = result if isinstance(result, str) else ""

        if "rate limit" in message.lower() or "rate limit" in result_text.lower():
            raise RateLimitError(self.name, endpoint=endpoint)

        if data.get("status") == "0":
            # An empty history is a valid answer, not an error
            if "No transactions found" in message or "No transactions found" in result_text:
                return {**data, "result": []}
            if message.startswith("NOTOK"):
                raise ProviderError(self.name, result_text or "API error", endpoint=endpoint)

        return data

    async def _make_request(self, params: dict[str, str], operation: str) -> dict[str, Any]:
        return await self._execute_request(lambda: self._request(params), operation)

    async def _account_history(self, action: str, address: str) -> list[dict[str, Any]]:
        data = await self._make_request(
            {
                "module": "account",
                "action": action,
                "address": address,
                "startblock": "0",
                "endblock": "99999999",
                "sort": "asc",
            },
            action,
        )
        result = data.get("result")
        return result if isinstance(result, list) else []

    async def get_wallet_info(self, address: str) -> WalletInfo:
        """Wallet age and transaction count from the full transaction list."""
        address = normalize_evm_address(address)
        txs = await self._account_history("txlist", address)
        if not txs:
            return WalletInfo(created_at=None, first_tx_hash=None, tx_count=0, age=None)

        first = txs[0]
        created = datetime_from_unix(first.get("timeStamp"))
        return WalletInfo(
            created_at=iso_from_unix(first.get("timeStamp")),
            first_tx_hash=first.get("hash"),
            tx_count=len(txs),
            age=format_age(created) if created else None,
        )

    async def get_tokens_created(
        self,
        address: str,
        force_refresh: bool = False,
        manual_tokens: list[str] | None = None,
    ) -> list[TokenSummary]:
        """
        Tokens deployed by the wallet.

        Manual tokens, when given, replace discovery: each is checked
        against its recorded contract creator and returned with a
        verification flag.
        """
        address = normalize_evm_address(address)
        if manual_tokens:
            logger.info(f"[{self.name}] Analyzing {len(manual_tokens)} manual token(s)")
            return [await self._manual_token(token, address) for token in manual_tokens]

        cache_key = f"tokens:{address}"
        if force_refresh:
            self._invalidate(cache_key)
        else:
            cached = self._get_from_cache(cache_key)
            if cached is not None:
                return cached

        tokens = await self._discover_tokens(address)
        self._set_cache(cache_key, tokens)
        return tokens

    async def _discover_tokens(self, address: str) -> list[TokenSummary]:
        token_txs = await self._account_history("tokentx", address)
        txs = await self._account_history("txlist", address)

        # Token transfers only supply metadata; they do not prove creation
        metadata: dict[str, dict[str, Any]] = {}
        for tx in token_txs:
            contract = (tx.get("contractAddress") or "").lower()
            if contract and contract not in metadata:
                metadata[contract] = tx

        creations = [
            tx
            for tx in txs
            if (not tx.get("to") or tx.get("to") == ZERO_ADDRESS)
            and len(tx.get("input") or "") > 2
        ]
        logger.info(f"[{self.name}] Found {len(creations)} contract creation transaction(s)")

        tokens: dict[str, TokenSummary] = {}
        receipts_fetched = 0
        for tx in creations:
            contract = (tx.get("contractAddress") or "").lower()
            if not contract and receipts_fetched < self.MAX_CREATION_RECEIPTS:
                receipts_fetched += 1
                contract = await self._contract_from_receipt(tx.get("hash"))
            if not contract or contract == ZERO_ADDRESS or contract in tokens:
                continue

            meta = metadata.get(contract, {})
            tokens[contract] = TokenSummary(
                token=contract,
                name=meta.get("tokenName") or None,
                symbol=meta.get("tokenSymbol") or None,
                creator=address,
                launch_at=iso_from_unix(tx.get("timeStamp")),
            )

        logger.info(f"[{self.name}] Total contracts created by wallet: {len(tokens)}")
        return list(tokens.values())

    async def _contract_from_receipt(self, tx_hash: str | None) -> str:
        if not tx_hash:
            return ""
        try:
            data = await self._make_request(
                {"module": "proxy", "action": "eth_getTransactionReceipt", "txhash": tx_hash},
                "receipt",
            )
        except ProviderError as e:
            logger.warning(f"[{self.name}] Could not fetch receipt for {tx_hash}: {e}")
            return ""
        receipt = data.get("result")
        if not isinstance(receipt, dict):
            return ""
        return (receipt.get("contractAddress") or "").lower()

    async def _manual_token(self, token: str, wallet: str) -> TokenSummary:
        token = normalize_evm_address(token)
        verified: bool | None = None
        warning: str | None = None
        launch_at: str | None = None

        try:
            data = await self._make_request(
                {
                    "module": "contract",
                    "action": "getcontractcreation",
                    "contractaddresses": token,
                },
                "getcontractcreation",
            )
            result = data.get("result")
            creation = result[0] if isinstance(result, list) and result else None
            creator = ((creation or {}).get("contractCreator") or "").lower()
            if not creator:
                verified = False
                warning = "Could not verify: contract creator not found"
            else:
                verified = creator == wallet
                if not verified:
                    warning = "Token was not created by the analyzed wallet"
                launch_at = iso_from_unix(creation.get("timestamp"))
        except ProviderError as e:
            logger.warning(f"[{self.name}] Creator verification failed for {token}: {e}")
            warning = "Could not verify token creator due to API error"

        name = symbol = None
        try:
            data = await self._make_request(
                {
                    "module": "account",
                    "action": "tokentx",
                    "contractaddress": token,
                    "page": "1",
                    "offset": "1",
                    "sort": "asc",
                },
                "tokentx",
            )
            transfers = data.get("result")
            if isinstance(transfers, list) and transfers:
                name = transfers[0].get("tokenName") or None
                symbol = transfers[0].get("tokenSymbol") or None
        except ProviderError as e:
            logger.warning(f"[{self.name}] Could not fetch metadata for {token}: {e}")

        return TokenSummary(
            token=token,
            name=name,
            symbol=symbol,
            creator=wallet,
            launch_at=launch_at,
            verified=verified,
            verification_warning=warning,
        )


def _float_or_none(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
