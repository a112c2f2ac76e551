"""Trending token feed backed by the DexScreener public API.

Fetches all pairs for each watched token address, normalizes them into
TokenInfo entries, deduplicates by base token address and keeps the result
in a process-scoped TokenCache for a short TTL.
"""

import time
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from tokenrelay.config import Settings
from tokenrelay.logging import ErrorType
from tokenrelay.models import TokenInfo
from tokenrelay.services.error_logger import get_error_logger

logger = structlog.get_logger()

USER_AGENT = "tokenrelay/0.1"


class TokenCache:
    """Last fetched token list with its refresh time."""

    def __init__(self, ttl_seconds: int = 60):
        self.ttl_seconds = ttl_seconds
        self._tokens: list[TokenInfo] = []
        self._updated_at: float = 0.0

    def is_fresh(self) -> bool:
        return self._updated_at > 0 and (time.time() - self._updated_at) <= self.ttl_seconds

    def get(self) -> list[TokenInfo]:
        return list(self._tokens)

    def update(self, tokens: list[TokenInfo]) -> None:
        self._tokens = list(tokens)
        self._updated_at = time.time()


class TokenFeed:
    """DexScreener client with TTL caching."""

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        cache: TokenCache | None = None,
    ) -> None:
        """Initialize the feed.

        Args:
            settings: Application settings (base URL, watched tokens, TTL)
            client: HTTP client to use (created on first request if omitted)
            cache: Token cache (created from settings if omitted)
        """
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self.cache = cache or TokenCache(ttl_seconds=settings.token_cache_ttl_seconds)
        self._log = logger.bind(service="token_feed")

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this feed created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def fetch_pairs(self, token_address: str) -> list[dict[str, Any]]:
        """Fetch all DexScreener pairs for one token.

        Errors are logged and yield an empty list.

        Args:
            token_address: Solana token mint address

        Returns:
            List of raw pair objects
        """
        url = f"{self._settings.dexscreener_base_url}/token-pairs/v1/solana/{token_address}"

        try:
            response = await self._get_client().get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            get_error_logger().log_feed_error(
                ErrorType.FEED_ERROR,
                "DexScreener returned an error status",
                request_url=url,
                response_status=e.response.status_code,
                exception=e,
            )
            return []
        except (httpx.HTTPError, ValueError) as e:
            get_error_logger().log_feed_error(
                ErrorType.FEED_ERROR,
                "DexScreener request failed",
                request_url=url,
                exception=e,
            )
            return []

        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("pairs"), list):
            return data["pairs"]
        return []

    async def fetch_token_list(self) -> list[TokenInfo]:
        """Fetch and normalize pairs for every watched token.

        Returns:
            Tokens deduplicated by base address, in fetch order
        """
        tokens: list[TokenInfo] = []
        seen: set[str] = set()

        for address in self._settings.watched_token_list:
            for pair in await self.fetch_pairs(address):
                if not isinstance(pair, dict):
                    continue
                try:
                    token = TokenInfo.from_dexscreener_pair(pair)
                except ValidationError:
                    continue
                if token.address in seen:
                    continue
                seen.add(token.address)
                tokens.append(token)

        self._log.debug("Token list fetched", count=len(tokens))
        return tokens

    async def get_tokens(self, force_update: bool = False) -> list[TokenInfo]:
        """Return the cached token list, refreshing it when stale.

        Args:
            force_update: Refresh even if the cache is still fresh

        Returns:
            Current token list
        """
        if force_update or not self.cache.is_fresh():
            self.cache.update(await self.fetch_token_list())
        return self.cache.get()
