"""
Jupiter token API client.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from pool_monitor.exceptions import ExternalAPIError
from pool_monitor.services.rate_limiter import RateLimiter
from pool_monitor.services.retry_helper import RetryHelper

logger = logging.getLogger(__name__)


class JupiterClient:
    """Jupiter lite API client for token metadata and prices."""

    BASE_URL = "https://lite-api.jup.ag"
    SERVICE = "Jupiter"

    def __init__(
        self,
        rate_limiter: RateLimiter,
        retry_helper: Optional[RetryHelper] = None,
        base_url: str = BASE_URL,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rate_limiter = rate_limiter
        self.retry_helper = retry_helper or RetryHelper()
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds, connect=5.0))

    async def aclose(self):
        await self._client.aclose()

    async def get_token_info(self, mint_address: str) -> Optional[Dict[str, Any]]:
        """Fetch token information using the search endpoint.

        Args:
            mint_address: Token mint address

        Returns:
            Exact ``id`` match, else the first search result, else None.
        """
        url = f"{self.base_url}/tokens/v2/search"

        async def attempt():
            await self.rate_limiter.wait()
            logger.debug(f"Fetching token info from Jupiter: {mint_address}")
            response = await self._client.get(url, params={"query": mint_address})
            if response.status_code == 404:
                logger.info(f"Token not found on Jupiter: {mint_address}")
                return None
            if not response.is_success:
                raise ExternalAPIError(self.SERVICE, response.status_code)
            return response.json()

        results = await self.retry_helper.with_backoff(attempt)
        if not isinstance(results, list):
            return None

        tokens = [token for token in results if isinstance(token, dict)]
        if not tokens:
            return None

        for token in tokens:
            if token.get("id") == mint_address:
                return token
        return tokens[0]

    async def get_token_price(self, mint_address: str) -> Optional[Dict[str, Any]]:
        """Get price data for a token. The search response already carries the price."""
        token_info = await self.get_token_info(mint_address)
        if token_info and token_info.get("usdPrice"):
            return {
                "price": token_info.get("usdPrice"),
                "fdv": token_info.get("fdv"),
                "mcap": token_info.get("mcap"),
                "liquidity": token_info.get("liquidity"),
            }
        return None

    async def get_full_token_data(self, mint_address: str) -> Optional[Dict[str, Any]]:
        """Get normalized token data combining info and price.

        Never raises: failures are logged and reported as None.
        """
        try:
            token_info = await self.get_token_info(mint_address)
            if not token_info:
                return None
            return self._normalize(token_info)
        except Exception as e:
            logger.error(f"Error fetching token data for {mint_address}: {e}")
            return None

    @staticmethod
    def _normalize(token_info: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "mint_address": token_info.get("id"),
            "symbol": token_info.get("symbol") or "Unknown",
            "name": token_info.get("name") or "Unknown Token",
            "decimals": token_info.get("decimals") if token_info.get("decimals") is not None else 9,
            "price": token_info.get("usdPrice") or 0,
            "logo_uri": token_info.get("icon"),
            "tags": token_info.get("tags") or [],
            "verified": token_info.get("isVerified") or False,
            "market_cap": token_info.get("mcap") or 0,
            "fdv": token_info.get("fdv") or 0,
            "liquidity": token_info.get("liquidity") or 0,
            "holder_count": token_info.get("holderCount") or 0,
            "total_supply": token_info.get("totalSupply") or 0,
            "circ_supply": token_info.get("circSupply") or 0,
            "website": token_info.get("website"),
            "twitter": token_info.get("twitter"),
            "telegram": token_info.get("telegram"),
        }
