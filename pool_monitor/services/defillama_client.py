"""
DefiLlama yields API client.
Provides access to the yield pool listing and per-pool APY history.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from pool_monitor.exceptions import ExternalAPIError
from pool_monitor.services.rate_limiter import RateLimiter
from pool_monitor.services.retry_helper import RetryHelper

logger = logging.getLogger(__name__)


class DefiLlamaClient:
    """DefiLlama yields API client."""

    BASE_URL = "https://yields.llama.fi"
    SERVICE = "DefiLlama"

    def __init__(
        self,
        rate_limiter: RateLimiter,
        retry_helper: Optional[RetryHelper] = None,
        base_url: str = BASE_URL,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize DefiLlama client.

        Args:
            rate_limiter: Limiter gating every request to DefiLlama
            retry_helper: Backoff policy (default: 3 attempts)
            base_url: API root
            timeout_seconds: Per-request timeout
            client: Preconfigured httpx client (tests inject a mock transport)
        """
        self.rate_limiter = rate_limiter
        self.retry_helper = retry_helper or RetryHelper()
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds, connect=5.0))

    async def aclose(self):
        await self._client.aclose()

    async def _get(self, path: str) -> Optional[Any]:
        """GET a path with rate limiting and retries. Returns None on 404."""
        url = f"{self.base_url}{path}"

        async def attempt():
            await self.rate_limiter.wait()
            logger.debug(f"Fetching from DefiLlama: {url}")
            response = await self._client.get(url)
            if response.status_code == 404:
                return None
            if not response.is_success:
                raise ExternalAPIError(self.SERVICE, response.status_code)
            return response.json()

        return await self.retry_helper.with_backoff(attempt)

    async def get_all_pools(self) -> List[Dict[str, Any]]:
        """Fetch the full yield pool listing."""
        data = await self._get("/pools")
        if not isinstance(data, dict):
            return []
        pools = data.get("data")
        if not isinstance(pools, list):
            logger.warning(f"Unexpected DefiLlama pools payload: {type(pools).__name__}")
            return []
        return [pool for pool in pools if isinstance(pool, dict)]

    async def search_pools(self, mint_address: str, chain: str = "Solana") -> List[Dict[str, Any]]:
        """Search pools whose id, symbol or project contains the mint address.

        The listing has no server-side filter, so this is a case-insensitive
        substring match over the bulk listing restricted to ``chain``.
        """
        pools = await self.get_all_pools()
        mint_lower = mint_address.lower()

        matches = []
        for pool in pools:
            if pool.get("chain") != chain:
                continue
            pool_key = str(pool.get("pool") or "").lower()
            symbol = str(pool.get("symbol") or "").lower()
            project = str(pool.get("project") or "").lower()
            if mint_lower in pool_key or mint_lower in symbol or mint_lower in project:
                matches.append(pool)
        return matches

    async def get_pool_data(self, pool_id: str) -> Optional[Dict[str, Any]]:
        """Fetch APY/TVL history for a DefiLlama pool id."""
        return await self._get(f"/chart/{pool_id}")

    async def get_best_apy_for_mint(self, mint_address: str, chain: str = "Solana") -> Optional[Dict[str, Any]]:
        """Get the highest-APY pool matching a mint address.

        Returns:
            Dict with apy, symbol, project, chain, pool_id, tvl, url; None if no match.
        """
        logger.info(f"Searching for APY data for mint: {mint_address}")

        matching_pools = await self.search_pools(mint_address, chain)
        if not matching_pools:
            logger.info(f"No pools found for mint address: {mint_address}")
            return None

        logger.info(f"Found {len(matching_pools)} matching pools for {mint_address}")

        best_pool = max(matching_pools, key=lambda pool: pool.get("apy") or 0)
        logger.info(f"Best APY found: {best_pool.get('apy')}% for {best_pool.get('symbol')} on {best_pool.get('project')}")

        return {
            "apy": best_pool.get("apy"),
            "symbol": best_pool.get("symbol"),
            "project": best_pool.get("project"),
            "chain": best_pool.get("chain"),
            "pool_id": best_pool.get("pool"),
            "tvl": best_pool.get("tvlUsd"),
            "url": f"https://defillama.com/yields/pool/{best_pool.get('pool')}",
        }
