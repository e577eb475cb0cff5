"""
Read-side services over stored pools.
"""

import logging
from typing import Any, Dict, List, Optional

from pool_monitor.database.operations import PoolRepository
from pool_monitor.models import Pool
from pool_monitor.services.webhook_handler import WebhookHandler

logger = logging.getLogger(__name__)


def serialize_pool(pool: Pool) -> Dict[str, Any]:
    return {
        "id": pool.id,
        "tokenA": pool.token_a,
        "tokenB": pool.token_b,
        "poolAddress": pool.pool_address,
        "signature": pool.signature,
        "source": pool.source,
        "apy": pool.apy,
        "tvl": pool.tvl,
        "volume24h": pool.volume_24h,
        "apyProject": pool.apy_project,
        "apyUrl": pool.apy_url,
        "addressIsFallback": pool.address_is_fallback,
        "timestamp": pool.timestamp.isoformat() if pool.timestamp else None,
        "createdAt": pool.created_at.isoformat() if pool.created_at else None,
    }


def _listing(pools: List[Pool]) -> Dict[str, Any]:
    return {"total": len(pools), "pools": [serialize_pool(pool) for pool in pools]}


class PoolQueryService:
    """Serves pool listings for the read API."""

    def __init__(self, repository: PoolRepository, pools_limit: int = 50, apy_pools_limit: int = 25):
        self.repository = repository
        self.pools_limit = pools_limit
        self.apy_pools_limit = apy_pools_limit

    def list_pools(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """Most recently stored pools."""
        return _listing(self.repository.get_all_pools(limit or self.pools_limit))

    def list_pools_with_apy(self, limit: Optional[int] = None) -> Dict[str, Any]:
        """Pools with APY data, highest APY first."""
        pools = self.repository.get_pools_with_apy(limit or self.apy_pools_limit)
        return _listing([pool for pool in pools if pool.apy is not None])


class ApyRefresher:
    """Re-queries DefiLlama for pools that are already stored."""

    def __init__(self, repository: PoolRepository, handler: WebhookHandler):
        self.repository = repository
        self.handler = handler

    async def refresh_pool(self, pool_address: str) -> Optional[Dict[str, Any]]:
        """Refresh APY/TVL of one pool.

        Returns:
            None if the pool is unknown, else ``{"updated": bool, "pool": {...}}``
        """
        pool = self.repository.get_pool_by_address(pool_address)
        if pool is None:
            return None

        apy_data = await self.handler.fetch_apy(pool.token_a, pool.token_b)
        if not apy_data:
            logger.info(f"No APY data found while refreshing {pool_address}")
            return {"updated": False, "pool": serialize_pool(pool)}

        pool = self.repository.update_pool_apy(pool_address, apy_data)
        return {"updated": True, "pool": serialize_pool(pool)}
