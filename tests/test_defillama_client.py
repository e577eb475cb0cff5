"""
Unit tests for the DefiLlama client against a mocked transport.
"""

import httpx
import pytest

from pool_monitor.exceptions import ExternalAPIError
from pool_monitor.services.defillama_client import DefiLlamaClient
from tests.conftest import TOKEN_A

POOLS = [
    {"pool": f"{TOKEN_A}-raydium", "chain": "Solana", "project": "raydium-amm", "symbol": "BONK-SOL", "apy": 12.5, "tvlUsd": 1000000},
    {"pool": "abc-orca", "chain": "Solana", "project": "orca", "symbol": f"{TOKEN_A.lower()}-USDC", "apy": 30.0, "tvlUsd": 50000},
    {"pool": f"{TOKEN_A}-eth", "chain": "Ethereum", "project": "uniswap-v3", "symbol": "X-Y", "apy": 99.0, "tvlUsd": 1},
    {"pool": "unrelated", "chain": "Solana", "project": "kamino", "symbol": "USDC", "apy": 5.0, "tvlUsd": 10},
]


def make_client(handler, rate_limiter, retry_helper):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DefiLlamaClient(rate_limiter, retry_helper, client=http_client)


def pools_handler(request):
    assert request.url.path == "/pools"
    return httpx.Response(200, json={"status": "success", "data": POOLS})


class TestDefiLlamaClient:

    @pytest.mark.asyncio
    async def test_get_all_pools(self, rate_limiter, retry_helper):
        client = make_client(pools_handler, rate_limiter, retry_helper)
        pools = await client.get_all_pools()
        await client.aclose()

        assert len(pools) == 4

    @pytest.mark.asyncio
    async def test_search_matches_substring_on_chain_only(self, rate_limiter, retry_helper):
        client = make_client(pools_handler, rate_limiter, retry_helper)
        matches = await client.search_pools(TOKEN_A)

        assert [pool["pool"] for pool in matches] == [f"{TOKEN_A}-raydium", "abc-orca"]

    @pytest.mark.asyncio
    async def test_best_apy_for_mint(self, rate_limiter, retry_helper):
        client = make_client(pools_handler, rate_limiter, retry_helper)
        best = await client.get_best_apy_for_mint(TOKEN_A)

        assert best == {
            "apy": 30.0,
            "symbol": f"{TOKEN_A.lower()}-USDC",
            "project": "orca",
            "chain": "Solana",
            "pool_id": "abc-orca",
            "tvl": 50000,
            "url": "https://defillama.com/yields/pool/abc-orca",
        }

    @pytest.mark.asyncio
    async def test_best_apy_none_without_match(self, rate_limiter, retry_helper):
        client = make_client(pools_handler, rate_limiter, retry_helper)
        assert await client.get_best_apy_for_mint("NoSuchMint") is None

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_then_raised(self, rate_limiter, retry_helper, sleeps):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        client = make_client(handler, rate_limiter, retry_helper)
        with pytest.raises(ExternalAPIError) as exc_info:
            await client.get_all_pools()

        assert exc_info.value.status_code == 503
        assert len(calls) == 3
        assert sleeps == [1, 2]

    @pytest.mark.asyncio
    async def test_transient_error_recovers(self, rate_limiter, retry_helper):
        responses = [httpx.Response(500), httpx.Response(200, json={"data": POOLS[:1]})]

        client = make_client(lambda request: responses.pop(0), rate_limiter, retry_helper)
        pools = await client.get_all_pools()

        assert len(pools) == 1

    @pytest.mark.asyncio
    async def test_not_found_short_circuits(self, rate_limiter, retry_helper, sleeps):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(404)

        client = make_client(handler, rate_limiter, retry_helper)

        assert await client.get_pool_data("missing") is None
        assert calls == ["/chart/missing"]
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_every_attempt_is_rate_limited(self, retry_helper):
        class CountingLimiter:
            waits = 0

            async def wait(self):
                self.waits += 1

        limiter = CountingLimiter()
        responses = [httpx.Response(500), httpx.Response(200, json={"data": []})]
        client = make_client(lambda request: responses.pop(0), limiter, retry_helper)

        await client.get_all_pools()

        assert limiter.waits == 2

    @pytest.mark.asyncio
    async def test_unexpected_listing_shape_is_empty(self, rate_limiter, retry_helper):
        client = make_client(lambda request: httpx.Response(200, json={"data": {"k": 1}}), rate_limiter, retry_helper)

        assert await client.get_all_pools() == []
        assert await client.get_best_apy_for_mint(TOKEN_A) is None

    @pytest.mark.asyncio
    async def test_non_object_entries_skipped(self, rate_limiter, retry_helper):
        body = {"data": ["junk", None, POOLS[0]]}
        client = make_client(lambda request: httpx.Response(200, json=body), rate_limiter, retry_helper)

        assert await client.get_all_pools() == [POOLS[0]]
