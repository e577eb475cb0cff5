"""
Tests for the pool repository against an in-memory database.
"""

from datetime import datetime, timezone

import pytest

from pool_monitor.exceptions import DuplicatePoolError, RepositoryError
from tests.conftest import TOKEN_A, TOKEN_B


def pool_data(address, signature=None, **extra):
    data = {
        "token_a": TOKEN_A,
        "token_b": TOKEN_B,
        "pool_address": address,
        "signature": signature or f"sig-{address}",
        "source": "RAYDIUM",
        "timestamp": datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc),
    }
    data.update(extra)
    return data


class TestStorePool:

    def test_store_and_exists(self, repository):
        assert repository.pool_exists("PoolAcct") is False

        pool = repository.store_pool(pool_data("PoolAcct"))

        assert pool.id is not None
        assert pool.source == "RAYDIUM"
        assert pool.address_is_fallback is False
        assert pool.created_at is not None
        assert repository.pool_exists("PoolAcct") is True
        assert repository.count_pools() == 1

    def test_missing_source_defaults_to_unknown(self, repository):
        pool = repository.store_pool(pool_data("PoolAcct", source=None))
        assert pool.source == "unknown"

    def test_duplicate_address_rejected(self, repository):
        repository.store_pool(pool_data("PoolAcct", signature="sig1"))

        with pytest.raises(DuplicatePoolError):
            repository.store_pool(pool_data("PoolAcct", signature="sig2"))
        assert repository.count_pools() == 1

    def test_duplicate_signature_rejected(self, repository):
        repository.store_pool(pool_data("PoolOne", signature="sig1"))

        with pytest.raises(DuplicatePoolError):
            repository.store_pool(pool_data("PoolTwo", signature="sig1"))

    def test_repository_usable_after_duplicate(self, repository):
        repository.store_pool(pool_data("PoolAcct"))
        with pytest.raises(DuplicatePoolError):
            repository.store_pool(pool_data("PoolAcct"))

        repository.store_pool(pool_data("OtherPool"))
        assert repository.count_pools() == 2


class TestStoreEvent:

    def test_event_keeps_raw_data(self, repository):
        pool = repository.store_pool(pool_data("PoolAcct"))
        snapshot = {"token_a": TOKEN_A, "apy_data": None, "token_a_info": {"symbol": "BONK"}}

        event = repository.store_event({
            "pool_id": pool.id,
            "signature": pool.signature,
            "raw_data": snapshot,
        })

        events = repository.get_pool_events(pool.id)
        assert [e.id for e in events] == [event.id]
        assert events[0].event_type == "created"
        assert events[0].raw_data == snapshot

    def test_duplicate_event_signature_rejected(self, repository):
        pool = repository.store_pool(pool_data("PoolAcct"))
        repository.store_event({"pool_id": pool.id, "signature": "sig1"})

        with pytest.raises(DuplicatePoolError):
            repository.store_event({"pool_id": pool.id, "signature": "sig1"})


class TestQueries:

    def test_all_pools_newest_first_with_limit(self, repository):
        for address in ("First", "Second", "Third"):
            repository.store_pool(pool_data(address))

        pools = repository.get_all_pools(limit=2)

        assert [pool.pool_address for pool in pools] == ["Third", "Second"]

    def test_pools_with_apy_excludes_missing_and_sorts(self, repository):
        repository.store_pool(pool_data("Low", apy=3.5))
        repository.store_pool(pool_data("NoApy"))
        repository.store_pool(pool_data("High", apy=42.0))
        repository.store_pool(pool_data("Zero", apy=0.0))

        pools = repository.get_pools_with_apy()

        assert [pool.pool_address for pool in pools] == ["High", "Low", "Zero"]
        assert all(pool.apy is not None for pool in pools)

    def test_get_pool_by_address(self, repository):
        repository.store_pool(pool_data("PoolAcct"))

        assert repository.get_pool_by_address("PoolAcct").signature == "sig-PoolAcct"
        assert repository.get_pool_by_address("Missing") is None


class TestUpdateApy:

    def test_update_pool_apy(self, repository):
        repository.store_pool(pool_data("PoolAcct"))

        pool = repository.update_pool_apy("PoolAcct", {
            "apy": 12.5,
            "tvl": 1000000,
            "project": "raydium-amm",
            "pool_id": "abc",
            "url": "https://defillama.com/yields/pool/abc",
        })

        assert pool.apy == 12.5
        assert pool.apy_project == "raydium-amm"
        assert pool.updated_at is not None
        assert [p.pool_address for p in repository.get_pools_with_apy()] == ["PoolAcct"]

    def test_update_unknown_pool(self, repository):
        with pytest.raises(RepositoryError):
            repository.update_pool_apy("Missing", {"apy": 1.0})
