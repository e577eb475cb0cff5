import pytest

from pool_monitor.config.settings import DatabaseConfig
from pool_monitor.database.connection import DatabaseConnection
from pool_monitor.database.operations import PoolRepository
from pool_monitor.services.rate_limiter import RateLimiter
from pool_monitor.services.retry_helper import RetryHelper

TOKEN_A = "FG1FCUKQRLtojGvvdGXwjKcDWbbP6T3u2tchkMoqbonk"
TOKEN_B = "CkD3w5PhtfMSgoGX8JVySRdJQ9PTiW6k5a8JF9KSWxuj"
SOL_MINT = "So11111111111111111111111111111111111111112"


def make_transaction(**overrides):
    """Pool creation transaction shaped like a Helius enhanced webhook entry."""
    transaction = {
        "type": "CREATE_POOL",
        "source": "RAYDIUM",
        "signature": "sig1",
        "timestamp": 1700000000,
        "feePayer": "feePayer",
        "tokenTransfers": [
            {"mint": TOKEN_A, "tokenAmount": 1000},
            {"mint": SOL_MINT, "tokenAmount": 5},
            {"mint": TOKEN_B, "tokenAmount": 2000},
        ],
        "accounts": ["feePayer", "PoolAcct", TOKEN_A, TOKEN_B],
    }
    transaction.update(overrides)
    return transaction


@pytest.fixture
def db():
    connection = DatabaseConnection(DatabaseConfig(url="sqlite://"))
    connection.create_all_tables()
    yield connection
    connection.dispose()


@pytest.fixture
def repository(db):
    return PoolRepository(db)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry_helper(sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return RetryHelper(max_retries=3, sleep=fake_sleep)


@pytest.fixture
def rate_limiter():
    return RateLimiter(delay_ms=0, name="test")
