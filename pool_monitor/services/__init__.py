"""
Ingestion and enrichment services for the Solana pool monitor.
"""

from .defillama_client import DefiLlamaClient
from .jupiter_client import JupiterClient
from .rate_limiter import RateLimiter
from .retry_helper import RetryHelper
from .transaction_parser import PoolCandidate, TransactionParser
from .webhook_handler import ProcessingStatus, WebhookHandler

__all__ = [
    "DefiLlamaClient",
    "JupiterClient",
    "PoolCandidate",
    "ProcessingStatus",
    "RateLimiter",
    "RetryHelper",
    "TransactionParser",
    "WebhookHandler",
]
