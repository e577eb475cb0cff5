"""
Webhook handler for processing Solana transaction notifications.

Each transaction of a payload goes through parse -> de-duplication ->
enrichment -> persistence, strictly one after the other. A failure on one
transaction is logged and reported in its result; the rest of the batch
still runs.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pool_monitor.database.operations import PoolRepository
from pool_monitor.exceptions import DuplicatePoolError
from pool_monitor.services.archive import WebhookArchive
from pool_monitor.services.defillama_client import DefiLlamaClient
from pool_monitor.services.jupiter_client import JupiterClient
from pool_monitor.services.transaction_parser import ParseStatus, PoolCandidate, TransactionParser

logger = logging.getLogger(__name__)

ACCEPTED_TRANSACTION_TYPES = ("ENHANCED_TRANSACTION", "CREATE_POOL")


def _as_float(value: Any) -> Optional[float]:
    """Numeric enrichment value, or None when the upstream value is not a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ProcessingStatus(str, Enum):
    SKIPPED_TYPE = "skipped_type"
    NOT_A_POOL = "not_a_pool"
    PARSE_ERROR = "parse_error"
    DUPLICATE = "duplicate"
    SAVED = "saved"
    FAILED = "failed"


@dataclass
class ProcessingResult:
    status: ProcessingStatus
    signature: Optional[str] = None
    pool_address: Optional[str] = None
    pool_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "signature": self.signature,
            "poolAddress": self.pool_address,
            "poolId": self.pool_id,
            "error": self.error,
        }


class WebhookHandler:
    """Sequences parsing, de-duplication, enrichment and persistence."""

    def __init__(
        self,
        repository: PoolRepository,
        defillama_client: DefiLlamaClient,
        jupiter_client: JupiterClient,
        parser: Optional[TransactionParser] = None,
        archive: Optional[WebhookArchive] = None,
        accepted_types: Iterable[str] = ACCEPTED_TRANSACTION_TYPES,
        chain: str = "Solana",
    ):
        self.repository = repository
        self.defillama_client = defillama_client
        self.jupiter_client = jupiter_client
        self.parser = parser or TransactionParser()
        self.archive = archive or WebhookArchive(None)
        self.accepted_types = frozenset(accepted_types)
        self.chain = chain

    async def process_webhook_payload(self, transactions: Any) -> List[ProcessingResult]:
        """Process every transaction of a webhook payload in order.

        Args:
            transactions: A list of transactions or a single transaction dict

        Returns:
            One ProcessingResult per transaction
        """
        if isinstance(transactions, dict):
            transactions = [transactions]
        elif not transactions:
            transactions = []

        logger.info(f"Processing {len(transactions)} transaction(s)")

        results = []
        for transaction in transactions:
            results.append(await self.process_transaction(transaction))

        saved = sum(1 for result in results if result.status is ProcessingStatus.SAVED)
        logger.info(f"Webhook payload processed: {saved}/{len(results)} new pool(s) saved")
        return results

    async def process_transaction(self, transaction: Any) -> ProcessingResult:
        """Process one transaction. Never raises; failures become a FAILED result."""
        try:
            return await self._process_transaction(transaction)
        except Exception as e:
            signature = transaction.get("signature") if isinstance(transaction, dict) else None
            logger.error(f"❌ Error processing transaction {signature}: {e}")
            return ProcessingResult(ProcessingStatus.FAILED, signature=signature, error=str(e))

    async def _process_transaction(self, transaction: Any) -> ProcessingResult:
        if not isinstance(transaction, dict):
            logger.warning(f"Skipping malformed transaction entry: {type(transaction).__name__}")
            return ProcessingResult(ProcessingStatus.PARSE_ERROR, error="transaction is not an object")

        signature = transaction.get("signature")
        transaction_type = transaction.get("type")

        if transaction_type not in self.accepted_types:
            logger.info(f"Skipping transaction type: {transaction_type}")
            return ProcessingResult(ProcessingStatus.SKIPPED_TYPE, signature=signature)

        parsed = self.parser.parse_result(transaction)
        if parsed.status is ParseStatus.ERROR:
            return ProcessingResult(ProcessingStatus.PARSE_ERROR, signature=signature, error=parsed.error)
        if not parsed.ok:
            return ProcessingResult(ProcessingStatus.NOT_A_POOL, signature=signature)

        candidate = parsed.candidate
        logger.info(f"Found potential pool: {candidate.token_a}/{candidate.token_b}")
        return await self.save_pool(candidate)

    async def save_pool(self, candidate: PoolCandidate) -> ProcessingResult:
        """Enrich and store a pool candidate unless its address is already known."""
        result = ProcessingResult(
            ProcessingStatus.FAILED,
            signature=candidate.signature,
            pool_address=candidate.pool_address,
        )

        try:
            if self.repository.pool_exists(candidate.pool_address):
                logger.info(f"Pool {candidate.pool_address} already exists in database")
                result.status = ProcessingStatus.DUPLICATE
                return result

            logger.info(f"Fetching APY for {candidate.token_a}/{candidate.token_b}...")
            apy_data = await self.fetch_apy(candidate.token_a, candidate.token_b)

            token_a_info = await self.jupiter_client.get_full_token_data(candidate.token_a)
            token_b_info = await self.jupiter_client.get_full_token_data(candidate.token_b)

            pool_data = candidate.to_dict()
            if apy_data:
                pool_data.update({
                    "apy": _as_float(apy_data.get("apy")),
                    "tvl": _as_float(apy_data.get("tvl")),
                    "apy_project": apy_data.get("project"),
                    "apy_pool_id": apy_data.get("pool_id"),
                    "apy_url": apy_data.get("url"),
                })

            pool = self.repository.store_pool(pool_data)
            result.pool_id = pool.id

            self.repository.store_event({
                "pool_id": pool.id,
                "signature": candidate.signature,
                "event_type": "created",
                "timestamp": candidate.timestamp,
                "raw_data": {
                    "token_a": candidate.token_a,
                    "token_b": candidate.token_b,
                    "source": candidate.source,
                    "address_is_fallback": candidate.address_is_fallback,
                    "apy_data": apy_data,
                    "token_a_info": token_a_info,
                    "token_b_info": token_b_info,
                },
            })
        except DuplicatePoolError as e:
            logger.info(f"Pool {candidate.pool_address} was stored concurrently: {e}")
            result.status = ProcessingStatus.DUPLICATE
            return result
        except Exception as e:
            logger.error(f"❌ Error saving pool {candidate.pool_address} to database: {e}")
            result.error = str(e)
            return result

        self.archive.record_pool({
            "pool_address": candidate.pool_address,
            "token_a": candidate.token_a,
            "token_b": candidate.token_b,
            "signature": candidate.signature,
            "source": candidate.source,
            "apy": apy_data.get("apy") if apy_data else None,
            "tvl": apy_data.get("tvl") if apy_data else None,
        })

        apy = _as_float(apy_data.get("apy")) if apy_data else None
        apy_info = f"APY: {apy:.2f}%" if apy is not None else "APY: Not found"
        symbol_a = (token_a_info or {}).get("symbol", "Unknown")
        symbol_b = (token_b_info or {}).get("symbol", "Unknown")
        logger.info(f"✅ Saved pool to DB: {symbol_a}/{symbol_b} - {apy_info}")

        result.status = ProcessingStatus.SAVED
        return result

    async def fetch_apy(self, token_a: str, token_b: str) -> Optional[Dict[str, Any]]:
        """Best APY for token_a, falling back to token_b. Failures count as no data."""
        for mint in (token_a, token_b):
            try:
                apy_data = await self.defillama_client.get_best_apy_for_mint(mint, self.chain)
            except Exception as e:
                logger.warning(f"Error fetching APY for mint {mint}: {e}")
                continue
            if apy_data:
                return apy_data
        return None
