"""
Pool detection from Helius enhanced transactions.

A pool creation transaction is recognized heuristically: its token transfers
must involve at least two distinct non-SOL mints, and the pool account is
picked from the touched accounts by process of elimination. The address
detection is a pluggable strategy so a stronger detector (e.g. one decoding
program-derived addresses from instruction data) can replace it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Protocol

from pool_monitor.config.settings import RAYDIUM_AMM_PROGRAM

logger = logging.getLogger(__name__)

NATIVE_SOL_MINT = "So11111111111111111111111111111111111111112"
TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
SYSTEM_PROGRAM = "11111111111111111111111111111111"
ASSOCIATED_TOKEN_PROGRAM = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

INFRASTRUCTURE_ACCOUNTS: FrozenSet[str] = frozenset({
    NATIVE_SOL_MINT,
    TOKEN_PROGRAM,
    SYSTEM_PROGRAM,
    ASSOCIATED_TOKEN_PROGRAM,
    RAYDIUM_AMM_PROGRAM,
})


@dataclass(frozen=True)
class PoolCandidate:
    """A liquidity pair detected in a single transaction."""
    token_a: str
    token_b: str
    pool_address: str
    signature: str
    timestamp: datetime
    source: str = "unknown"
    address_is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_a": self.token_a,
            "token_b": self.token_b,
            "pool_address": self.pool_address,
            "signature": self.signature,
            "timestamp": self.timestamp,
            "source": self.source,
            "address_is_fallback": self.address_is_fallback,
        }


class ParseStatus(str, Enum):
    PARSED = "parsed"
    INSUFFICIENT_TRANSFERS = "insufficient_transfers"
    INSUFFICIENT_MINTS = "insufficient_mints"
    ERROR = "error"


@dataclass(frozen=True)
class ParseResult:
    status: ParseStatus
    candidate: Optional[PoolCandidate] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.candidate is not None


class PoolAddressStrategy(Protocol):
    """Derives the pool account of a pool creation transaction."""

    def derive_pool_address(self, transaction: Dict[str, Any], excluded: FrozenSet[str]) -> Optional[str]:
        ...


class AccountEliminationStrategy:
    """Picks the first touched account that is not excluded.

    ``accounts`` entries are scanned first, then ``accountData[].account``.
    """

    def derive_pool_address(self, transaction: Dict[str, Any], excluded: FrozenSet[str]) -> Optional[str]:
        for account in transaction_accounts(transaction):
            if account not in excluded:
                return account
        return None


def _as_sequence(value: Any) -> List[Any]:
    """List entries of a JSON array field; anything else counts as empty."""
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def transaction_accounts(transaction: Dict[str, Any]) -> List[str]:
    """Ordered, de-duplicated account ids touched by a transaction."""
    accounts: List[str] = []
    seen = set()

    candidates = _as_sequence(transaction.get("accounts"))
    candidates.extend(
        entry.get("account") for entry in _as_sequence(transaction.get("accountData"))
        if isinstance(entry, dict)
    )

    for account in candidates:
        if isinstance(account, str) and account and account not in seen:
            seen.add(account)
            accounts.append(account)
    return accounts


def extract_token_mints(transaction: Dict[str, Any]) -> List[str]:
    """Distinct non-SOL mints from token transfers, in encounter order."""
    mints: List[str] = []
    for transfer in transaction.get("tokenTransfers") or []:
        mint = transfer.get("mint") if isinstance(transfer, dict) else None
        if mint and mint != NATIVE_SOL_MINT and mint not in mints:
            mints.append(mint)
    return mints


def _block_time(timestamp: Any) -> datetime:
    if timestamp is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(float(timestamp), tz=timezone.utc)


def _short(value: Optional[str]) -> str:
    return f"{value[:8]}..." if value else "None"


class TransactionParser:
    """Extracts pool candidates from enhanced transactions."""

    def __init__(
        self,
        address_strategy: Optional[PoolAddressStrategy] = None,
        infrastructure_accounts: FrozenSet[str] = INFRASTRUCTURE_ACCOUNTS,
    ):
        self.address_strategy = address_strategy or AccountEliminationStrategy()
        self.infrastructure_accounts = infrastructure_accounts

    def parse(self, transaction: Dict[str, Any]) -> Optional[PoolCandidate]:
        """Parse a pool candidate, or None if the transaction does not qualify."""
        return self.parse_result(transaction).candidate

    def parse_result(self, transaction: Dict[str, Any]) -> ParseResult:
        """Parse a transaction and report why no candidate was produced."""
        try:
            return self._parse(transaction)
        except Exception as e:
            logger.warning(f"Error parsing pool from transaction: {e}")
            return ParseResult(ParseStatus.ERROR, error=str(e))

    def _parse(self, transaction: Dict[str, Any]) -> ParseResult:
        transfers = transaction.get("tokenTransfers") or []
        signature = transaction.get("signature")

        logger.debug(
            f"Parsing transaction type={transaction.get('type')} source={transaction.get('source')} "
            f"signature={_short(signature)} transfers={len(transfers)}"
        )

        if len(transfers) < 2:
            logger.info("Insufficient token transfers for pool detection")
            return ParseResult(ParseStatus.INSUFFICIENT_TRANSFERS)

        token_mints = extract_token_mints(transaction)
        if len(token_mints) < 2:
            logger.info(f"Less than 2 unique token mints found ({len(token_mints)})")
            return ParseResult(ParseStatus.INSUFFICIENT_MINTS)

        if not signature:
            raise ValueError("transaction has no signature")

        token_a, token_b = token_mints[0], token_mints[1]

        excluded = self.infrastructure_accounts | {token_a, token_b}
        fee_payer = transaction.get("feePayer")
        if fee_payer:
            excluded = excluded | {fee_payer}

        pool_address = self.address_strategy.derive_pool_address(transaction, frozenset(excluded))
        address_is_fallback = pool_address is None
        if address_is_fallback:
            logger.warning(f"No pool account found, falling back to signature {_short(signature)}")
            pool_address = signature

        candidate = PoolCandidate(
            token_a=token_a,
            token_b=token_b,
            pool_address=pool_address,
            signature=signature,
            timestamp=_block_time(transaction.get("timestamp")),
            source=transaction.get("source") or "unknown",
            address_is_fallback=address_is_fallback,
        )

        logger.info(
            f"Pool detected: {_short(token_a)}/{_short(token_b)} "
            f"pool={_short(pool_address)} source={candidate.source}"
        )
        return ParseResult(ParseStatus.PARSED, candidate=candidate)
