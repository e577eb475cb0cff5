"""
Pool and pool event models.
Stores detected liquidity pools and the events that created them.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from sqlmodel import SQLModel, Field, Column, Index
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
RawDataType = JSON().with_variant(JSONB(), "postgresql")


class Pool(SQLModel, table=True):
    """Pools table - liquidity pools detected from pool creation transactions."""

    __tablename__ = "pools"
    __table_args__ = (
        Index("idx_pools_created_at", "created_at"),
        Index("idx_pools_apy", "apy"),
        Index("idx_pools_token_a", "token_a"),
        Index("idx_pools_token_b", "token_b"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    # Pair identification
    token_a: str = Field(max_length=64, description="First non-native token mint")
    token_b: str = Field(max_length=64, description="Second non-native token mint")
    pool_address: str = Field(max_length=128, unique=True, description="Detected pool account (or signature fallback)")
    address_is_fallback: bool = Field(default=False, description="True when pool_address is the transaction signature")

    # Transaction metadata
    signature: str = Field(max_length=128, unique=True, description="Solana transaction signature")
    source: str = Field(default="unknown", max_length=50, description="Originating protocol")
    timestamp: Optional[datetime] = Field(default=None, description="Block time of the creating transaction")

    # Enrichment
    apy: Optional[float] = Field(default=None, description="Best APY percentage from DefiLlama")
    tvl: Optional[float] = Field(default=None, description="TVL in USD from DefiLlama")
    volume_24h: Optional[float] = Field(default=None, description="24-hour volume in USD")
    apy_project: Optional[str] = Field(default=None, max_length=100, description="DefiLlama project of the APY match")
    apy_pool_id: Optional[str] = Field(default=None, max_length=100, description="DefiLlama pool id of the APY match")
    apy_url: Optional[str] = Field(default=None, max_length=500, description="DefiLlama pool URL")

    created_at: datetime = Field(default_factory=utcnow, description="When record was stored")
    updated_at: Optional[datetime] = Field(default=None, description="When enrichment was last refreshed")


class PoolEvent(SQLModel, table=True):
    """Pool events table - append-only history of pool events."""

    __tablename__ = "pool_events"
    __table_args__ = (
        Index("idx_pool_events_pool_id", "pool_id"),
        Index("idx_pool_events_type", "event_type"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    pool_id: int = Field(foreign_key="pools.id", description="Owning pool")
    event_type: str = Field(default="created", max_length=30, description="Event tag")
    amount: Optional[float] = Field(default=None, description="Event amount if applicable")
    signature: str = Field(max_length=128, unique=True, description="Solana transaction signature")

    # Enrichment snapshot at ingestion time
    raw_data: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(RawDataType),
        description="Token metadata and APY snapshot"
    )

    timestamp: datetime = Field(default_factory=utcnow, description="When the event happened")
    created_at: datetime = Field(default_factory=utcnow, description="When record was stored")
