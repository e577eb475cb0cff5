"""
Database operations for pools and pool events.
Thin pass-through to the relational store: existence checks, inserts and ordered reads.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from pool_monitor.database.connection import DatabaseConnection
from pool_monitor.exceptions import DuplicatePoolError, RepositoryError
from pool_monitor.models import Pool, PoolEvent

logger = logging.getLogger(__name__)


class PoolRepository:
    """Repository for pool and pool event records."""

    def __init__(self, db: DatabaseConnection):
        """Initialize with a database connection.

        Args:
            db: DatabaseConnection providing sessions
        """
        self.db = db

    def pool_exists(self, pool_address: str) -> bool:
        """Check if a pool already exists."""
        with self.db.get_session() as session:
            stmt = select(Pool.id).where(Pool.pool_address == pool_address)
            return session.exec(stmt).first() is not None

    def get_pool_by_address(self, pool_address: str) -> Optional[Pool]:
        with self.db.get_session() as session:
            stmt = select(Pool).where(Pool.pool_address == pool_address)
            return session.exec(stmt).first()

    def store_pool(self, pool_data: Dict[str, Any]) -> Pool:
        """Store pool data in the database.

        Args:
            pool_data: Pool fields (token_a, token_b, pool_address, signature, ...)

        Returns:
            Created pool record

        Raises:
            DuplicatePoolError: pool_address or signature already stored
        """
        pool = Pool(
            token_a=pool_data["token_a"],
            token_b=pool_data["token_b"],
            pool_address=pool_data["pool_address"],
            address_is_fallback=pool_data.get("address_is_fallback", False),
            signature=pool_data["signature"],
            source=pool_data.get("source") or "unknown",
            timestamp=pool_data.get("timestamp"),
            apy=pool_data.get("apy"),
            tvl=pool_data.get("tvl"),
            volume_24h=pool_data.get("volume_24h"),
            apy_project=pool_data.get("apy_project"),
            apy_pool_id=pool_data.get("apy_pool_id"),
            apy_url=pool_data.get("apy_url"),
        )

        with self.db.get_session() as session:
            session.add(pool)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicatePoolError(
                    f"Pool {pool.pool_address} (signature {pool.signature}) already exists"
                ) from e
            session.refresh(pool)

        logger.info(f"Pool stored in database: {pool.pool_address} ({pool.token_a}/{pool.token_b})")
        return pool

    def store_event(self, event_data: Dict[str, Any]) -> PoolEvent:
        """Store event data in the database.

        Args:
            event_data: Event fields (pool_id, signature, event_type, raw_data, ...)

        Returns:
            Created event record
        """
        pool_event = PoolEvent(
            pool_id=event_data["pool_id"],
            event_type=event_data.get("event_type") or "created",
            amount=event_data.get("amount"),
            signature=event_data["signature"],
            raw_data=event_data.get("raw_data"),
            timestamp=event_data.get("timestamp") or datetime.now(timezone.utc),
        )

        with self.db.get_session() as session:
            session.add(pool_event)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicatePoolError(f"Event for signature {pool_event.signature} already exists") from e
            session.refresh(pool_event)

        logger.info(f"Event stored in database: {pool_event.event_type} for pool {pool_event.pool_id}")
        return pool_event

    def get_all_pools(self, limit: int = 100) -> List[Pool]:
        """Get the most recently stored pools."""
        with self.db.get_session() as session:
            stmt = select(Pool).order_by(Pool.created_at.desc(), Pool.id.desc()).limit(limit)
            return list(session.exec(stmt).all())

    def get_pools_with_apy(self, limit: int = 50) -> List[Pool]:
        """Get pools that have APY data, highest APY first."""
        with self.db.get_session() as session:
            stmt = (
                select(Pool)
                .where(Pool.apy.is_not(None))
                .order_by(Pool.apy.desc(), Pool.id.desc())
                .limit(limit)
            )
            return list(session.exec(stmt).all())

    def get_pool_events(self, pool_id: int) -> List[PoolEvent]:
        with self.db.get_session() as session:
            stmt = select(PoolEvent).where(PoolEvent.pool_id == pool_id).order_by(PoolEvent.id)
            return list(session.exec(stmt).all())

    def count_pools(self) -> int:
        with self.db.get_session() as session:
            return session.exec(select(func.count()).select_from(Pool)).one()

    def update_pool_apy(self, pool_address: str, apy_data: Dict[str, Any]) -> Pool:
        """Update pool APY data.

        Args:
            pool_address: The pool address to update
            apy_data: APY information (apy, tvl, project, pool_id, url)

        Returns:
            Updated pool record
        """
        with self.db.get_session() as session:
            pool = session.exec(select(Pool).where(Pool.pool_address == pool_address)).first()
            if pool is None:
                raise RepositoryError(f"Pool {pool_address} not found")

            pool.apy = apy_data.get("apy")
            pool.tvl = apy_data.get("tvl")
            pool.apy_project = apy_data.get("project")
            pool.apy_pool_id = apy_data.get("pool_id")
            pool.apy_url = apy_data.get("url")
            pool.updated_at = datetime.now(timezone.utc)

            session.add(pool)
            session.commit()
            session.refresh(pool)

        logger.info(f"Pool APY updated: {pool.pool_address} - {pool.apy}%")
        return pool
