"""
SQLModel database models for the Solana pool monitor.
"""

from .pool import Pool, PoolEvent

__all__ = [
    "Pool",
    "PoolEvent",
]
