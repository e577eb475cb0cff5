"""
Exception hierarchy for the pool monitor.
"""

from typing import Optional


class PoolMonitorError(Exception):
    """Base exception for all pool monitor errors."""
    pass


class ExternalAPIError(PoolMonitorError):
    """Raised when an external API answers with a non-success status."""

    def __init__(self, service: str, status_code: Optional[int], message: str = ""):
        self.service = service
        self.status_code = status_code
        super().__init__(message or f"{service} API error: {status_code}")


class RepositoryError(PoolMonitorError):
    """Base exception for all repository errors."""
    pass


class DuplicatePoolError(RepositoryError):
    """Raised when a pool or event violates a unique constraint."""
    pass


class DatabaseConnectionError(RepositoryError):
    """Raised when the repository cannot connect to the database."""
    pass
