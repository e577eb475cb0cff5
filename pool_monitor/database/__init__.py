from .connection import DatabaseConnection, initialize_database
from .operations import PoolRepository

__all__ = ["DatabaseConnection", "PoolRepository", "initialize_database"]
