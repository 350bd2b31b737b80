"""Persistence utilities for PortfolioLedger."""

from .repository import SQLiteRepository, StorageDecodeError
from .storage import DB_ENV_VAR, SQLiteStorage, get_storage

__all__ = [
    "DB_ENV_VAR",
    "SQLiteRepository",
    "SQLiteStorage",
    "StorageDecodeError",
    "get_storage",
]
