"""Common dependency providers for the web application."""

from __future__ import annotations

from functools import lru_cache

from ..persistence import SQLiteRepository
from ..services.store import LedgerStore


@lru_cache(maxsize=1)
def _get_cached_store() -> LedgerStore:
    """Return a cached store instance for reuse within the process."""
    return LedgerStore.load(SQLiteRepository())


def get_store() -> LedgerStore:
    """
    FastAPI dependency that yields the ledger store.

    Tests can override this dependency to supply fakes or fixtures.
    """
    return _get_cached_store()
