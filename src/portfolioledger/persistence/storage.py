"""SQLite-backed persistence layer for the instrument catalog and transaction log."""

from __future__ import annotations

import os
import sqlite3
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

DEFAULT_DB_PATH = Path.home() / ".portfolioledger" / "portfolioledger.db"
DB_ENV_VAR = "PORTFOLIOLEDGER_DB_PATH"


def _determine_db_path() -> Path:
    override = os.environ.get(DB_ENV_VAR)
    if override:
        return Path(override).expanduser().resolve()
    return DEFAULT_DB_PATH


class SQLiteStorage:
    """Thin wrapper around the SQLite database holding instruments and transactions."""

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = Path(db_path) if db_path is not None else _determine_db_path()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    def connect(self) -> sqlite3.Connection:
        """Open a connection with the schema in place."""
        self._ensure_initialized()
        return self._connect()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        with self._connect() as conn:
            conn.executescript(
                """
                PRAGMA foreign_keys = ON;

                CREATE TABLE IF NOT EXISTS instruments (
                    id TEXT PRIMARY KEY,
                    kind TEXT NOT NULL CHECK (kind IN ('equity', 'option')),
                    symbol TEXT,
                    underlying_symbol TEXT,
                    expiry TEXT,
                    strike TEXT,
                    call_put TEXT,
                    multiplier INTEGER
                );

                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    sequence INTEGER NOT NULL,
                    instrument_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    action TEXT NOT NULL,
                    quantity TEXT NOT NULL,
                    price TEXT NOT NULL,
                    fees TEXT NOT NULL,
                    notes TEXT NOT NULL DEFAULT '',
                    tags_json TEXT NOT NULL DEFAULT '[]',
                    link_group_id TEXT,
                    consumed_by_assignment INTEGER NOT NULL DEFAULT 0
                );

                CREATE INDEX IF NOT EXISTS idx_transactions_instrument
                    ON transactions(instrument_id);
                CREATE INDEX IF NOT EXISTS idx_transactions_sequence
                    ON transactions(sequence);
                """
            )
        self._initialized = True


# Values are stored as TEXT in SQLite to preserve Decimal precision.
NumberLike = Union[Decimal, int]


def decimal_to_text(value: Optional[NumberLike]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


@lru_cache(maxsize=1)
def get_storage() -> SQLiteStorage:
    """Return a cached storage instance."""
    return SQLiteStorage()
