"""Read and write helpers for the persisted instrument catalog and transaction log."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from pydantic import ValidationError

from ..core.models import (
    EquityInstrument,
    Instrument,
    Transaction,
    parse_instrument,
)
from .storage import SQLiteStorage, decimal_to_text, get_storage


class StorageDecodeError(ValueError):
    """Raised when a persisted row cannot be turned back into a model."""


class SQLiteRepository:
    """High-level accessors for the SQLite persistence layer."""

    def __init__(self, storage: Optional[SQLiteStorage] = None) -> None:
        self._storage = storage or get_storage()

    @property
    def storage(self) -> SQLiteStorage:
        return self._storage

    def fetch_instruments(self) -> Dict[UUID, Instrument]:
        """Return the instrument catalog keyed by id."""
        with self._storage.connect() as conn:
            rows = conn.execute("SELECT * FROM instruments ORDER BY rowid").fetchall()
        instruments: Dict[UUID, Instrument] = {}
        for row in rows:
            instrument = _row_to_instrument(row)
            instruments[instrument.id] = instrument
        return instruments

    def fetch_transactions(self) -> List[Transaction]:
        """Return the transaction log in the order it was recorded."""
        with self._storage.connect() as conn:
            rows = conn.execute("SELECT * FROM transactions ORDER BY sequence").fetchall()
        return [_row_to_transaction(row) for row in rows]

    def replace_all(
        self,
        instruments: Mapping[UUID, Instrument],
        transactions: Iterable[Transaction],
    ) -> None:
        """
        Overwrite the stored catalog and log with the supplied snapshot.

        Runs inside one SQLite transaction: either the whole snapshot lands or the previous one
        stays in place.
        """
        instrument_rows = [_instrument_to_row(instrument) for instrument in instruments.values()]
        transaction_rows = [
            _transaction_to_row(txn, sequence)
            for sequence, txn in enumerate(transactions, start=1)
        ]
        with self._storage.connect() as conn:
            conn.execute("DELETE FROM transactions")
            conn.execute("DELETE FROM instruments")
            conn.executemany(
                """
                INSERT INTO instruments (
                    id, kind, symbol, underlying_symbol, expiry, strike, call_put, multiplier
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                instrument_rows,
            )
            conn.executemany(
                """
                INSERT INTO transactions (
                    id, sequence, instrument_id, timestamp, action, quantity, price, fees,
                    notes, tags_json, link_group_id, consumed_by_assignment
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                transaction_rows,
            )


def _instrument_to_row(instrument: Instrument) -> tuple:
    if isinstance(instrument, EquityInstrument):
        return (str(instrument.id), "equity", instrument.symbol, None, None, None, None, None)
    return (
        str(instrument.id),
        "option",
        None,
        instrument.underlying_symbol,
        instrument.expiry.isoformat(),
        decimal_to_text(instrument.strike),
        instrument.call_put.value,
        instrument.multiplier,
    )


def _transaction_to_row(txn: Transaction, sequence: int) -> tuple:
    return (
        str(txn.id),
        sequence,
        str(txn.instrument_id),
        txn.timestamp.isoformat(),
        txn.action.value,
        decimal_to_text(txn.quantity),
        decimal_to_text(txn.price),
        decimal_to_text(txn.fees),
        txn.notes,
        json.dumps(list(txn.tags)),
        str(txn.link_group_id) if txn.link_group_id else None,
        int(txn.consumed_by_assignment),
    )


def _row_to_instrument(row: sqlite3.Row) -> Instrument:
    try:
        if row["kind"] == "equity":
            return parse_instrument({"kind": "equity", "id": row["id"], "symbol": row["symbol"]})
        return parse_instrument(
            {
                "kind": "option",
                "id": row["id"],
                "underlying_symbol": row["underlying_symbol"],
                "expiry": date.fromisoformat(row["expiry"]),
                "strike": Decimal(row["strike"]),
                "call_put": row["call_put"],
                "multiplier": row["multiplier"],
            }
        )
    except (ValidationError, ValueError, TypeError, InvalidOperation) as exc:
        raise StorageDecodeError(f"Invalid instrument row {row['id']}: {exc}") from exc


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    try:
        return Transaction(
            id=UUID(row["id"]),
            instrument_id=UUID(row["instrument_id"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            action=row["action"],
            quantity=Decimal(row["quantity"]),
            price=Decimal(row["price"]),
            fees=Decimal(row["fees"]),
            notes=row["notes"],
            tags=tuple(json.loads(row["tags_json"] or "[]")),
            link_group_id=UUID(row["link_group_id"]) if row["link_group_id"] else None,
            consumed_by_assignment=bool(row["consumed_by_assignment"]),
        )
    except (ValidationError, ValueError, TypeError, InvalidOperation) as exc:
        raise StorageDecodeError(f"Invalid transaction row {row['id']}: {exc}") from exc
