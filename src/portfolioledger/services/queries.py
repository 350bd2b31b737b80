"""Read-only query helpers over the transaction log and a ledger snapshot."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Mapping, Tuple
from uuid import UUID

from ..core.ledger import LedgerOutput, RealizedPL
from ..core.models import Instrument, Transaction


def search_transactions(transactions: Iterable[Transaction], text: str = "") -> List[Transaction]:
    """
    Return transactions newest first, optionally filtered by ``text``.

    The filter is a case-insensitive substring match against the notes and each tag.
    """
    needle = text.strip().lower()
    matches = [
        txn
        for txn in transactions
        if not needle
        or needle in txn.notes.lower()
        or any(needle in tag.lower() for tag in txn.tags)
    ]
    matches.sort(key=lambda txn: txn.timestamp, reverse=True)
    return matches


def _instrument_ids_for_symbol(
    instruments: Mapping[UUID, Instrument], symbol: str
) -> set[UUID]:
    normalized = symbol.strip().upper()
    return {
        instrument_id
        for instrument_id, instrument in instruments.items()
        if instrument.underlying_ticker == normalized
    }


def transactions_for_symbol(
    transactions: Iterable[Transaction],
    instruments: Mapping[UUID, Instrument],
    symbol: str,
) -> List[Transaction]:
    """Transactions on the equity or any option of ``symbol``, newest first."""
    instrument_ids = _instrument_ids_for_symbol(instruments, symbol)
    related = [txn for txn in transactions if txn.instrument_id in instrument_ids]
    related.sort(key=lambda txn: txn.timestamp, reverse=True)
    return related


def realized_pls_for_symbol(
    output: LedgerOutput,
    instruments: Mapping[UUID, Instrument],
    symbol: str,
) -> Tuple[List[RealizedPL], Decimal]:
    """Realized records for every instrument on ``symbol`` and their total."""
    instrument_ids = _instrument_ids_for_symbol(instruments, symbol)
    records = [pl for pl in output.realized_pls if pl.instrument_id in instrument_ids]
    total = sum((pl.realized_pl for pl in records), Decimal("0"))
    return records, total
