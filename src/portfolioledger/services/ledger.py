"""Ledger engine entry point.

:func:`process` recomputes the full derived state from the transaction log and instrument catalog.
It keeps no state between calls and performs no I/O, so the same inputs always produce an equal
:class:`~portfolioledger.core.ledger.LedgerOutput`.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping
from uuid import UUID

from ..core.ledger import LedgerOutput
from ..core.models import Instrument, Transaction
from .lot_matching import match_lots
from .positions import aggregate_positions
from .summaries import group_by_underlier, summarize_pl


def sort_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Order transactions by timestamp; ties keep their input order."""
    return sorted(transactions, key=lambda txn: txn.timestamp)


def process(
    transactions: Iterable[Transaction],
    instruments: Mapping[UUID, Instrument],
) -> LedgerOutput:
    """Derive lots, positions, realized P/L and summaries from ``transactions``."""
    ordered = sort_transactions(transactions)
    matched = match_lots(ordered, instruments)
    positions = aggregate_positions(matched.equity_lots, matched.option_lots)

    return LedgerOutput(
        equity_lots=tuple(lot for lots in matched.equity_lots.values() for lot in lots),
        option_lots=tuple(lot for lots in matched.option_lots.values() for lot in lots),
        positions=tuple(positions),
        realized_pls=matched.realized_pls,
        underlier_summaries=group_by_underlier(positions, instruments),
        pl_summary=summarize_pl(matched.realized_pls, instruments),
    )
