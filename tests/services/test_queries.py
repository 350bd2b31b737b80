"""Tests for transaction search and per-symbol queries."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from portfolioledger.core.models import Action, EquityInstrument, Transaction
from portfolioledger.services.ledger import process
from portfolioledger.services.queries import (
    realized_pls_for_symbol,
    search_transactions,
    transactions_for_symbol,
)

T0 = datetime(2025, 1, 2, 10, 0)


def _make_transaction(instrument, **overrides) -> Transaction:
    return Transaction(
        instrument_id=instrument.id,
        timestamp=T0 + timedelta(days=overrides.get("days", 0)),
        action=overrides.get("action", Action.BUY),
        quantity=overrides.get("quantity", Decimal("10")),
        price=overrides.get("price", Decimal("10")),
        notes=overrides.get("notes", ""),
        tags=overrides.get("tags", ()),
    )


def test_search_matches_notes_and_tags_newest_first(equity):
    old = _make_transaction(equity, notes="Earnings play")
    tagged = _make_transaction(equity, days=2, tags=("EARNINGS",))
    other = _make_transaction(equity, days=1, notes="rebalance")

    assert search_transactions([old, tagged, other], "earnings") == [tagged, old]
    assert search_transactions([old, tagged, other]) == [tagged, other, old]


def test_symbol_queries_cover_equity_and_options(equity, call_option):
    msft = EquityInstrument(symbol="MSFT")
    instruments = {i.id: i for i in (equity, call_option, msft)}
    history = [
        _make_transaction(equity),
        _make_transaction(equity, action=Action.SELL, price=Decimal("12"), days=1),
        _make_transaction(
            call_option,
            action=Action.SELL_TO_OPEN,
            quantity=Decimal("1"),
            price=Decimal("1"),
            days=2,
        ),
        _make_transaction(msft, days=3),
    ]

    related = transactions_for_symbol(history, instruments, "aapl")
    assert [txn.instrument_id for txn in related] == [call_option.id, equity.id, equity.id]

    records, total = realized_pls_for_symbol(process(history, instruments), instruments, "AAPL")
    assert len(records) == 2
    assert total == Decimal("120")

    assert realized_pls_for_symbol(process(history, instruments), instruments, "MSFT")[1] == 0
