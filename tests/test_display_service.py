"""Tests for display formatting helpers."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from portfolioledger.core.ledger import Position
from portfolioledger.core.models import Action, InstrumentType, Transaction
from portfolioledger.services.display import (
    format_action,
    format_currency,
    format_quantity,
    format_realized_pl,
    format_timestamp,
    instrument_label,
    position_direction,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        (Decimal("1234.5"), "$1,234.50"),
        (Decimal("-50"), "-$50.00"),
        (Decimal("0.005"), "$0.01"),
        (None, "--"),
    ],
)
def test_format_currency(value, expected):
    assert format_currency(value) == expected


def test_format_quantity_drops_trailing_zeros():
    assert format_quantity(Decimal("1500.00")) == "1,500"
    assert format_quantity(Decimal("2.500")) == "2.5"
    assert format_quantity(Decimal("-3")) == "-3"


def test_format_realized_pl_marks_gains():
    assert format_realized_pl(Decimal("250")) == "+$250.00"
    assert format_realized_pl(Decimal("-50")) == "-$50.00"
    assert format_realized_pl(Decimal("0")) == "$0.00"


def test_instrument_label_and_action(equity):
    unknown = uuid4()
    assert instrument_label({equity.id: equity}, equity.id) == "AAPL"
    assert instrument_label({}, unknown) == f"Unknown ({str(unknown)[:8]})"

    txn = Transaction(
        instrument_id=equity.id,
        timestamp=datetime(2025, 1, 2, 9, 30),
        action=Action.SELL_TO_CLOSE,
        quantity=1,
        price=1,
    )
    assert format_action(txn) == "SELL TO CLOSE"
    assert format_timestamp(txn.timestamp) == "2025-01-02 09:30"


def test_position_direction():
    def position(quantity):
        return Position(
            instrument_id=uuid4(),
            instrument_type=InstrumentType.OPTION,
            quantity=Decimal(quantity),
            cost_basis=Decimal("0"),
            average_price=Decimal("0"),
        )

    assert position_direction(position("-2")) == "SHORT"
    assert position_direction(position("2")) == "LONG"
    assert position_direction(position("0")) == "FLAT"
