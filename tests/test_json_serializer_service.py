"""Tests for JSON serialization of ledger data."""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal

from portfolioledger.core.models import Action, Transaction
from portfolioledger.services.json_serializer import (
    serialize_decimal,
    serialize_instrument,
    serialize_ledger_output,
    serialize_transaction,
)
from portfolioledger.services.ledger import process


def test_serialize_decimal_normalizes():
    assert serialize_decimal(Decimal("351.00")) == "351"
    assert serialize_decimal(Decimal("1E+2")) == "100"
    assert serialize_decimal(Decimal("0.50")) == "0.5"
    assert serialize_decimal("text") == "text"


def test_serialize_instrument_uses_kind_tag(call_option):
    data = serialize_instrument(call_option)
    assert data["kind"] == "option"
    assert data["id"] == str(call_option.id)
    assert data["expiry"] == "2025-03-21"
    assert data["call_put"] == "call"


def test_serialize_ledger_output_is_json_ready(equity, call_option):
    instruments = {equity.id: equity, call_option.id: call_option}
    opening = Transaction(
        instrument_id=call_option.id,
        timestamp=datetime(2025, 1, 2, 10, 0),
        action=Action.SELL_TO_OPEN,
        quantity=Decimal("3"),
        price=Decimal("1.17"),
    )

    payload = serialize_ledger_output(process([opening], instruments), instruments)

    json.dumps(payload)
    assert payload["realized_pls"][0]["realized_pl"] == "351"
    assert payload["option_lots"][0]["direction"] == "short"
    assert payload["positions"][0]["quantity"] == "-3"
    assert payload["positions"][0]["display_name"] == call_option.display_name
    assert payload["underlier_summaries"]["AAPL"]["open_option_contracts"] == 1
    assert payload["pl_summary"]["total_pl"] == "351"

    txn_data = serialize_transaction(opening)
    assert txn_data["action"] == "sell_to_open"
    assert txn_data["net_amount"] == "3.51"
    assert txn_data["link_group_id"] is None
