"""JSON serialization utilities for ledger data."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

from ..core.ledger import (
    EquityLot,
    LedgerOutput,
    OptionLot,
    PLSummary,
    Position,
    RealizedPL,
    UnderlierSummary,
)
from ..core.models import Instrument, Transaction


def serialize_decimal(value: Any) -> Any:
    """Serialize Decimal values to JSON-compatible format."""
    if isinstance(value, Decimal):
        normalized = value.normalize()
        return format(normalized, "f")
    return value


def _uuid(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


def serialize_instrument(instrument: Instrument) -> Dict[str, Any]:
    return instrument.model_dump(mode="json")


def serialize_transaction(txn: Transaction) -> Dict[str, Any]:
    return {
        "id": str(txn.id),
        "instrument_id": str(txn.instrument_id),
        "timestamp": txn.timestamp.isoformat(),
        "action": txn.action.value,
        "quantity": serialize_decimal(txn.quantity),
        "price": serialize_decimal(txn.price),
        "fees": serialize_decimal(txn.fees),
        "net_amount": serialize_decimal(txn.net_amount),
        "notes": txn.notes,
        "tags": list(txn.tags),
        "link_group_id": _uuid(txn.link_group_id),
        "consumed_by_assignment": txn.consumed_by_assignment,
    }


def serialize_equity_lot(lot: EquityLot) -> Dict[str, Any]:
    return {
        "id": str(lot.id),
        "transaction_id": str(lot.transaction_id),
        "instrument_id": str(lot.instrument_id),
        "open_date": lot.open_date.isoformat(),
        "original_quantity": serialize_decimal(lot.original_quantity),
        "remaining_quantity": serialize_decimal(lot.remaining_quantity),
        "cost_basis": serialize_decimal(lot.cost_basis),
        "price_per_share": serialize_decimal(lot.price_per_share),
        "is_open": lot.is_open,
    }


def serialize_option_lot(lot: OptionLot) -> Dict[str, Any]:
    return {
        "id": str(lot.id),
        "transaction_id": str(lot.transaction_id),
        "instrument_id": str(lot.instrument_id),
        "open_date": lot.open_date.isoformat(),
        "action": lot.action.value,
        "direction": "short" if lot.is_short else "long",
        "original_quantity": serialize_decimal(lot.original_quantity),
        "remaining_quantity": serialize_decimal(lot.remaining_quantity),
        "premium": serialize_decimal(lot.premium),
        "price_per_contract": serialize_decimal(lot.price_per_contract),
        "is_open": lot.is_open,
    }


def serialize_position(
    position: Position, instruments: Optional[Mapping[UUID, Instrument]] = None
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "instrument_id": str(position.instrument_id),
        "instrument_type": position.instrument_type.value,
        "quantity": serialize_decimal(position.quantity),
        "cost_basis": serialize_decimal(position.cost_basis),
        "average_price": serialize_decimal(position.average_price),
    }
    if instruments is not None and position.instrument_id in instruments:
        data["display_name"] = instruments[position.instrument_id].display_name
    return data


def serialize_realized_pl(record: RealizedPL) -> Dict[str, Any]:
    return {
        "instrument_id": str(record.instrument_id),
        "open_date": record.open_date.isoformat(),
        "close_date": record.close_date.isoformat(),
        "quantity": serialize_decimal(record.quantity),
        "proceeds": serialize_decimal(record.proceeds),
        "cost_basis": serialize_decimal(record.cost_basis),
        "realized_pl": serialize_decimal(record.realized_pl),
        "transaction_id": str(record.transaction_id),
        "open_transaction_id": str(record.open_transaction_id),
        "holding_days": record.holding_days,
    }


def serialize_underlier_summary(
    summary: UnderlierSummary, instruments: Optional[Mapping[UUID, Instrument]] = None
) -> Dict[str, Any]:
    return {
        "symbol": summary.symbol,
        "equity_position": (
            serialize_position(summary.equity_position, instruments)
            if summary.equity_position
            else None
        ),
        "option_positions": [
            serialize_position(position, instruments) for position in summary.option_positions
        ],
        "open_option_contracts": summary.open_option_contracts,
    }


def serialize_pl_summary(summary: PLSummary) -> Dict[str, Any]:
    return {
        "total_realized_pl": serialize_decimal(summary.total_realized_pl),
        "equity_realized_pl": serialize_decimal(summary.equity_realized_pl),
        "option_realized_pl": serialize_decimal(summary.option_realized_pl),
        "total_unrealized_pl": serialize_decimal(summary.total_unrealized_pl),
        "total_pl": serialize_decimal(summary.total_pl),
    }


def serialize_ledger_output(
    output: LedgerOutput, instruments: Optional[Mapping[UUID, Instrument]] = None
) -> Dict[str, Any]:
    """Serialize a complete ledger snapshot."""
    return {
        "equity_lots": [serialize_equity_lot(lot) for lot in output.equity_lots],
        "option_lots": [serialize_option_lot(lot) for lot in output.option_lots],
        "positions": [serialize_position(pos, instruments) for pos in output.positions],
        "realized_pls": [serialize_realized_pl(record) for record in output.realized_pls],
        "underlier_summaries": {
            symbol: serialize_underlier_summary(summary, instruments)
            for symbol, summary in output.underlier_summaries.items()
        },
        "pl_summary": serialize_pl_summary(output.pl_summary),
    }
