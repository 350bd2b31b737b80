"""
Display formatting services for the portfolioledger CLI.

This module provides formatting helpers for money, quantities and instruments.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping, Optional
from uuid import UUID

from ..core.ledger import Position
from ..core.models import Instrument, Transaction


def format_currency(value: Decimal | None) -> str:
    """Format a decimal value as currency."""
    if value is None:
        return "--"
    quantized = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    quantized = abs(quantized)
    return f"{sign}${quantized:,.2f}"


def format_quantity(value: Decimal) -> str:
    """Format a share or contract count without trailing zeros."""
    if value == value.to_integral_value():
        return f"{int(value):,}"
    return format(value.normalize(), "f")


def format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


def instrument_label(instruments: Mapping[UUID, Instrument], instrument_id: UUID) -> str:
    """Display name for ``instrument_id``, or a placeholder for unknown ids."""
    instrument = instruments.get(instrument_id)
    if instrument is None:
        return f"Unknown ({str(instrument_id)[:8]})"
    return instrument.display_name


def position_direction(position: Position) -> str:
    if position.quantity < 0:
        return "SHORT"
    if position.quantity > 0:
        return "LONG"
    return "FLAT"


def format_action(txn: Transaction) -> str:
    return txn.action.value.replace("_", " ").upper()


def format_realized_pl(value: Optional[Decimal]) -> str:
    """Currency with a leading ``+`` for gains."""
    text = format_currency(value)
    if value is not None and value > 0:
        return f"+{text}"
    return text
