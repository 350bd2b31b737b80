"""Aggregated views of open equity and option positions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from ..core.ledger import EquityLot, OptionLot, Position
from ..core.models import InstrumentType

ZERO = Decimal("0")


@dataclass
class _OptionAccumulator:
    long_quantity: Decimal = ZERO
    short_quantity: Decimal = ZERO
    long_cost: Decimal = ZERO
    short_cost: Decimal = ZERO

    def add(self, lot: OptionLot) -> None:
        if lot.is_short:
            self.short_quantity += lot.remaining_quantity
            self.short_cost += lot.remaining_premium
        elif lot.is_long:
            self.long_quantity += lot.remaining_quantity
            self.long_cost += lot.remaining_premium


def _open_lots(lots: Iterable[EquityLot | OptionLot]) -> list:
    return [lot for lot in lots if lot.is_open]


def equity_position(instrument_id: UUID, lots: Sequence[EquityLot]) -> Optional[Position]:
    """Collapse an instrument's equity lots into one position, or ``None`` when none are open."""
    open_lots = _open_lots(lots)
    if not open_lots:
        return None

    quantity = sum((lot.remaining_quantity for lot in open_lots), ZERO)
    cost_basis = sum((lot.remaining_cost_basis for lot in open_lots), ZERO)
    average_price = cost_basis / quantity if quantity > 0 else ZERO

    return Position(
        instrument_id=instrument_id,
        instrument_type=InstrumentType.EQUITY,
        quantity=quantity,
        cost_basis=cost_basis,
        average_price=average_price,
    )


def option_position(instrument_id: UUID, lots: Sequence[OptionLot]) -> Optional[Position]:
    """
    Net an instrument's option lots into one signed position.

    Long contracts count positive and short contracts negative. Short premium is a credit, so it
    reduces the net cost basis. Offsetting long and short lots can leave a zero net quantity with
    open lots; that still yields a position (with an average price of zero).
    """
    open_lots = _open_lots(lots)
    if not open_lots:
        return None

    entry = _OptionAccumulator()
    for lot in open_lots:
        entry.add(lot)

    net_quantity = entry.long_quantity - entry.short_quantity
    net_cost_basis = entry.long_cost - entry.short_cost
    average_price = abs(net_cost_basis / net_quantity) if net_quantity != 0 else ZERO

    return Position(
        instrument_id=instrument_id,
        instrument_type=InstrumentType.OPTION,
        quantity=net_quantity,
        cost_basis=net_cost_basis,
        average_price=average_price,
    )


def aggregate_positions(
    equity_lots: Mapping[UUID, Sequence[EquityLot]],
    option_lots: Mapping[UUID, Sequence[OptionLot]],
) -> List[Position]:
    """Return equity positions followed by option positions, in lot-queue order."""
    positions: List[Position] = []
    for instrument_id, lots in equity_lots.items():
        position = equity_position(instrument_id, lots)
        if position is not None:
            positions.append(position)
    for instrument_id, lots in option_lots.items():
        position = option_position(instrument_id, lots)
        if position is not None:
            positions.append(position)
    return positions
