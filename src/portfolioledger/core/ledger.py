"""Derived ledger records.

Everything in this module is produced by :func:`portfolioledger.services.ledger.process` and
never persisted. Lots carry their remaining quantity at the end of the replay; positions,
summaries and P/L totals are pure aggregates over them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple, Union
from uuid import UUID

from .models import Action, InstrumentType

ZERO = Decimal("0")


@dataclass(frozen=True)
class EquityLot:
    """FIFO lot opened by an equity ``buy``."""

    id: UUID
    transaction_id: UUID
    instrument_id: UUID
    open_date: datetime
    original_quantity: Decimal
    remaining_quantity: Decimal
    cost_basis: Decimal  # total cost including fees
    price_per_share: Decimal

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0

    @property
    def average_cost_per_share(self) -> Decimal:
        if self.original_quantity <= 0:
            return ZERO
        return self.cost_basis / self.original_quantity

    @property
    def remaining_cost_basis(self) -> Decimal:
        """Cost basis still attached to the unconsumed quantity."""
        return self.cost_basis * self.remaining_quantity / self.original_quantity


@dataclass(frozen=True)
class OptionLot:
    """FIFO lot opened by ``buy_to_open`` (long) or ``sell_to_open`` (short)."""

    id: UUID
    transaction_id: UUID
    instrument_id: UUID
    open_date: datetime
    action: Action
    original_quantity: Decimal
    remaining_quantity: Decimal
    premium: Decimal  # multiplier-scaled, fee-inclusive
    price_per_contract: Decimal

    @property
    def is_open(self) -> bool:
        return self.remaining_quantity > 0

    @property
    def is_short(self) -> bool:
        return self.action is Action.SELL_TO_OPEN

    @property
    def is_long(self) -> bool:
        return self.action is Action.BUY_TO_OPEN

    @property
    def average_premium_per_contract(self) -> Decimal:
        if self.original_quantity <= 0:
            return ZERO
        return self.premium / self.original_quantity

    @property
    def remaining_premium(self) -> Decimal:
        return self.premium * self.remaining_quantity / self.original_quantity


@dataclass(frozen=True)
class RealizedPL:
    """Realized profit or loss booked by a closing (or, for options, opening) event."""

    instrument_id: UUID
    close_date: datetime
    open_date: datetime
    quantity: Decimal
    proceeds: Decimal
    cost_basis: Decimal
    realized_pl: Decimal
    transaction_id: UUID
    open_transaction_id: UUID

    @property
    def holding_days(self) -> int:
        return int((self.close_date - self.open_date).total_seconds() // 86400)


@dataclass(frozen=True)
class Position:
    """Net position for one instrument. Option quantities are signed (short < 0)."""

    instrument_id: UUID
    instrument_type: InstrumentType
    quantity: Decimal
    cost_basis: Decimal
    average_price: Decimal

    @property
    def is_open(self) -> bool:
        return self.quantity != 0

    @property
    def is_short(self) -> bool:
        return self.quantity < 0


@dataclass(frozen=True)
class UnderlierSummary:
    """All positions that share one underlying ticker."""

    symbol: str
    equity_position: Optional[Position] = None
    option_positions: Tuple[Position, ...] = ()

    @property
    def total_equity_shares(self) -> Decimal:
        return self.equity_position.quantity if self.equity_position else ZERO

    @property
    def average_equity_cost(self) -> Decimal:
        return self.equity_position.average_price if self.equity_position else ZERO

    @property
    def total_equity_cost_basis(self) -> Decimal:
        return self.equity_position.cost_basis if self.equity_position else ZERO

    @property
    def open_option_contracts(self) -> int:
        """Number of option positions with a non-zero net quantity."""
        return sum(1 for position in self.option_positions if position.is_open)


@dataclass(frozen=True)
class PLSummary:
    total_realized_pl: Decimal = ZERO
    equity_realized_pl: Decimal = ZERO
    option_realized_pl: Decimal = ZERO
    # No live prices are available, so unrealized P/L is always zero.
    total_unrealized_pl: Decimal = ZERO

    @property
    def total_pl(self) -> Decimal:
        return self.total_realized_pl + self.total_unrealized_pl


@dataclass(frozen=True)
class LedgerOutput:
    """Complete derived state for one snapshot of the transaction log."""

    equity_lots: Tuple[EquityLot, ...] = ()
    option_lots: Tuple[OptionLot, ...] = ()
    positions: Tuple[Position, ...] = ()
    realized_pls: Tuple[RealizedPL, ...] = ()
    underlier_summaries: Dict[str, UnderlierSummary] = field(default_factory=dict)
    pl_summary: PLSummary = field(default_factory=PLSummary)

    @property
    def lots(self) -> Tuple[Union[EquityLot, OptionLot], ...]:
        """Equity lots followed by option lots."""
        return self.equity_lots + self.option_lots

    def position_for(self, instrument_id: UUID) -> Optional[Position]:
        for position in self.positions:
            if position.instrument_id == instrument_id:
                return position
        return None
