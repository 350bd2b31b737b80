"""Per-underlier grouping and aggregate realized P/L."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional
from uuid import UUID

from ..core.ledger import PLSummary, Position, RealizedPL, UnderlierSummary
from ..core.models import EquityInstrument, Instrument, OptionInstrument

ZERO = Decimal("0")


@dataclass
class _UnderlierAccumulator:
    equity_position: Optional[Position] = None
    option_positions: List[Position] = field(default_factory=list)


def group_by_underlier(
    positions: Iterable[Position],
    instruments: Mapping[UUID, Instrument],
) -> Dict[str, UnderlierSummary]:
    """Group positions by the underlying ticker of their instrument."""
    grouped: Dict[str, _UnderlierAccumulator] = {}
    for position in positions:
        instrument = instruments.get(position.instrument_id)
        if instrument is None:
            continue
        entry = grouped.setdefault(instrument.underlying_ticker, _UnderlierAccumulator())
        if isinstance(instrument, EquityInstrument):
            entry.equity_position = position
        else:
            entry.option_positions.append(position)

    return {
        symbol: UnderlierSummary(
            symbol=symbol,
            equity_position=entry.equity_position,
            option_positions=tuple(entry.option_positions),
        )
        for symbol, entry in grouped.items()
    }


def summarize_pl(
    realized_pls: Iterable[RealizedPL],
    instruments: Mapping[UUID, Instrument],
) -> PLSummary:
    """Total realized P/L, split by instrument class."""
    total = ZERO
    equity_total = ZERO
    option_total = ZERO
    for record in realized_pls:
        total += record.realized_pl
        instrument = instruments.get(record.instrument_id)
        if isinstance(instrument, EquityInstrument):
            equity_total += record.realized_pl
        elif isinstance(instrument, OptionInstrument):
            option_total += record.realized_pl

    return PLSummary(
        total_realized_pl=total,
        equity_realized_pl=equity_total,
        option_realized_pl=option_total,
        total_unrealized_pl=ZERO,
    )
