"""Core data models: instruments, transactions and derived ledger records."""

from .ledger import (
    EquityLot,
    LedgerOutput,
    OptionLot,
    PLSummary,
    Position,
    RealizedPL,
    UnderlierSummary,
)
from .models import (
    EQUITY_ACTIONS,
    OPTION_ACTIONS,
    Action,
    EquityInstrument,
    Instrument,
    InstrumentType,
    OptionInstrument,
    OptionType,
    Transaction,
    parse_instrument,
)

__all__ = [
    "Action",
    "EQUITY_ACTIONS",
    "OPTION_ACTIONS",
    "EquityInstrument",
    "OptionInstrument",
    "Instrument",
    "InstrumentType",
    "OptionType",
    "Transaction",
    "parse_instrument",
    "EquityLot",
    "OptionLot",
    "RealizedPL",
    "Position",
    "UnderlierSummary",
    "PLSummary",
    "LedgerOutput",
]
