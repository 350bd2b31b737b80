"""
PortfolioLedger - stock and option portfolio ledger.

Replays a transaction log into FIFO lots, net positions, per-underlier summaries and
realized profit and loss.
"""

__version__ = "0.1.0"

# Import main components for easy access
from .core.ledger import (
    EquityLot,
    LedgerOutput,
    OptionLot,
    PLSummary,
    Position,
    RealizedPL,
    UnderlierSummary,
)
from .core.models import (
    Action,
    EquityInstrument,
    Instrument,
    OptionInstrument,
    OptionType,
    Transaction,
)
from .services.assignment import generate_assignment_transactions
from .services.ledger import process, sort_transactions
from .services.store import LedgerStore

__all__ = [
    "Action",
    "EquityInstrument",
    "OptionInstrument",
    "Instrument",
    "OptionType",
    "Transaction",
    "EquityLot",
    "OptionLot",
    "RealizedPL",
    "Position",
    "UnderlierSummary",
    "PLSummary",
    "LedgerOutput",
    "process",
    "sort_transactions",
    "generate_assignment_transactions",
    "LedgerStore",
]
