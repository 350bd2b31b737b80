"""Services for ledger computation, persistence workflows and presentation."""

from .assignment import (
    ASSIGNMENT_TAG,
    AssignmentPreconditionError,
    AssignmentTransactions,
    generate_assignment_transactions,
)
from .csv_service import (
    CsvExportError,
    CsvImportError,
    ExportPaths,
    ImportResult,
    export_all,
    import_all,
)
from .display import format_currency, format_quantity
from .json_serializer import (
    serialize_decimal,
    serialize_ledger_output,
    serialize_position,
    serialize_realized_pl,
    serialize_transaction,
)
from .ledger import process, sort_transactions
from .lot_matching import MatchResult, match_lots
from .positions import aggregate_positions
from .queries import realized_pls_for_symbol, search_transactions, transactions_for_symbol
from .store import (
    InstrumentNotFoundError,
    LedgerStore,
    MergeResult,
    NoOpenPositionError,
    TransactionNotFoundError,
)
from .summaries import group_by_underlier, summarize_pl

__all__ = [
    "ASSIGNMENT_TAG",
    "AssignmentPreconditionError",
    "AssignmentTransactions",
    "generate_assignment_transactions",
    "CsvExportError",
    "CsvImportError",
    "ExportPaths",
    "ImportResult",
    "export_all",
    "import_all",
    "format_currency",
    "format_quantity",
    "serialize_decimal",
    "serialize_ledger_output",
    "serialize_position",
    "serialize_realized_pl",
    "serialize_transaction",
    "process",
    "sort_transactions",
    "MatchResult",
    "match_lots",
    "aggregate_positions",
    "realized_pls_for_symbol",
    "search_transactions",
    "transactions_for_symbol",
    "InstrumentNotFoundError",
    "LedgerStore",
    "MergeResult",
    "NoOpenPositionError",
    "TransactionNotFoundError",
    "group_by_underlier",
    "summarize_pl",
]
