"""
CSV import and export for the instrument catalog and transaction log.

The column layout is fixed so files round-trip between exports and imports:

* ``instruments.csv``: ``id,type,symbol,underlyingSymbol,expiry,strike,callPut,multiplier``
* ``transactions.csv``: ``id,instrumentId,timestamp,action,quantity,price,fees,notes,tags,
  linkGroupId,consumedByAssignment``

Decimal fields are written in plain notation and parsed back with :class:`~decimal.Decimal`, so
quantity, price and fee precision survives the trip through text.
"""

from __future__ import annotations

import csv
import io
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Tuple, TypeVar
from uuid import UUID

from pydantic import ValidationError

from ..core.models import (
    TAG_SEPARATOR,
    EquityInstrument,
    Instrument,
    Transaction,
    parse_instrument,
)
from ..persistence.storage import decimal_to_text

logger = logging.getLogger(__name__)

INSTRUMENTS_FILENAME = "instruments.csv"
TRANSACTIONS_FILENAME = "transactions.csv"

INSTRUMENT_COLUMNS = (
    "id",
    "type",
    "symbol",
    "underlyingSymbol",
    "expiry",
    "strike",
    "callPut",
    "multiplier",
)
TRANSACTION_COLUMNS = (
    "id",
    "instrumentId",
    "timestamp",
    "action",
    "quantity",
    "price",
    "fees",
    "notes",
    "tags",
    "linkGroupId",
    "consumedByAssignment",
)
T = TypeVar("T")


class CsvExportError(RuntimeError):
    """Raised when exported files cannot be written; existing files are left untouched."""


class CsvImportError(ValueError):
    """Raised when an import file lacks one of the required columns."""


@dataclass(frozen=True)
class ExportPaths:
    instruments: Path
    transactions: Path


@dataclass(frozen=True)
class ImportResult:
    """Parsed rows plus the number of rows that were skipped as malformed."""

    instruments: List[Instrument]
    transactions: List[Transaction]
    skipped_rows: int = 0


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_timestamp(value: datetime) -> str:
    return value.isoformat()


# Export ------------------------------------------------------------------


def instruments_to_csv(instruments: Iterable[Instrument]) -> str:
    """Render the instrument catalog as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(INSTRUMENT_COLUMNS)
    for instrument in instruments:
        if isinstance(instrument, EquityInstrument):
            writer.writerow([str(instrument.id), "equity", instrument.symbol, "", "", "", "", ""])
        else:
            writer.writerow(
                [
                    str(instrument.id),
                    "option",
                    "",
                    instrument.underlying_symbol,
                    instrument.expiry.isoformat(),
                    decimal_to_text(instrument.strike),
                    instrument.call_put.value,
                    str(instrument.multiplier),
                ]
            )
    return buffer.getvalue()


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Render the transaction log as CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TRANSACTION_COLUMNS)
    for txn in transactions:
        writer.writerow(
            [
                str(txn.id),
                str(txn.instrument_id),
                format_timestamp(txn.timestamp),
                txn.action.value,
                decimal_to_text(txn.quantity),
                decimal_to_text(txn.price),
                decimal_to_text(txn.fees),
                txn.notes,
                TAG_SEPARATOR.join(txn.tags),
                str(txn.link_group_id) if txn.link_group_id else "",
                "true" if txn.consumed_by_assignment else "false",
            ]
        )
    return buffer.getvalue()


def _write_temp(path: Path, content: str) -> Path:
    """Write ``content`` to a temp file next to ``path`` and return the temp path."""
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
    return Path(temp_name)


def _replace_together(staged: List[Tuple[Path, Path]]) -> None:
    """
    Move every staged temp file onto its target.

    If a later replace fails, targets that were already replaced get their previous contents
    back (or are removed when they did not exist), so the files never mix two exports.
    """
    previous = {target: target.read_bytes() if target.exists() else None for _, target in staged}
    replaced: List[Path] = []
    try:
        for temp, target in staged:
            os.replace(temp, target)
            replaced.append(target)
    except OSError:
        for target in replaced:
            content = previous[target]
            if content is None:
                target.unlink(missing_ok=True)
            else:
                target.write_bytes(content)
        raise


def export_all(
    directory: Path | str,
    instruments: Iterable[Instrument],
    transactions: Iterable[Transaction],
) -> ExportPaths:
    """
    Write ``instruments.csv`` and ``transactions.csv`` into ``directory``.

    Both files are rendered and staged as temp files before either target is replaced. A failure
    at any step leaves the previous pair of files as it was.
    """
    target = Path(directory).expanduser()
    paths = ExportPaths(
        instruments=target / INSTRUMENTS_FILENAME,
        transactions=target / TRANSACTIONS_FILENAME,
    )
    instruments_text = instruments_to_csv(instruments)
    transactions_text = transactions_to_csv(transactions)
    staged: List[Tuple[Path, Path]] = []
    try:
        target.mkdir(parents=True, exist_ok=True)
        staged.append((_write_temp(paths.instruments, instruments_text), paths.instruments))
        staged.append((_write_temp(paths.transactions, transactions_text), paths.transactions))
        _replace_together(staged)
    except OSError as exc:
        raise CsvExportError(f"Export to {target} failed: {exc}") from exc
    finally:
        for temp, _ in staged:
            temp.unlink(missing_ok=True)
    logger.info("Exported ledger to %s and %s", paths.instruments, paths.transactions)
    return paths


# Import ------------------------------------------------------------------


def _read_rows(path: Path | str, columns: Tuple[str, ...]) -> List[Dict[str, str]]:
    with open(path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        header = reader.fieldnames or []
        missing = [column for column in columns if column not in header]
        if missing:
            raise CsvImportError(f"{path}: missing columns {', '.join(missing)}")
        return list(reader)


def _parse_rows(
    rows: List[Dict[str, str]], parser: Callable[[Dict[str, str]], T], label: str
) -> Tuple[List[T], int]:
    parsed: List[T] = []
    skipped = 0
    for row_number, row in enumerate(rows, start=2):
        try:
            parsed.append(parser(row))
        except (ValidationError, ValueError, TypeError, InvalidOperation) as exc:
            skipped += 1
            logger.warning("Skipping malformed %s row %d: %s", label, row_number, exc)
    return parsed, skipped


def instrument_from_row(row: Dict[str, str]) -> Instrument:
    kind = (row.get("type") or "").strip().lower()
    if kind == "equity":
        return parse_instrument(
            {"kind": "equity", "id": UUID(row["id"]), "symbol": row.get("symbol") or ""}
        )
    if kind == "option":
        return parse_instrument(
            {
                "kind": "option",
                "id": UUID(row["id"]),
                "underlying_symbol": row.get("underlyingSymbol") or "",
                "expiry": _parse_expiry(row.get("expiry") or ""),
                "strike": Decimal(row["strike"]),
                "call_put": row.get("callPut") or "",
                "multiplier": int(row["multiplier"]),
            }
        )
    raise ValueError(f"unknown instrument type {kind!r}")


def _parse_expiry(value: str) -> date:
    # Older exports carry a full ISO-8601 timestamp for the expiry.
    text = value.strip()
    if "T" in text:
        return parse_timestamp(text).date()
    return date.fromisoformat(text)


def transaction_from_row(row: Dict[str, str]) -> Transaction:
    link_group = (row.get("linkGroupId") or "").strip()
    tags = tuple(tag for tag in (row.get("tags") or "").split(TAG_SEPARATOR) if tag)
    return Transaction(
        id=UUID(row["id"]),
        instrument_id=UUID(row["instrumentId"]),
        timestamp=parse_timestamp(row["timestamp"]),
        action=row["action"],
        quantity=Decimal(row["quantity"]),
        price=Decimal(row["price"]),
        fees=Decimal(row["fees"]),
        notes=row.get("notes") or "",
        tags=tags,
        link_group_id=UUID(link_group) if link_group else None,
        consumed_by_assignment=(row.get("consumedByAssignment") or "").strip().lower() == "true",
    )


def import_instruments(path: Path | str) -> Tuple[List[Instrument], int]:
    rows = _read_rows(path, INSTRUMENT_COLUMNS)
    return _parse_rows(rows, instrument_from_row, "instrument")


def import_transactions(path: Path | str) -> Tuple[List[Transaction], int]:
    rows = _read_rows(path, TRANSACTION_COLUMNS)
    return _parse_rows(rows, transaction_from_row, "transaction")


def import_all(
    instruments_path: Path | str,
    transactions_path: Path | str,
) -> ImportResult:
    """Read both files. Malformed rows are skipped and counted, not fatal."""
    instruments, skipped_instruments = import_instruments(instruments_path)
    transactions, skipped_transactions = import_transactions(transactions_path)
    return ImportResult(
        instruments=instruments,
        transactions=transactions,
        skipped_rows=skipped_instruments + skipped_transactions,
    )