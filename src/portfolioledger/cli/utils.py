"""Shared helpers for portfolioledger CLI commands."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import click
from rich.console import Console

from ..persistence import SQLiteRepository
from ..services.csv_service import parse_timestamp
from ..services.store import LedgerStore

FormatChoice = click.Choice(["table", "json"], case_sensitive=False)

format_option = click.option(
    "--format",
    "output_format",
    type=FormatChoice,
    default="table",
    show_default=True,
    help="Output format.",
)


def load_store() -> LedgerStore:
    """Load the persisted ledger and compute its current snapshot."""
    return LedgerStore.load(SQLiteRepository())


def make_console() -> Console:
    return Console(width=200, force_terminal=False)


def parse_decimal(value: str, label: str) -> Decimal:
    try:
        return Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        raise click.BadParameter(f"{label} must be a valid decimal number.") from None


def parse_timestamp_option(value: Optional[str]) -> datetime:
    """
    Parse an ISO-8601 date or timestamp; ``None`` means now.

    Values without an offset are UTC, matching how the log stores timestamps.
    """
    if value is None:
        return datetime.now(timezone.utc).replace(microsecond=0)
    try:
        return parse_timestamp(value)
    except ValueError as exc:
        raise click.BadParameter(f"Invalid date: {exc}") from exc


def resolve_transaction_id(store: LedgerStore, value: str) -> UUID:
    """
    Resolve a full transaction id or a unique prefix of one.

    Tables show shortened ids, so any unambiguous prefix is accepted.
    """
    text = value.strip().lower()
    try:
        return UUID(text)
    except ValueError:
        pass
    matches = [txn.id for txn in store.transactions if str(txn.id).startswith(text)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise click.ClickException(f"No transaction found with id {value}.")
    raise click.ClickException(f"Transaction id prefix {value} is ambiguous.")


def resolve_instrument_id(store: LedgerStore, value: str) -> UUID:
    """Resolve a full instrument id or a unique prefix of one."""
    text = value.strip().lower()
    try:
        return UUID(text)
    except ValueError:
        pass
    matches = [iid for iid in store.instruments if str(iid).startswith(text)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise click.ClickException(f"No instrument found with id {value}.")
    raise click.ClickException(f"Instrument id prefix {value} is ambiguous.")


def short_id(value: UUID) -> str:
    return str(value)[:8]
