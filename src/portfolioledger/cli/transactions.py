"""CLI commands for browsing and deleting logged transactions."""

from __future__ import annotations

import json
from typing import Iterable, Mapping, Optional
from uuid import UUID

import click
from rich.table import Table

from ..core.models import Instrument, Transaction
from ..services.display import (
    format_action,
    format_currency,
    format_quantity,
    format_timestamp,
    instrument_label,
)
from ..services.json_serializer import serialize_transaction
from ..services.queries import search_transactions, transactions_for_symbol
from .utils import (
    format_option,
    load_store,
    make_console,
    resolve_transaction_id,
    short_id,
)


def _build_transaction_table(
    transactions: Iterable[Transaction], instruments: Mapping[UUID, Instrument]
) -> Table:
    table = Table(title="Transactions", expand=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Instrument", style="magenta", no_wrap=True)
    table.add_column("Action", style="green", no_wrap=True)
    table.add_column("Quantity", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("Net", justify="right")
    table.add_column("Notes", style="yellow")
    table.add_column("Tags", style="blue")

    for txn in transactions:
        table.add_row(
            short_id(txn.id),
            format_timestamp(txn.timestamp),
            instrument_label(instruments, txn.instrument_id),
            format_action(txn),
            format_quantity(txn.quantity),
            format_currency(txn.price),
            format_currency(txn.fees),
            format_currency(txn.net_amount),
            txn.notes,
            ", ".join(txn.tags),
        )
    return table


@click.command("transactions")
@click.option("--search", "search_text", default="", help="Filter by notes or tags.")
@click.option("--symbol", help="Only show transactions on this underlying ticker.")
@click.option("--limit", type=click.IntRange(min=1), help="Show at most this many rows.")
@format_option
def transactions_command(
    search_text: str,
    symbol: Optional[str],
    limit: Optional[int],
    output_format: str,
) -> None:
    """List logged transactions, newest first."""

    store = load_store()
    rows = search_transactions(store.transactions, search_text)
    if symbol:
        allowed = {txn.id for txn in transactions_for_symbol(rows, store.instruments, symbol)}
        rows = [txn for txn in rows if txn.id in allowed]
    if limit is not None:
        rows = rows[:limit]

    if output_format.lower() == "json":
        payload = {"transactions": [serialize_transaction(txn) for txn in rows]}
        click.echo(json.dumps(payload, indent=2))
        return

    console = make_console()
    if not rows:
        console.print("[yellow]No transactions match the requested filters.[/yellow]")
        return
    console.print(_build_transaction_table(rows, store.instruments))


@click.command("delete")
@click.argument("transaction_id")
@click.option("--yes", is_flag=True, help="Delete without asking for confirmation.")
def delete_command(transaction_id: str, yes: bool) -> None:
    """Delete the transaction TRANSACTION_ID (a full id or unique prefix)."""

    store = load_store()
    resolved = resolve_transaction_id(store, transaction_id)
    txn = store.get_transaction(resolved)
    label = instrument_label(store.instruments, txn.instrument_id)
    summary = f"{format_action(txn)} {format_quantity(txn.quantity)} {label}"
    if not yes:
        click.confirm(f"Delete {summary} ({short_id(txn.id)})?", abort=True)

    store.delete_transaction(resolved)
    click.echo(f"Deleted {summary} ({short_id(txn.id)}).")
