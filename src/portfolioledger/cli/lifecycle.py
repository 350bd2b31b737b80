"""CLI commands that close positions or record option assignment."""

from __future__ import annotations

from typing import Optional

import click

from ..services.assignment import AssignmentPreconditionError
from ..services.display import format_action, format_currency, format_quantity, instrument_label
from ..services.store import NoOpenPositionError
from .utils import (
    load_store,
    parse_decimal,
    parse_timestamp_option,
    resolve_instrument_id,
    resolve_transaction_id,
    short_id,
)


@click.command("assign")
@click.argument("transaction_id")
@click.option(
    "--date",
    "assignment_date",
    help="Assignment date (ISO-8601, UTC unless an offset is given). Defaults to now.",
)
def assign_command(transaction_id: str, assignment_date: Optional[str]) -> None:
    """
    Record assignment of the option opened by TRANSACTION_ID.

    Appends a zero-price buy-to-close for the contracts and the matching stock trade at the
    strike adjusted by the premium per share.
    """

    timestamp = parse_timestamp_option(assignment_date)
    store = load_store()
    resolved = resolve_transaction_id(store, transaction_id)
    try:
        pair = store.assign_option(resolved, timestamp)
    except AssignmentPreconditionError as exc:
        raise click.ClickException(str(exc)) from exc

    instruments = store.instruments
    for txn in pair:
        click.echo(
            f"Recorded {format_action(txn)} {format_quantity(txn.quantity)} "
            f"{instrument_label(instruments, txn.instrument_id)} @ {format_currency(txn.price)} "
            f"(id {short_id(txn.id)})"
        )


@click.command("close")
@click.argument("instrument_id")
@click.option("--price", "-p", required=True, help="Closing price per share or contract.")
@click.option("--fees", default="0", show_default=True, help="Total fees for the close.")
@click.option(
    "--date",
    "close_date",
    help="Close date (ISO-8601, UTC unless an offset is given). Defaults to now.",
)
@click.option("--notes", default="", help="Notes for the closing transaction.")
def close_command(
    instrument_id: str,
    price: str,
    fees: str,
    close_date: Optional[str],
    notes: str,
) -> None:
    """Close the whole open position in INSTRUMENT_ID (a full id or unique prefix)."""

    price_value = parse_decimal(price, "price")
    fees_value = parse_decimal(fees, "fees")
    if price_value < 0 or fees_value < 0:
        raise click.BadParameter("price and fees must not be negative.")
    timestamp = parse_timestamp_option(close_date)

    store = load_store()
    resolved = resolve_instrument_id(store, instrument_id)
    try:
        txn = store.close_position(
            resolved,
            price=price_value,
            fees=fees_value,
            timestamp=timestamp,
            notes=notes,
        )
    except NoOpenPositionError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Recorded {format_action(txn)} {format_quantity(txn.quantity)} "
        f"{instrument_label(store.instruments, txn.instrument_id)} @ "
        f"{format_currency(txn.price)} (id {short_id(txn.id)})"
    )
