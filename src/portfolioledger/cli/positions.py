"""CLI commands for displaying open positions and per-underlier summaries."""

from __future__ import annotations

import json
from typing import Iterable, Mapping
from uuid import UUID

import click
from rich.table import Table

from ..core.ledger import Position, RealizedPL
from ..core.models import Instrument
from ..services.display import (
    format_currency,
    format_quantity,
    format_realized_pl,
    format_timestamp,
    instrument_label,
    position_direction,
)
from ..services.json_serializer import (
    serialize_decimal,
    serialize_position,
    serialize_realized_pl,
    serialize_underlier_summary,
)
from ..services.queries import realized_pls_for_symbol
from .utils import format_option, load_store, make_console, short_id


def _build_position_table(
    title: str, rows: Iterable[Position], instruments: Mapping[UUID, Instrument]
) -> Table:
    table = Table(title=title, expand=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Instrument", style="magenta", no_wrap=True)
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Direction", style="yellow", no_wrap=True)
    table.add_column("Quantity", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Cost Basis", justify="right")

    for position in rows:
        table.add_row(
            short_id(position.instrument_id),
            instrument_label(instruments, position.instrument_id),
            position.instrument_type.value.upper(),
            position_direction(position),
            format_quantity(position.quantity),
            format_currency(position.average_price),
            format_currency(position.cost_basis),
        )
    return table


def build_realized_table(
    title: str, rows: Iterable[RealizedPL], instruments: Mapping[UUID, Instrument]
) -> Table:
    table = Table(title=title, expand=True)
    table.add_column("Closed", style="cyan", no_wrap=True)
    table.add_column("Opened", style="cyan", no_wrap=True)
    table.add_column("Instrument", style="magenta", no_wrap=True)
    table.add_column("Quantity", justify="right")
    table.add_column("Proceeds", justify="right")
    table.add_column("Cost Basis", justify="right")
    table.add_column("Realized P&L", justify="right")

    for record in rows:
        table.add_row(
            format_timestamp(record.close_date),
            format_timestamp(record.open_date),
            instrument_label(instruments, record.instrument_id),
            format_quantity(record.quantity),
            format_currency(record.proceeds),
            format_currency(record.cost_basis),
            format_realized_pl(record.realized_pl),
        )
    return table


@click.command("positions")
@click.option("--ticker", help="Filter positions by underlying ticker symbol.")
@format_option
def positions_command(ticker: str | None, output_format: str) -> None:
    """Display open equity and option positions."""

    store = load_store()
    instruments = store.instruments
    positions = [position for position in store.output.positions if position.is_open]
    if ticker:
        ticker_key = ticker.strip().upper()
        positions = [
            position
            for position in positions
            if position.instrument_id in instruments
            and instruments[position.instrument_id].underlying_ticker == ticker_key
        ]

    if output_format.lower() == "json":
        payload = {"positions": [serialize_position(pos, instruments) for pos in positions]}
        click.echo(json.dumps(payload, indent=2))
        return

    console = make_console()
    if not positions:
        console.print("[yellow]No positions match the requested filters.[/yellow]")
        return
    console.print(_build_position_table("Open Positions", positions, instruments))


@click.command("underlier")
@click.argument("symbol")
@format_option
def underlier_command(symbol: str, output_format: str) -> None:
    """Summarize the stock and options held on SYMBOL."""

    store = load_store()
    instruments = store.instruments
    symbol_key = symbol.strip().upper()
    summary = store.output.underlier_summaries.get(symbol_key)
    realized, realized_total = realized_pls_for_symbol(store.output, instruments, symbol_key)

    if output_format.lower() == "json":
        payload = {
            "symbol": symbol_key,
            "summary": serialize_underlier_summary(summary, instruments) if summary else None,
            "realized_pls": [serialize_realized_pl(record) for record in realized],
            "realized_total": serialize_decimal(realized_total),
        }
        click.echo(json.dumps(payload, indent=2))
        return

    console = make_console()
    if summary is None and not realized:
        console.print(f"[yellow]No positions or realized P&L found for {symbol_key}.[/yellow]")
        return

    if summary is not None:
        console.print(f"[bold]{symbol_key}[/bold]")
        console.print(
            f"Shares: {format_quantity(summary.total_equity_shares)}  "
            f"Avg cost: {format_currency(summary.average_equity_cost)}  "
            f"Cost basis: {format_currency(summary.total_equity_cost_basis)}  "
            f"Open option positions: {summary.open_option_contracts}"
        )
        open_positions = [
            position
            for position in (summary.equity_position, *summary.option_positions)
            if position is not None and position.is_open
        ]
        if open_positions:
            console.print(
                _build_position_table(f"{symbol_key} Positions", open_positions, instruments)
            )
    if realized:
        console.print(build_realized_table(f"{symbol_key} Realized P&L", realized, instruments))
    console.print(f"Realized total: {format_realized_pl(realized_total)}")
