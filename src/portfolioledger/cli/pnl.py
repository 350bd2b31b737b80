"""CLI command for reporting realized profit and loss."""

from __future__ import annotations

import json
from typing import Optional

import click
from rich.table import Table

from ..core.ledger import PLSummary
from ..services.display import format_realized_pl
from ..services.json_serializer import (
    serialize_decimal,
    serialize_pl_summary,
    serialize_realized_pl,
)
from ..services.queries import realized_pls_for_symbol
from .positions import build_realized_table
from .utils import format_option, load_store, make_console


def _build_summary_table(summary: PLSummary) -> Table:
    table = Table(title="P&L Summary", expand=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Amount", justify="right")
    table.add_row("Equity realized", format_realized_pl(summary.equity_realized_pl))
    table.add_row("Option realized", format_realized_pl(summary.option_realized_pl))
    table.add_row("Total realized", format_realized_pl(summary.total_realized_pl))
    table.add_row("Unrealized", format_realized_pl(summary.total_unrealized_pl))
    table.add_row("[bold]Total P&L[/bold]", format_realized_pl(summary.total_pl))
    return table


@click.command("pnl")
@click.option("--ticker", help="Only report realized records for this underlying ticker.")
@click.option("--details", is_flag=True, help="Also list every realized record.")
@format_option
def pnl_command(ticker: Optional[str], details: bool, output_format: str) -> None:
    """Report realized P&L, split by equity and options."""

    store = load_store()
    output = store.output
    instruments = store.instruments

    if ticker:
        records, ticker_total = realized_pls_for_symbol(output, instruments, ticker)
    else:
        records, ticker_total = list(output.realized_pls), output.pl_summary.total_realized_pl

    if output_format.lower() == "json":
        payload = {
            "summary": serialize_pl_summary(output.pl_summary),
            "realized_pls": [serialize_realized_pl(record) for record in records],
        }
        if ticker:
            payload["ticker"] = ticker.strip().upper()
            payload["ticker_realized_pl"] = serialize_decimal(ticker_total)
        click.echo(json.dumps(payload, indent=2))
        return

    console = make_console()
    console.print(_build_summary_table(output.pl_summary))
    if ticker:
        console.print(
            f"Realized P&L for {ticker.strip().upper()}: {format_realized_pl(ticker_total)}"
        )
    if details or ticker:
        if records:
            console.print(build_realized_table("Realized P&L", records, instruments))
        else:
            console.print("[yellow]No realized P&L records.[/yellow]")
