"""
Command-line interface for portfolioledger.

Provides the CLI command group and registers individual subcommands.
"""

from __future__ import annotations

import logging

import click

from .. import __version__
from .csv_commands import export_command, import_command
from .lifecycle import assign_command, close_command
from .pnl import pnl_command
from .positions import positions_command, underlier_command
from .trade import trade
from .transactions import delete_command, transactions_command


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log engine and storage activity.")
def main(verbose: bool) -> None:
    """PortfolioLedger - stock and option lot tracking with FIFO realized P&L."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register CLI subcommands
main.add_command(trade)
main.add_command(transactions_command)
main.add_command(delete_command)
main.add_command(positions_command)
main.add_command(underlier_command)
main.add_command(pnl_command)
main.add_command(assign_command)
main.add_command(close_command)
main.add_command(export_command)
main.add_command(import_command)


if __name__ == "__main__":
    main()
