"""CLI commands for exporting and importing the ledger as CSV files."""

from __future__ import annotations

from pathlib import Path

import click

from ..services.csv_service import (
    INSTRUMENTS_FILENAME,
    TRANSACTIONS_FILENAME,
    CsvExportError,
    CsvImportError,
    export_all,
    import_all,
)
from .utils import load_store, make_console


@click.command("export")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help=f"Directory that receives {INSTRUMENTS_FILENAME} and {TRANSACTIONS_FILENAME}.",
)
def export_command(directory: Path) -> None:
    """Export instruments and transactions to CSV."""

    store = load_store()
    try:
        paths = export_all(directory, store.instruments.values(), store.transactions)
    except CsvExportError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(
        f"Exported {len(store.instruments)} instruments to {paths.instruments} and "
        f"{len(store.transactions)} transactions to {paths.transactions}."
    )


@click.command("import")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory containing the exported CSV files.",
)
@click.option(
    "--instruments",
    "instruments_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"Instrument CSV file (defaults to DIR/{INSTRUMENTS_FILENAME}).",
)
@click.option(
    "--transactions",
    "transactions_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help=f"Transaction CSV file (defaults to DIR/{TRANSACTIONS_FILENAME}).",
)
def import_command(
    directory: Path,
    instruments_path: Path | None,
    transactions_path: Path | None,
) -> None:
    """Merge instruments and transactions from CSV into the ledger."""

    instruments_file = instruments_path or directory / INSTRUMENTS_FILENAME
    transactions_file = transactions_path or directory / TRANSACTIONS_FILENAME
    for path in (instruments_file, transactions_file):
        if not path.exists():
            raise click.ClickException(f"CSV file not found: {path}")

    try:
        result = import_all(instruments_file, transactions_file)
    except CsvImportError as exc:
        raise click.ClickException(str(exc)) from exc

    store = load_store()
    merged = store.merge(result.instruments, result.transactions)

    console = make_console()
    console.print(
        f"[green]Imported {merged.instruments_added} new instruments "
        f"({merged.instruments_updated} updated) and {merged.transactions_added} "
        f"transactions.[/green]"
    )
    if merged.transactions_skipped:
        console.print(
            f"[yellow]Skipped {merged.transactions_skipped} transactions already in the "
            f"ledger.[/yellow]"
        )
    if result.skipped_rows:
        console.print(f"[yellow]Skipped {result.skipped_rows} malformed rows.[/yellow]")
