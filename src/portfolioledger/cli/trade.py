"""CLI commands for recording equity and option trades."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

import click
from pydantic import ValidationError

from ..core.models import (
    Action,
    EquityInstrument,
    Instrument,
    OptionInstrument,
    OptionType,
    Transaction,
)
from ..services.display import format_action, format_currency, format_quantity
from ..services.store import LedgerStore
from .utils import load_store, parse_decimal, parse_timestamp_option, short_id

OPTION_ACTION_ALIASES = {
    "bto": Action.BUY_TO_OPEN,
    "sto": Action.SELL_TO_OPEN,
    "btc": Action.BUY_TO_CLOSE,
    "stc": Action.SELL_TO_CLOSE,
}
OptionActionChoice = click.Choice(
    sorted(OPTION_ACTION_ALIASES)
    + sorted(action.value for action in OPTION_ACTION_ALIASES.values()),
    case_sensitive=False,
)
EquityActionChoice = click.Choice([Action.BUY.value, Action.SELL.value], case_sensitive=False)


def _parse_option_action(value: str) -> Action:
    lowered = value.lower()
    return OPTION_ACTION_ALIASES.get(lowered) or Action(lowered)


def _shared_trade_options(func):
    """Attach the quantity, price and bookkeeping options shared by every trade command."""

    option_decorators = [
        click.option("--quantity", "-q", required=True, help="Shares or contracts traded."),
        click.option("--price", "-p", required=True, help="Price per share or contract."),
        click.option("--fees", default="0", show_default=True, help="Total fees for the trade."),
        click.option(
            "--date",
            "timestamp",
            help="Trade date or timestamp (ISO-8601, UTC unless offset given). Defaults to now.",
        ),
        click.option("--notes", default="", help="Free-form notes."),
        click.option("--tag", "tags", multiple=True, help="Tag to attach (repeatable)."),
    ]
    for decorator in reversed(option_decorators):
        func = decorator(func)
    return func


def _build_transaction(  # noqa: PLR0913
    *,
    instrument_id: UUID,
    action: Action,
    quantity: str,
    price: str,
    fees: str,
    timestamp: Optional[str],
    notes: str,
    tags: Sequence[str],
) -> Transaction:
    trade_time: datetime = parse_timestamp_option(timestamp)
    try:
        return Transaction(
            instrument_id=instrument_id,
            timestamp=trade_time,
            action=action,
            quantity=parse_decimal(quantity, "quantity"),
            price=parse_decimal(price, "price"),
            fees=parse_decimal(fees, "fees"),
            notes=notes,
            tags=tuple(tag.strip() for tag in tags if tag.strip()),
        )
    except ValidationError as exc:
        raise click.BadParameter(_first_error(exc)) from exc


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}" if location else str(exc)


@click.group(name="trade")
def trade() -> None:
    """Record equity and option trades."""


@trade.command("equity")
@click.argument("symbol")
@click.option(
    "--action",
    "-a",
    type=EquityActionChoice,
    required=True,
    help="buy or sell.",
)
@_shared_trade_options
def trade_equity(  # noqa: PLR0913
    symbol: str,
    action: str,
    quantity: str,
    price: str,
    fees: str,
    timestamp: Optional[str],
    notes: str,
    tags: Sequence[str],
) -> None:
    """Record a stock trade for SYMBOL."""

    store = load_store()
    try:
        instrument = store.find_equity(symbol) or EquityInstrument(symbol=symbol)
    except ValidationError as exc:
        raise click.BadParameter(_first_error(exc), param_hint="SYMBOL") from exc
    transaction = _build_transaction(
        instrument_id=instrument.id,
        action=Action(action.lower()),
        quantity=quantity,
        price=price,
        fees=fees,
        timestamp=timestamp,
        notes=notes,
        tags=tags,
    )
    _record(store, instrument, transaction)


@trade.command("option")
@click.argument("underlying")
@click.option("--expiry", required=True, help="Expiration date (YYYY-MM-DD).")
@click.option("--strike", required=True, help="Strike price.")
@click.option(
    "--type",
    "call_put",
    type=click.Choice(["call", "put", "c", "p"], case_sensitive=False),
    required=True,
    help="call or put.",
)
@click.option(
    "--action",
    "-a",
    type=OptionActionChoice,
    required=True,
    help="bto, sto, btc or stc (or the full action name).",
)
@click.option(
    "--multiplier",
    type=click.IntRange(min=1),
    default=100,
    show_default=True,
    help="Shares per contract.",
)
@_shared_trade_options
def trade_option(  # noqa: PLR0913
    underlying: str,
    expiry: str,
    strike: str,
    call_put: str,
    action: str,
    multiplier: int,
    quantity: str,
    price: str,
    fees: str,
    timestamp: Optional[str],
    notes: str,
    tags: Sequence[str],
) -> None:
    """Record an option trade on UNDERLYING."""

    try:
        expiry_date = datetime.strptime(expiry.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise click.BadParameter(f"Invalid expiry: {exc}", param_hint="--expiry") from exc
    strike_value = parse_decimal(strike, "strike")
    option_type = OptionType.CALL if call_put.lower().startswith("c") else OptionType.PUT

    try:
        candidate = OptionInstrument(
            underlying_symbol=underlying,
            expiry=expiry_date,
            strike=strike_value,
            call_put=option_type,
            multiplier=multiplier,
        )
    except ValidationError as exc:
        raise click.BadParameter(_first_error(exc)) from exc

    store = load_store()
    instrument = store.find_option(candidate) or candidate
    transaction = _build_transaction(
        instrument_id=instrument.id,
        action=_parse_option_action(action),
        quantity=quantity,
        price=price,
        fees=fees,
        timestamp=timestamp,
        notes=notes,
        tags=tags,
    )
    _record(store, instrument, transaction)


def _record(store: LedgerStore, instrument: Instrument, transaction: Transaction) -> None:
    """Persist a new instrument only once its first transaction has validated."""
    if instrument.id not in store.instruments:
        store.add_instrument(instrument)
    store.add_transaction(transaction)
    _echo_recorded(transaction, instrument.display_name)


def _echo_recorded(transaction: Transaction, label: str) -> None:
    click.echo(
        f"Recorded {format_action(transaction)} "
        f"{format_quantity(transaction.quantity)} {label} @ {format_currency(transaction.price)} "
        f"(id {short_id(transaction.id)})"
    )
