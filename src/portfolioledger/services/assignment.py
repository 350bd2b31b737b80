"""Synthesize the transaction pair that records an option assignment."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import NamedTuple
from uuid import uuid4

from ..core.models import (
    Action,
    EquityInstrument,
    Instrument,
    OptionInstrument,
    Transaction,
)

ASSIGNMENT_TAG = "assignment"


class AssignmentPreconditionError(ValueError):
    """Raised when assignment is requested for something that is not an assignable option."""


class AssignmentTransactions(NamedTuple):
    """Linked option close and equity trade sharing one ``link_group_id``."""

    option_close: Transaction
    equity_trade: Transaction


def generate_assignment_transactions(
    option_transaction: Transaction,
    instrument: Instrument,
    assignment_date: datetime,
    equity_instrument: Instrument,
) -> AssignmentTransactions:
    """
    Build the transactions that record ``option_transaction`` being assigned.

    The option leg is closed with a zero-price ``buy_to_close`` flagged as consumed by the
    assignment. The equity leg moves ``contracts * multiplier`` shares at the strike, adjusted by
    the per-share premium of the original sale: a put buys shares at ``strike - premium`` and a
    call sells them at ``strike + premium``.

    Callers append both transactions to the log; the engine picks them up on the next recompute.
    """
    if not isinstance(instrument, OptionInstrument):
        raise AssignmentPreconditionError(
            f"Instrument {getattr(instrument, 'id', instrument)} is not an option"
        )
    if not isinstance(equity_instrument, EquityInstrument):
        raise AssignmentPreconditionError(
            f"Instrument {getattr(equity_instrument, 'id', equity_instrument)} is not an equity"
        )

    multiplier = Decimal(instrument.multiplier)
    link_group_id = uuid4()
    contract_quantity = option_transaction.quantity
    share_quantity = contract_quantity * multiplier
    premium_per_share = option_transaction.price / multiplier

    option_close = Transaction(
        instrument_id=option_transaction.instrument_id,
        timestamp=assignment_date,
        action=Action.BUY_TO_CLOSE,
        quantity=contract_quantity,
        price=Decimal("0"),
        fees=Decimal("0"),
        notes="Assigned",
        tags=(ASSIGNMENT_TAG,),
        link_group_id=link_group_id,
        consumed_by_assignment=True,
    )

    if instrument.is_put:
        equity_action = Action.BUY
        effective_price = instrument.strike - premium_per_share
    else:
        equity_action = Action.SELL
        effective_price = instrument.strike + premium_per_share

    equity_trade = Transaction(
        instrument_id=equity_instrument.id,
        timestamp=assignment_date,
        action=equity_action,
        quantity=share_quantity,
        price=effective_price,
        fees=Decimal("0"),
        notes="Option assignment",
        tags=(ASSIGNMENT_TAG,),
        link_group_id=link_group_id,
    )

    return AssignmentTransactions(option_close=option_close, equity_trade=equity_trade)
