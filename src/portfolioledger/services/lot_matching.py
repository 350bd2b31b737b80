"""FIFO lot matching.

Replays a chronologically sorted transaction stream and turns it into equity and option lots plus
realized P/L records. Equity sells consume the oldest open lots first. Options use cash-basis
accounting: the opening premium is realized immediately and closing premium is realized when the
close happens, so a round trip nets to the difference between the two.

Lots are frozen; consuming one replaces it in its queue with an updated copy. The queues only live
for the duration of one :func:`match_lots` call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Dict, List, Mapping, Sequence, Tuple
from uuid import UUID, uuid5

from ..core.ledger import EquityLot, OptionLot, RealizedPL
from ..core.models import (
    Action,
    EquityInstrument,
    Instrument,
    OptionInstrument,
    Transaction,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Lot ids are derived from the opening transaction id so repeated runs stay identical.
_LOT_NAMESPACE = UUID("6f1c1f6e-2d4b-4f55-9d59-3f0b8f6a3c21")

# Each closing action may only consume lots opened from the opposite side.
_CLOSES_OPENING_ACTION = {
    Action.BUY_TO_CLOSE: Action.SELL_TO_OPEN,
    Action.SELL_TO_CLOSE: Action.BUY_TO_OPEN,
}


@dataclass(frozen=True)
class MatchResult:
    """Lots (open and fully consumed) and realized records from one replay."""

    equity_lots: Dict[UUID, Tuple[EquityLot, ...]]
    option_lots: Dict[UUID, Tuple[OptionLot, ...]]
    realized_pls: Tuple[RealizedPL, ...]


def lot_id_for(transaction_id: UUID) -> UUID:
    """Return the deterministic lot id for the lot opened by ``transaction_id``."""
    return uuid5(_LOT_NAMESPACE, str(transaction_id))


def match_lots(
    transactions: Sequence[Transaction],
    instruments: Mapping[UUID, Instrument],
) -> MatchResult:
    """Replay ``transactions`` (already in chronological order) into lots and realized P/L."""
    equity_lots: Dict[UUID, List[EquityLot]] = {}
    option_lots: Dict[UUID, List[OptionLot]] = {}
    realized: List[RealizedPL] = []

    for txn in transactions:
        instrument = instruments.get(txn.instrument_id)
        if instrument is None:
            logger.debug(
                "Skipping transaction %s: unknown instrument %s", txn.id, txn.instrument_id
            )
            continue

        if isinstance(instrument, EquityInstrument):
            _apply_equity_transaction(txn, equity_lots, realized)
        elif isinstance(instrument, OptionInstrument):
            _apply_option_transaction(txn, instrument, option_lots, realized)

    return MatchResult(
        equity_lots={key: tuple(lots) for key, lots in equity_lots.items()},
        option_lots={key: tuple(lots) for key, lots in option_lots.items()},
        realized_pls=tuple(realized),
    )


def _apply_equity_transaction(
    txn: Transaction,
    lots: Dict[UUID, List[EquityLot]],
    realized: List[RealizedPL],
) -> None:
    if txn.action is Action.BUY:
        lots.setdefault(txn.instrument_id, []).append(
            EquityLot(
                id=lot_id_for(txn.id),
                transaction_id=txn.id,
                instrument_id=txn.instrument_id,
                open_date=txn.timestamp,
                original_quantity=txn.quantity,
                remaining_quantity=txn.quantity,
                cost_basis=txn.net_amount,
                price_per_share=txn.price,
            )
        )
    elif txn.action is Action.SELL:
        _consume_equity_lots(txn, lots.get(txn.instrument_id, []), realized)
    else:
        logger.debug("Ignoring %s on equity instrument %s", txn.action.value, txn.instrument_id)


def _consume_equity_lots(
    txn: Transaction,
    queue: List[EquityLot],
    realized: List[RealizedPL],
) -> None:
    remaining_to_sell = txn.quantity

    for index, lot in enumerate(queue):
        if remaining_to_sell <= 0:
            break
        if not lot.is_open:
            continue

        consumed = min(lot.remaining_quantity, remaining_to_sell)
        cost_basis = lot.cost_basis * consumed / lot.original_quantity
        # Fees are spread over the whole sell in proportion to each slice.
        proceeds = txn.price * consumed - txn.fees * consumed / txn.quantity

        realized.append(
            RealizedPL(
                instrument_id=txn.instrument_id,
                close_date=txn.timestamp,
                open_date=lot.open_date,
                quantity=consumed,
                proceeds=proceeds,
                cost_basis=cost_basis,
                realized_pl=proceeds - cost_basis,
                transaction_id=txn.id,
                open_transaction_id=lot.transaction_id,
            )
        )
        queue[index] = replace(lot, remaining_quantity=lot.remaining_quantity - consumed)
        remaining_to_sell -= consumed

    if remaining_to_sell > 0:
        logger.warning(
            "Dropping %s unmatched shares from sell %s on instrument %s",
            remaining_to_sell,
            txn.id,
            txn.instrument_id,
        )


def _apply_option_transaction(
    txn: Transaction,
    instrument: OptionInstrument,
    lots: Dict[UUID, List[OptionLot]],
    realized: List[RealizedPL],
) -> None:
    scaled_net_amount = txn.net_amount * Decimal(instrument.multiplier)

    if txn.action in {Action.BUY_TO_OPEN, Action.SELL_TO_OPEN}:
        lots.setdefault(txn.instrument_id, []).append(
            OptionLot(
                id=lot_id_for(txn.id),
                transaction_id=txn.id,
                instrument_id=txn.instrument_id,
                open_date=txn.timestamp,
                action=txn.action,
                original_quantity=txn.quantity,
                remaining_quantity=txn.quantity,
                premium=scaled_net_amount,
                price_per_contract=txn.price,
            )
        )
        is_credit = txn.action is Action.SELL_TO_OPEN
        realized.append(
            RealizedPL(
                instrument_id=txn.instrument_id,
                close_date=txn.timestamp,
                open_date=txn.timestamp,
                quantity=txn.quantity,
                proceeds=scaled_net_amount if is_credit else ZERO,
                cost_basis=ZERO if is_credit else scaled_net_amount,
                realized_pl=scaled_net_amount if is_credit else -scaled_net_amount,
                transaction_id=txn.id,
                open_transaction_id=txn.id,
            )
        )
    elif txn.action in _CLOSES_OPENING_ACTION:
        _consume_option_lots(txn, scaled_net_amount, lots.get(txn.instrument_id, []), realized)
    else:
        logger.debug("Ignoring %s on option instrument %s", txn.action.value, txn.instrument_id)


def _consume_option_lots(
    txn: Transaction,
    scaled_net_amount: Decimal,
    queue: List[OptionLot],
    realized: List[RealizedPL],
) -> None:
    matching_action = _CLOSES_OPENING_ACTION[txn.action]
    is_credit = txn.action is Action.SELL_TO_CLOSE
    premium_per_contract = scaled_net_amount / txn.quantity
    remaining_to_close = txn.quantity

    for index, lot in enumerate(queue):
        if remaining_to_close <= 0:
            break
        if not lot.is_open or lot.action is not matching_action:
            continue

        consumed = min(lot.remaining_quantity, remaining_to_close)
        cash_flow = premium_per_contract * consumed

        realized.append(
            RealizedPL(
                instrument_id=txn.instrument_id,
                close_date=txn.timestamp,
                open_date=lot.open_date,
                quantity=consumed,
                proceeds=cash_flow if is_credit else ZERO,
                cost_basis=ZERO if is_credit else cash_flow,
                realized_pl=cash_flow if is_credit else -cash_flow,
                transaction_id=txn.id,
                open_transaction_id=lot.transaction_id,
            )
        )
        queue[index] = replace(lot, remaining_quantity=lot.remaining_quantity - consumed)
        remaining_to_close -= consumed

    if remaining_to_close > 0:
        logger.warning(
            "Dropping %s unmatched contracts from %s %s on instrument %s",
            remaining_to_close,
            txn.action.value,
            txn.id,
            txn.instrument_id,
        )
