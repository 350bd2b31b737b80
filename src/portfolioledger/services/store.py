"""Explicit state container for the transaction log and instrument catalog.

The store owns the only durable data. Mutations never recompute implicitly: callers invoke
:meth:`LedgerStore.recompute` after a change to get a fresh :class:`LedgerOutput` snapshot.
When a repository is attached, every mutation writes the full snapshot back to it.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from ..core.ledger import LedgerOutput
from ..core.models import (
    DEFAULT_MULTIPLIER,
    Action,
    EquityInstrument,
    Instrument,
    OptionInstrument,
    OptionType,
    Transaction,
)
from ..persistence import SQLiteRepository, StorageDecodeError
from .assignment import (
    AssignmentPreconditionError,
    AssignmentTransactions,
    generate_assignment_transactions,
)
from .ledger import process

logger = logging.getLogger(__name__)

SAMPLE_SYMBOL = "AAPL"
CLOSE_TAG = "close"


class InstrumentNotFoundError(KeyError):
    """Raised when an instrument id is not in the catalog."""


class TransactionNotFoundError(KeyError):
    """Raised when a transaction id is not in the log."""


class NoOpenPositionError(ValueError):
    """Raised when closing an instrument that has no open position."""


@dataclass(frozen=True)
class MergeResult:
    """Counts produced by :meth:`LedgerStore.merge`."""

    instruments_added: int
    instruments_updated: int
    transactions_added: int
    transactions_skipped: int


class LedgerStore:
    """Holds instruments and transactions and recomputes derived state on request."""

    def __init__(
        self,
        instruments: Optional[Mapping[UUID, Instrument]] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        *,
        repository: Optional[SQLiteRepository] = None,
    ) -> None:
        self._instruments: Dict[UUID, Instrument] = dict(instruments or {})
        self._transactions: List[Transaction] = list(transactions or [])
        self._repository = repository
        self._output = LedgerOutput()

    @classmethod
    def load(cls, repository: SQLiteRepository) -> "LedgerStore":
        """
        Load the catalog and log from ``repository``.

        Any storage or decode failure falls back to the sample state (a single ``AAPL`` equity and
        no transactions) instead of propagating.
        """
        try:
            instruments = repository.fetch_instruments()
            transactions = repository.fetch_transactions()
        except (sqlite3.Error, StorageDecodeError, OSError) as exc:
            logger.warning("Failed to load ledger data, starting from sample state: %s", exc)
            store = cls.sample(repository=repository)
        else:
            if not instruments and not transactions:
                store = cls.sample(repository=repository)
            else:
                store = cls(instruments, transactions, repository=repository)
        store.recompute()
        return store

    @classmethod
    def sample(cls, *, repository: Optional[SQLiteRepository] = None) -> "LedgerStore":
        equity = EquityInstrument(symbol=SAMPLE_SYMBOL)
        return cls({equity.id: equity}, [], repository=repository)

    # Read access ---------------------------------------------------------

    @property
    def instruments(self) -> Mapping[UUID, Instrument]:
        return MappingProxyType(self._instruments)

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def output(self) -> LedgerOutput:
        """Snapshot produced by the most recent :meth:`recompute`."""
        return self._output

    def get_instrument(self, instrument_id: UUID) -> Instrument:
        try:
            return self._instruments[instrument_id]
        except KeyError:
            raise InstrumentNotFoundError(instrument_id) from None

    def get_transaction(self, transaction_id: UUID) -> Transaction:
        for txn in self._transactions:
            if txn.id == transaction_id:
                return txn
        raise TransactionNotFoundError(transaction_id)

    def find_equity(self, symbol: str) -> Optional[EquityInstrument]:
        normalized = symbol.strip().upper()
        for instrument in self._instruments.values():
            if isinstance(instrument, EquityInstrument) and instrument.symbol == normalized:
                return instrument
        return None

    def find_option(self, candidate: OptionInstrument) -> Optional[OptionInstrument]:
        """Existing option with the same underlying, expiry, strike and type as ``candidate``."""
        for instrument in self._instruments.values():
            if (
                isinstance(instrument, OptionInstrument)
                and instrument.underlying_symbol == candidate.underlying_symbol
                and instrument.expiry == candidate.expiry
                and instrument.strike == candidate.strike
                and instrument.call_put == candidate.call_put
            ):
                return instrument
        return None

    # Mutations -----------------------------------------------------------

    def add_instrument(self, instrument: Instrument) -> Instrument:
        self._instruments[instrument.id] = instrument
        self.save()
        return instrument

    def get_or_create_equity(self, symbol: str) -> EquityInstrument:
        existing = self.find_equity(symbol)
        if existing is not None:
            return existing
        instrument = EquityInstrument(symbol=symbol)
        self.add_instrument(instrument)
        return instrument

    def get_or_create_option(
        self,
        underlying_symbol: str,
        expiry: date,
        strike: Decimal,
        call_put: OptionType,
        multiplier: int = DEFAULT_MULTIPLIER,
    ) -> OptionInstrument:
        candidate = OptionInstrument(
            underlying_symbol=underlying_symbol,
            expiry=expiry,
            strike=strike,
            call_put=call_put,
            multiplier=multiplier,
        )
        existing = self.find_option(candidate)
        if existing is not None:
            return existing
        self.add_instrument(candidate)
        return candidate

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions.append(transaction)
        self.save()
        return transaction

    def add_transactions(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        added = list(transactions)
        self._transactions.extend(added)
        self.save()
        return added

    def delete_transaction(self, transaction_id: UUID) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        self._transactions = [txn for txn in self._transactions if txn.id != transaction_id]
        self.save()
        return transaction

    def merge(
        self,
        instruments: Iterable[Instrument],
        transactions: Iterable[Transaction],
    ) -> MergeResult:
        """
        Upsert instruments by id and append transactions whose id is not yet known.

        An incoming instrument with a new id that describes an instrument already in the catalog
        (same equity symbol, or same option contract) is not added twice. When the existing one
        has transactions, the incoming transactions are moved onto it so FIFO matching sees a
        single queue. When it has none, such as the sample equity, it is replaced by the incoming
        instrument.
        """
        known_instrument_ids = set(self._instruments)
        traded_ids = {txn.instrument_id for txn in self._transactions}
        remapped: Dict[UUID, UUID] = {}
        added = updated = 0
        for instrument in instruments:
            if instrument.id in self._instruments:
                self._instruments[instrument.id] = instrument
                updated += 1
                continue
            existing = self._find_same_instrument(instrument)
            if existing is not None and existing.id in known_instrument_ids:
                if existing.id in traded_ids:
                    remapped[instrument.id] = existing.id
                    updated += 1
                    continue
                logger.info("Replacing unused instrument %s with %s", existing.id, instrument.id)
                del self._instruments[existing.id]
            self._instruments[instrument.id] = instrument
            added += 1

        known_ids = {txn.id for txn in self._transactions}
        txn_added = txn_skipped = 0
        for txn in transactions:
            if txn.id in known_ids:
                txn_skipped += 1
                continue
            if txn.instrument_id in remapped:
                txn = txn.model_copy(update={"instrument_id": remapped[txn.instrument_id]})
            known_ids.add(txn.id)
            self._transactions.append(txn)
            txn_added += 1

        self.save()
        return MergeResult(
            instruments_added=added,
            instruments_updated=updated,
            transactions_added=txn_added,
            transactions_skipped=txn_skipped,
        )

    def _find_same_instrument(self, instrument: Instrument) -> Optional[Instrument]:
        if isinstance(instrument, EquityInstrument):
            return self.find_equity(instrument.symbol)
        return self.find_option(instrument)

    def recompute(self) -> LedgerOutput:
        """Recompute and remember the derived state for the current log."""
        self._output = process(self._transactions, self._instruments)
        return self._output

    def save(self) -> None:
        if self._repository is None:
            return
        self._repository.replace_all(self._instruments, self._transactions)

    # Workflows -----------------------------------------------------------

    def assign_option(
        self, transaction_id: UUID, assignment_date: datetime
    ) -> AssignmentTransactions:
        """Record assignment of the option position opened by ``transaction_id``."""
        option_transaction = self.get_transaction(transaction_id)
        instrument = self.get_instrument(option_transaction.instrument_id)
        if not isinstance(instrument, OptionInstrument):
            raise AssignmentPreconditionError(
                f"Transaction {transaction_id} does not reference an option"
            )
        if option_transaction.action not in {Action.SELL_TO_OPEN, Action.BUY_TO_OPEN}:
            raise AssignmentPreconditionError(
                f"Transaction {transaction_id} is not an option opening transaction"
            )

        equity = self.get_or_create_equity(instrument.underlying_symbol)
        pair = generate_assignment_transactions(
            option_transaction, instrument, assignment_date, equity
        )
        self.add_transactions(pair)
        return pair

    def close_position(
        self,
        instrument_id: UUID,
        *,
        price: Decimal,
        timestamp: datetime,
        fees: Decimal = Decimal("0"),
        notes: str = "",
    ) -> Transaction:
        """Append a transaction that closes the full current position in ``instrument_id``."""
        instrument = self.get_instrument(instrument_id)
        position = process(self._transactions, self._instruments).position_for(instrument_id)
        if position is None or not position.is_open:
            raise NoOpenPositionError(f"No open position for {instrument.display_name}")

        if isinstance(instrument, OptionInstrument):
            action = Action.BUY_TO_CLOSE if position.is_short else Action.SELL_TO_CLOSE
        else:
            action = Action.BUY if position.is_short else Action.SELL

        transaction = Transaction(
            instrument_id=instrument_id,
            timestamp=timestamp,
            action=action,
            quantity=abs(position.quantity),
            price=price,
            fees=fees,
            notes=notes or "Closed position",
            tags=(CLOSE_TAG,),
        )
        return self.add_transaction(transaction)
