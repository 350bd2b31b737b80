"""FastAPI application exposing the ledger as a JSON API."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, ValidationError

from .. import __version__
from ..core.models import (
    DEFAULT_MULTIPLIER,
    Action,
    EquityInstrument,
    Instrument,
    OptionInstrument,
    OptionType,
    Transaction,
)
from ..services.assignment import AssignmentPreconditionError
from ..services.json_serializer import (
    serialize_decimal,
    serialize_instrument,
    serialize_ledger_output,
    serialize_pl_summary,
    serialize_position,
    serialize_realized_pl,
    serialize_transaction,
    serialize_underlier_summary,
)
from ..services.queries import (
    realized_pls_for_symbol,
    search_transactions,
    transactions_for_symbol,
)
from ..services.store import InstrumentNotFoundError, LedgerStore, TransactionNotFoundError
from .dependencies import get_store


class TransactionCreate(BaseModel):
    """
    Request body for ``POST /api/transactions``.

    Either reference an existing instrument through ``instrument_id`` or describe one: ``symbol``
    for an equity, or the option fields for an option. Described instruments are reused when the
    catalog already holds a match.
    """

    instrument_id: Optional[UUID] = None
    kind: Literal["equity", "option"] = "equity"
    symbol: Optional[str] = None
    underlying_symbol: Optional[str] = None
    expiry: Optional[date] = None
    strike: Optional[Decimal] = None
    call_put: Optional[OptionType] = None
    multiplier: int = Field(DEFAULT_MULTIPLIER, gt=0)

    action: Action
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    fees: Decimal = Field(Decimal("0"), ge=0)
    timestamp: Optional[datetime] = None
    notes: str = ""
    tags: List[str] = Field(default_factory=list)


class AssignmentRequest(BaseModel):
    assignment_date: Optional[datetime] = None


def _resolve_instrument(store: LedgerStore, payload: TransactionCreate) -> Instrument:
    if payload.instrument_id is not None:
        try:
            return store.get_instrument(payload.instrument_id)
        except InstrumentNotFoundError:
            raise HTTPException(status_code=404, detail="Instrument not found") from None

    try:
        if payload.kind == "equity":
            if not payload.symbol:
                raise HTTPException(status_code=400, detail="symbol is required for equities")
            return store.find_equity(payload.symbol) or EquityInstrument(symbol=payload.symbol)

        if (
            not payload.underlying_symbol
            or payload.expiry is None
            or payload.strike is None
            or payload.call_put is None
        ):
            raise HTTPException(
                status_code=400,
                detail="underlying_symbol, expiry, strike and call_put are required for options",
            )
        candidate = OptionInstrument(
            underlying_symbol=payload.underlying_symbol,
            expiry=payload.expiry,
            strike=payload.strike,
            call_put=payload.call_put,
            multiplier=payload.multiplier,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return store.find_option(candidate) or candidate


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"{label} not found") from None


def create_app() -> FastAPI:  # noqa: C901
    """Construct and return the FastAPI application."""
    app = FastAPI(title="PortfolioLedger API", version=__version__)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/ledger", tags=["api"])
    async def ledger_snapshot(store: LedgerStore = Depends(get_store)) -> dict:
        return {
            "instruments": [serialize_instrument(item) for item in store.instruments.values()],
            "ledger": serialize_ledger_output(store.output, store.instruments),
        }

    @app.get("/api/positions", tags=["api"])
    async def list_positions(
        include_closed: bool = Query(False, description="Include flat positions."),
        store: LedgerStore = Depends(get_store),
    ) -> dict:
        positions = [
            position
            for position in store.output.positions
            if include_closed or position.is_open
        ]
        return {"positions": [serialize_position(pos, store.instruments) for pos in positions]}

    @app.get("/api/underliers/{symbol}", tags=["api"])
    async def underlier_detail(symbol: str, store: LedgerStore = Depends(get_store)) -> dict:
        symbol_key = symbol.strip().upper()
        summary = store.output.underlier_summaries.get(symbol_key)
        realized, total = realized_pls_for_symbol(store.output, store.instruments, symbol_key)
        related = transactions_for_symbol(store.transactions, store.instruments, symbol_key)
        if summary is None and not related:
            raise HTTPException(status_code=404, detail="Underlier not found")
        return {
            "symbol": symbol_key,
            "summary": serialize_underlier_summary(summary, store.instruments) if summary else None,
            "realized_pls": [serialize_realized_pl(record) for record in realized],
            "realized_total": serialize_decimal(total),
            "transactions": [serialize_transaction(txn) for txn in related],
        }

    @app.get("/api/pnl", tags=["api"])
    async def pnl_summary(store: LedgerStore = Depends(get_store)) -> dict:
        return {
            "summary": serialize_pl_summary(store.output.pl_summary),
            "realized_pls": [serialize_realized_pl(record) for record in store.output.realized_pls],
        }

    @app.get("/api/transactions", tags=["api"])
    async def list_transactions(
        search: str = Query("", description="Case-insensitive match on notes or tags."),
        store: LedgerStore = Depends(get_store),
    ) -> dict:
        rows = search_transactions(store.transactions, search)
        return {"transactions": [serialize_transaction(txn) for txn in rows]}

    @app.post("/api/transactions", tags=["api"], status_code=201)
    async def create_transaction(
        payload: TransactionCreate, store: LedgerStore = Depends(get_store)
    ) -> dict:
        instrument = _resolve_instrument(store, payload)
        if isinstance(instrument, EquityInstrument) and not payload.action.is_equity:
            raise HTTPException(status_code=400, detail="Equity trades must be buy or sell")
        if isinstance(instrument, OptionInstrument) and not payload.action.is_option:
            raise HTTPException(
                status_code=400, detail="Option trades must use an open or close action"
            )

        try:
            transaction = Transaction(
                instrument_id=instrument.id,
                timestamp=payload.timestamp or datetime.now(timezone.utc).replace(microsecond=0),
                action=payload.action,
                quantity=payload.quantity,
                price=payload.price,
                fees=payload.fees,
                notes=payload.notes,
                tags=tuple(payload.tags),
            )
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        if instrument.id not in store.instruments:
            store.add_instrument(instrument)
        store.add_transaction(transaction)
        store.recompute()
        return {
            "instrument": serialize_instrument(instrument),
            "transaction": serialize_transaction(transaction),
        }

    @app.delete("/api/transactions/{transaction_id}", tags=["api"])
    async def delete_transaction(
        transaction_id: str, store: LedgerStore = Depends(get_store)
    ) -> dict:
        txn_id = _parse_uuid(transaction_id, "Transaction")
        try:
            deleted = store.delete_transaction(txn_id)
        except TransactionNotFoundError:
            raise HTTPException(status_code=404, detail="Transaction not found") from None
        store.recompute()
        return {"deleted": serialize_transaction(deleted)}

    @app.post("/api/transactions/{transaction_id}/assign", tags=["api"], status_code=201)
    async def assign_transaction(
        transaction_id: str,
        payload: Optional[AssignmentRequest] = None,
        store: LedgerStore = Depends(get_store),
    ) -> dict:
        txn_id = _parse_uuid(transaction_id, "Transaction")
        assignment_date = (
            payload.assignment_date if payload and payload.assignment_date else None
        ) or datetime.now(timezone.utc).replace(microsecond=0)
        try:
            pair = store.assign_option(txn_id, assignment_date)
        except TransactionNotFoundError:
            raise HTTPException(status_code=404, detail="Transaction not found") from None
        except AssignmentPreconditionError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        store.recompute()
        return {
            "option_close": serialize_transaction(pair.option_close),
            "equity_trade": serialize_transaction(pair.equity_trade),
        }

    return app
