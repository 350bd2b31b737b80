"""
Core input models for the ledger engine.

Instruments and transactions are the only durable entities: everything else is
derived from them on every recompute. Both are frozen Pydantic models so the
engine can treat its inputs as an immutable snapshot.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

DEFAULT_MULTIPLIER = 100
# Joins tags in a single CSV cell, so it cannot appear inside a tag.
TAG_SEPARATOR = ";"


class InstrumentType(str, Enum):
    """Instrument class used to partition realized P/L."""

    EQUITY = "equity"
    OPTION = "option"


class OptionType(str, Enum):
    """Call or put."""

    CALL = "call"
    PUT = "put"


class Action(str, Enum):
    """Closed set of transaction actions."""

    BUY = "buy"
    SELL = "sell"
    BUY_TO_OPEN = "buy_to_open"
    SELL_TO_OPEN = "sell_to_open"
    BUY_TO_CLOSE = "buy_to_close"
    SELL_TO_CLOSE = "sell_to_close"

    @property
    def is_equity(self) -> bool:
        return self in EQUITY_ACTIONS

    @property
    def is_option(self) -> bool:
        return self in OPTION_ACTIONS

    @property
    def is_opening(self) -> bool:
        return self in {Action.BUY, Action.BUY_TO_OPEN, Action.SELL_TO_OPEN}

    @property
    def is_closing(self) -> bool:
        return self in {Action.SELL, Action.BUY_TO_CLOSE, Action.SELL_TO_CLOSE}

    @property
    def is_buy(self) -> bool:
        return self in {Action.BUY, Action.BUY_TO_OPEN, Action.BUY_TO_CLOSE}

    @property
    def is_sell(self) -> bool:
        return self in {Action.SELL, Action.SELL_TO_OPEN, Action.SELL_TO_CLOSE}


EQUITY_ACTIONS = frozenset({Action.BUY, Action.SELL})
OPTION_ACTIONS = frozenset(
    {Action.BUY_TO_OPEN, Action.SELL_TO_OPEN, Action.BUY_TO_CLOSE, Action.SELL_TO_CLOSE}
)


def _normalize_symbol(value: str) -> str:
    symbol = (value or "").strip().upper()
    if not symbol:
        raise ValueError("symbol must not be empty")
    return symbol


class EquityInstrument(BaseModel):
    """A stock identified by its ticker symbol."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["equity"] = "equity"
    id: UUID = Field(default_factory=uuid4)
    symbol: str = Field(..., description="Ticker symbol (e.g., 'AAPL')")

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v):
        return _normalize_symbol(v)

    @property
    def instrument_type(self) -> InstrumentType:
        return InstrumentType.EQUITY

    @property
    def underlying_ticker(self) -> str:
        return self.symbol

    @property
    def display_name(self) -> str:
        return self.symbol


class OptionInstrument(BaseModel):
    """An option contract on an underlying ticker."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["option"] = "option"
    id: UUID = Field(default_factory=uuid4)
    underlying_symbol: str = Field(..., description="Underlying ticker")
    expiry: date = Field(..., description="Expiration date")
    strike: Decimal = Field(..., ge=0, description="Strike price")
    call_put: OptionType = Field(..., description="'call' or 'put'")
    multiplier: int = Field(DEFAULT_MULTIPLIER, gt=0, description="Shares per contract")

    @field_validator("underlying_symbol")
    @classmethod
    def validate_underlying(cls, v):
        return _normalize_symbol(v)

    @field_validator("call_put", mode="before")
    @classmethod
    def validate_call_put(cls, v):
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered in {"c", "p"}:
                return "call" if lowered == "c" else "put"
            return lowered
        return v

    @property
    def instrument_type(self) -> InstrumentType:
        return InstrumentType.OPTION

    @property
    def underlying_ticker(self) -> str:
        return self.underlying_symbol

    @property
    def display_name(self) -> str:
        code = "C" if self.call_put is OptionType.CALL else "P"
        return f"{self.underlying_symbol} {self.expiry:%m/%d/%y} {self.strike}{code}"

    @property
    def is_call(self) -> bool:
        return self.call_put is OptionType.CALL

    @property
    def is_put(self) -> bool:
        return self.call_put is OptionType.PUT


Instrument = Annotated[Union[EquityInstrument, OptionInstrument], Field(discriminator="kind")]
INSTRUMENT_ADAPTER: TypeAdapter[Instrument] = TypeAdapter(Instrument)


def parse_instrument(data: dict) -> Union[EquityInstrument, OptionInstrument]:
    """Validate a plain mapping into the matching instrument variant."""
    return INSTRUMENT_ADAPTER.validate_python(data)


class Transaction(BaseModel):
    """Immutable record of a single trade."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    instrument_id: UUID
    timestamp: datetime
    action: Action
    quantity: Decimal = Field(..., gt=0, description="Shares or contracts")
    price: Decimal = Field(..., ge=0, description="Price per share or contract")
    fees: Decimal = Field(Decimal("0"), ge=0)
    notes: str = ""
    tags: Tuple[str, ...] = ()
    link_group_id: Optional[UUID] = None
    consumed_by_assignment: bool = False

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v):
        # The log holds naive UTC timestamps; naive input is taken as UTC, aware input is converted.
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        for tag in v:
            if not tag:
                raise ValueError("tags must not be empty")
            if TAG_SEPARATOR in tag:
                raise ValueError(f"tags must not contain {TAG_SEPARATOR!r}")
        return v

    @field_validator("quantity", "price", "fees", mode="before")
    @classmethod
    def coerce_floats(cls, v):
        # Floats go through str() so 1.17 stays Decimal("1.17").
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @property
    def total_amount(self) -> Decimal:
        """Quantity times price, before fees."""
        return self.quantity * self.price

    @property
    def net_amount(self) -> Decimal:
        """Cash amount including fees: added on buys, deducted on sells."""
        if self.action.is_buy:
            return self.total_amount + self.fees
        return self.total_amount - self.fees
