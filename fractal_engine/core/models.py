"""
Trading dataclasses with comprehensive validation.

This module defines the domain entities shared by the strategy layer and the
event bus:
- Bar: A single time-stamped high/low price observation
- Instrument / Market: What is being traded and where
- MarketEvent: A market observation for one instrument on one exchange
- Decision: Directional trading intent derived from a signal
- Signal: Trading decisions with a confidence strength per decision
- SignalForceExit: Out-of-band instruction to exit an open position
"""

from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


SignalStrength = float
"""Conviction weight attached to a Decision, conceptually within [0.0, 1.0]."""


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Bar(BaseModel):
    """
    Immutable price bar.

    Only ``high`` and ``low`` are used by fractal detection; open, close and
    volume are carried along for the market snapshot attached to signals.

    Examples:
        >>> bar = Bar(timestamp=utc_now(), high=45100.0, low=44900.0)
        >>> bar.close is None
        True
    """

    model_config = {"frozen": True}

    timestamp: datetime = Field(
        description="When the bar closed"
    )
    high: float = Field(
        description="Highest traded price"
    )
    low: float = Field(
        description="Lowest traded price"
    )
    open: Optional[float] = Field(
        default=None,
        description="Opening price"
    )
    close: Optional[float] = Field(
        default=None,
        description="Closing price"
    )
    volume: Optional[float] = Field(
        default=None,
        ge=0,
        description="Traded volume"
    )

    @model_validator(mode="after")
    def validate_price_range(self) -> "Bar":
        """Ensure high >= low for a valid price range."""
        if self.high < self.low:
            raise ValueError(
                f"Invalid Bar: high ({self.high:.2f}) must not be below "
                f"low ({self.low:.2f}). Check price data integrity."
            )
        return self


class Instrument(BaseModel):
    """
    Tradeable instrument identified by base and quote assets.

    Examples:
        >>> str(Instrument(base="BTC", quote="usdt"))
        'btc_usdt'
    """

    model_config = {"frozen": True}

    base: str = Field(
        min_length=1,
        description="Base asset (e.g. 'btc')"
    )
    quote: str = Field(
        min_length=1,
        description="Quote asset (e.g. 'usdt')"
    )
    kind: Literal["spot", "future", "perpetual"] = Field(
        default="spot",
        description="Instrument kind"
    )

    @field_validator("base", "quote")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        return value.lower()

    def __str__(self) -> str:
        return f"{self.base}_{self.quote}"


class Market(BaseModel):
    """An instrument on a specific exchange."""

    model_config = {"frozen": True}

    exchange: str = Field(
        min_length=1,
        description="Exchange identifier (e.g. 'binance')"
    )
    instrument: Instrument

    def __str__(self) -> str:
        return f"{self.exchange}:{self.instrument}"


class MarketEvent(BaseModel):
    """
    Market observation for one instrument, as produced by a market data source.

    Attributes:
        time: When the observation was made (the bar close time for candles)
        exchange: Exchange the bar was observed on
        instrument: Instrument the bar belongs to
        bar: The observed price bar
    """

    model_config = {"frozen": True}

    time: datetime
    exchange: str = Field(min_length=1)
    instrument: Instrument
    bar: Bar

    @property
    def market(self) -> Market:
        return Market(exchange=self.exchange, instrument=self.instrument)


class MarketMeta(BaseModel):
    """Snapshot of the market at the moment a signal was generated."""

    model_config = {"frozen": True}

    close: Optional[float] = None
    time: datetime


class Decision(str, Enum):
    """
    Directional trading intent.

    There is no "hold" member: the absence of a Signal is the neutral state.

    Examples:
        >>> Decision.SHORT.is_entry()
        True
        >>> Decision.CLOSE_LONG.is_exit()
        True
    """

    LONG = "long"
    CLOSE_LONG = "close_long"
    SHORT = "short"
    CLOSE_SHORT = "close_short"

    @classmethod
    def default(cls) -> "Decision":
        return cls.LONG

    def is_long(self) -> bool:
        return self is Decision.LONG

    def is_short(self) -> bool:
        return self is Decision.SHORT

    def is_entry(self) -> bool:
        """True for decisions that open a position."""
        return self in (Decision.LONG, Decision.SHORT)

    def is_exit(self) -> bool:
        """True for decisions that close a position."""
        return self in (Decision.CLOSE_LONG, Decision.CLOSE_SHORT)


class Signal(BaseModel):
    """
    Immutable trading signal emitted by a signal generator.

    A Signal maps each proposed Decision to its SignalStrength. The strength
    is treated as an opaque ordered scalar and is not clamped here.

    Attributes:
        time: Time of the bar the signal refers to
        exchange: Exchange of the originating market
        instrument: Instrument of the originating market
        signals: Decision -> strength, never empty
        market_meta: Market snapshot at generation time

    Examples:
        >>> now = utc_now()
        >>> signal = Signal(
        ...     time=now,
        ...     exchange="binance",
        ...     instrument=Instrument(base="btc", quote="usdt"),
        ...     signals={Decision.SHORT: 0.4},
        ...     market_meta=MarketMeta(close=45000.0, time=now)
        ... )
        >>> signal.decisions()
        [<Decision.SHORT: 'short'>]
    """

    model_config = {"frozen": True}

    time: datetime
    exchange: str = Field(min_length=1)
    instrument: Instrument
    signals: Dict[Decision, SignalStrength]
    market_meta: MarketMeta

    @model_validator(mode="after")
    def validate_signals_not_empty(self) -> "Signal":
        """A signal is only emitted when at least one decision was derived."""
        if not self.signals:
            raise ValueError(
                "Invalid Signal: signals must contain at least one Decision. "
                "Emit no Signal instead of an empty one."
            )
        return self

    def decisions(self) -> List[Decision]:
        return sorted(self.signals, key=lambda decision: decision.value)

    def strength(self, decision: Decision) -> Optional[SignalStrength]:
        return self.signals.get(decision)


class SignalForceExit(BaseModel):
    """
    Instruction to unconditionally exit any open position for an instrument.

    Independent of pivot detection; typically issued by an operator or a
    risk collaborator.

    Examples:
        >>> market = Market(exchange="binance", instrument=Instrument(base="btc", quote="usdt"))
        >>> SignalForceExit.from_market(market).exchange
        'binance'
    """

    model_config = {"frozen": True}

    FORCED_EXIT_SIGNAL: ClassVar[str] = "SignalForcedExit"

    time: datetime = Field(default_factory=utc_now)
    exchange: str = Field(min_length=1)
    instrument: Instrument

    @classmethod
    def from_market(cls, market: Union[Market, MarketEvent]) -> "SignalForceExit":
        return cls(exchange=market.exchange, instrument=market.instrument)
