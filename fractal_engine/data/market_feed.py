"""
Historical market data feed.

Loads candles from a JSON file and replays them as MarketEvents in
non-decreasing time order per instrument.

Expected JSON layout (an array of candles)::

    [
        {
            "start_time": "2022-04-05T20:00:00.000000Z",
            "end_time": "2022-04-05T21:00:00.000000Z",
            "open": 1000.0,
            "high": 1100.0,
            "low": 900.0,
            "close": 1050.0,
            "volume": 1000000000.0,
            "trade_count": 100
        }
    ]

``timestamp`` may be given instead of ``end_time``.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from loguru import logger
from pydantic import AliasChoices, BaseModel, Field, TypeAdapter

from ..core.models import Bar, Market, MarketEvent


class Candle(BaseModel):
    """One OHLCV candle as stored on disk."""

    start_time: Optional[datetime] = None
    end_time: datetime = Field(validation_alias=AliasChoices("end_time", "timestamp"))
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0)
    trade_count: int = Field(default=0, ge=0)

    def to_market_event(self, market: Market) -> MarketEvent:
        bar = Bar(
            timestamp=self.end_time,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
        )
        return MarketEvent(
            time=self.end_time,
            exchange=market.exchange,
            instrument=market.instrument,
            bar=bar,
        )


_CANDLES = TypeAdapter(List[Candle])


def load_candles_json(path: Union[str, Path], market: Market) -> List[MarketEvent]:
    """
    Load a JSON array of candles as market events for one market.

    Args:
        path: JSON file to read
        market: Exchange and instrument the candles belong to

    Returns:
        List of MarketEvents in file order

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If a candle is malformed
    """
    path = Path(path)
    candles = _CANDLES.validate_json(path.read_bytes())
    logger.info(f"Loaded {len(candles)} candle(s) for {market} from {path}")
    return [candle.to_market_event(market) for candle in candles]


class HistoricalMarketFeed:
    """
    Replays market events, enforcing non-decreasing time per instrument.

    An event whose time is earlier than the previous event of the same
    exchange and instrument is skipped with a warning.

    Examples:
        >>> feed = HistoricalMarketFeed(load_candles_json("candles.json", market))
        >>> for market_event in feed:
        ...     ...
    """

    def __init__(self, events: Iterable[MarketEvent]):
        self._events = events
        self._skipped: int = 0

    def __iter__(self) -> Iterator[MarketEvent]:
        last_seen: Dict[Market, datetime] = {}

        for event in self._events:
            key = event.market
            previous = last_seen.get(key)
            if previous is not None and event.time < previous:
                self._skipped += 1
                logger.warning(
                    f"Skipping out-of-order market event for {event.exchange}:"
                    f"{event.instrument}: {event.time} < {previous}"
                )
                continue

            last_seen[key] = event.time
            yield event

    @property
    def skipped_count(self) -> int:
        """Get number of out-of-order events skipped."""
        return self._skipped
