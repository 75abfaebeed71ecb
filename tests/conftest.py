"""
Pytest configuration and shared fixtures for Fractal Engine tests.

This module provides:
- Market and bar factories
- A loguru sink capturing log messages
- Sample high/low sequences for fractal detection
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import List

from loguru import logger

from fractal_engine.core.models import Bar, Instrument, Market, MarketEvent


BASE_TIME = datetime(2022, 4, 5, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def market() -> Market:
    """Provide the default BTC/USDT spot market on binance."""
    return Market(exchange="binance", instrument=Instrument(base="btc", quote="usdt"))


@pytest.fixture
def eth_market() -> Market:
    return Market(exchange="binance", instrument=Instrument(base="eth", quote="usdt"))


@pytest.fixture
def perpetual_market() -> Market:
    """Same base and quote as market, but a perpetual contract."""
    return Market(
        exchange="binance",
        instrument=Instrument(base="btc", quote="usdt", kind="perpetual"),
    )


def make_market_events(
    market: Market,
    highs: List[float],
    lows: List[float],
    start: datetime = BASE_TIME
) -> List[MarketEvent]:
    """Build hourly market events from aligned highs and lows."""
    events = []
    for i, (high, low) in enumerate(zip(highs, lows)):
        time = start + timedelta(hours=i)
        bar = Bar(timestamp=time, high=high, low=low, close=(high + low) / 2)
        events.append(
            MarketEvent(
                time=time,
                exchange=market.exchange,
                instrument=market.instrument,
                bar=bar,
            )
        )
    return events


@pytest.fixture
def market_events_factory():
    """Provide make_market_events to tests."""
    return make_market_events


@pytest.fixture
def peak_series():
    """Five bars with a single bearish fractal at index 2."""
    highs = [100.0, 102.0, 110.0, 103.0, 101.0]
    lows = [95.0, 97.0, 99.0, 98.0, 96.0]
    return highs, lows


@pytest.fixture
def trough_series():
    """Five bars with a single bullish fractal at index 2."""
    highs = [110.0, 108.0, 104.0, 107.0, 109.0]
    lows = [100.0, 98.0, 90.0, 97.0, 99.0]
    return highs, lows


@pytest.fixture
def log_messages():
    """Capture loguru messages (level and text) emitted during a test."""
    messages = []
    handler_id = logger.add(
        lambda message: messages.append(
            (message.record["level"].name, message.record["message"])
        ),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
