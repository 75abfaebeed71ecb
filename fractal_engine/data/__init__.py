"""
Data module for historical market data.

This module handles:
- Loading candle JSON files into market events
- Replaying market events in time order
"""

from .market_feed import HistoricalMarketFeed, load_candles_json

__all__ = [
    "HistoricalMarketFeed",
    "load_candles_json",
]
