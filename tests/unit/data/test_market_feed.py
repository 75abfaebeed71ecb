"""
Unit tests for historical candle loading and replay.
"""

import json
import pytest
from datetime import datetime, timezone
from pathlib import Path
from pydantic import ValidationError

from fractal_engine.data.market_feed import HistoricalMarketFeed, load_candles_json


def candle(hour: int, high: float = 1100.0, low: float = 900.0, **overrides) -> dict:
    data = {
        "start_time": f"2022-04-05T{hour:02d}:00:00Z",
        "end_time": f"2022-04-05T{hour + 1:02d}:00:00Z",
        "open": 1000.0,
        "high": high,
        "low": low,
        "close": 1050.0,
        "volume": 10.0,
        "trade_count": 100,
    }
    data.update(overrides)
    return data


@pytest.fixture
def candles_file(tmp_path: Path):
    def write(candles) -> Path:
        path = tmp_path / "candles.json"
        path.write_text(json.dumps(candles))
        return path
    return write


class TestLoadCandlesJson:
    """Test suite for load_candles_json."""

    def test_loads_market_events(self, candles_file, market):
        path = candles_file([candle(0), candle(1, high=1200.0)])

        events = load_candles_json(path, market)

        assert len(events) == 2
        assert events[0].exchange == "binance"
        assert events[0].instrument == market.instrument
        assert events[1].bar.high == 1200.0
        assert events[0].bar.close == 1050.0

    def test_bar_time_is_candle_close(self, candles_file, market):
        events = load_candles_json(candles_file([candle(3)]), market)

        expected = datetime(2022, 4, 5, 4, 0, tzinfo=timezone.utc)
        assert events[0].time == expected
        assert events[0].bar.timestamp == expected

    def test_timestamp_alias(self, candles_file, market):
        raw = {"timestamp": "2022-04-05T10:00:00Z", "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5}

        events = load_candles_json(candles_file([raw]), market)

        assert events[0].bar.volume == 0.0
        assert events[0].time.hour == 10

    def test_invalid_candle_raises(self, candles_file, market):
        path = candles_file([candle(0, high=800.0, low=900.0)])

        with pytest.raises(ValidationError):
            load_candles_json(path, market)

    def test_missing_file_raises(self, tmp_path, market):
        with pytest.raises(FileNotFoundError):
            load_candles_json(tmp_path / "missing.json", market)

    def test_bundled_sample_data(self, market):
        path = Path(__file__).parents[3] / "data" / "candles_1h.json"

        events = load_candles_json(path, market)

        assert len(events) == 48
        times = [event.time for event in events]
        assert times == sorted(times)


class TestHistoricalMarketFeed:
    """Test suite for HistoricalMarketFeed."""

    def test_yields_in_order(self, market, market_events_factory):
        events = market_events_factory(market, [2.0, 3.0, 4.0], [1.0, 2.0, 3.0])

        assert list(HistoricalMarketFeed(events)) == events

    def test_equal_timestamps_allowed(self, market, market_events_factory):
        first = market_events_factory(market, [2.0], [1.0])
        second = market_events_factory(market, [3.0], [2.0])

        feed = HistoricalMarketFeed(first + second)

        assert len(list(feed)) == 2
        assert feed.skipped_count == 0

    def test_out_of_order_event_skipped(self, market, market_events_factory, log_messages):
        events = market_events_factory(market, [2.0, 3.0, 4.0], [1.0, 2.0, 3.0])
        reordered = [events[1], events[0], events[2]]

        feed = HistoricalMarketFeed(reordered)
        replayed = list(feed)

        assert replayed == [events[1], events[2]]
        assert feed.skipped_count == 1
        assert any(level == "WARNING" for level, _ in log_messages)

    def test_instruments_checked_independently(self, market, eth_market, market_events_factory):
        btc = market_events_factory(market, [2.0, 3.0], [1.0, 2.0])
        eth = market_events_factory(eth_market, [2.0, 3.0], [1.0, 2.0])

        feed = HistoricalMarketFeed([btc[0], btc[1], eth[0], eth[1]])

        assert len(list(feed)) == 4
        assert feed.skipped_count == 0

    def test_instrument_kinds_checked_independently(
        self, market, perpetual_market, market_events_factory
    ):
        spot = market_events_factory(market, [2.0, 3.0], [1.0, 2.0])
        perp = market_events_factory(perpetual_market, [2.0, 3.0], [1.0, 2.0])

        feed = HistoricalMarketFeed([spot[0], spot[1], perp[0], perp[1]])

        assert len(list(feed)) == 4
        assert feed.skipped_count == 0
