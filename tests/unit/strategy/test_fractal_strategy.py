"""
Unit tests for FractalStrategy.

Tests cover:
- Warm-up behaviour
- Pivot to decision mapping
- Strength policies (dominance and fixed)
- Per-instrument windows
- Configuration validation
"""

import pytest
from pydantic import ValidationError

from fractal_engine.config import StrategyConfig
from fractal_engine.core.models import Decision
from fractal_engine.strategy.base import SignalGenerator
from fractal_engine.strategy.fractal_strategy import FractalStrategy


def run(strategy, events):
    return [strategy.generate_signal(event) for event in events]


class TestWarmUp:
    """Test suite for the warm-up period."""

    @pytest.mark.parametrize("period", [1, 2, 3])
    def test_no_signal_during_warm_up(self, market, market_events_factory, period):
        """Test the first 2*period observations never produce a signal."""
        # Alternating series: every evaluated center is a pivot
        count = 4 * period + 4
        highs = [10.0 if i % 2 else 1.0 for i in range(count)]
        lows = [9.0 if i % 2 else 0.0 for i in range(count)]
        strategy = FractalStrategy(StrategyConfig(period=period, radius=1))

        results = run(strategy, market_events_factory(market, highs, lows))

        assert all(result is None for result in results[:2 * period])

    def test_first_signal_on_window_completion(self, market, market_events_factory, peak_series):
        highs, lows = peak_series
        strategy = FractalStrategy(StrategyConfig(period=2))

        results = run(strategy, market_events_factory(market, highs, lows))

        assert results[:4] == [None, None, None, None]
        assert results[4] is not None


class TestDecisionMapping:
    """Test suite for pivot to decision mapping."""

    def test_bearish_pivot_proposes_short(self, market, market_events_factory, peak_series):
        highs, lows = peak_series
        strategy = FractalStrategy()

        signal = run(strategy, market_events_factory(market, highs, lows))[-1]

        assert signal.decisions() == [Decision.SHORT]
        assert signal.strength(Decision.SHORT) == pytest.approx(7 / 15)

    def test_bullish_pivot_proposes_long(self, market, market_events_factory, trough_series):
        highs, lows = trough_series
        strategy = FractalStrategy()

        signal = run(strategy, market_events_factory(market, highs, lows))[-1]

        assert signal.decisions() == [Decision.LONG]
        assert signal.strength(Decision.LONG) == pytest.approx(0.35)

    def test_outside_bar_proposes_both(self, market, market_events_factory):
        highs = [100.0, 101.0, 120.0, 102.0, 100.0]
        lows = [95.0, 96.0, 80.0, 94.0, 95.0]
        strategy = FractalStrategy()

        signal = run(strategy, market_events_factory(market, highs, lows))[-1]

        assert signal.decisions() == [Decision.LONG, Decision.SHORT]

    def test_no_pivot_no_signal(self, market, market_events_factory):
        highs = [30.0, 20.0, 40.0, 50.0, 25.0, 60.0]
        lows = [10.0, 5.0, 15.0, 20.0, 10.0, 25.0]
        strategy = FractalStrategy()

        assert run(strategy, market_events_factory(market, highs, lows)) == [None] * 6

    def test_monotone_run_never_signals(self, market, market_events_factory):
        highs = [100.0 + i for i in range(30)]
        lows = [h - 3 for h in highs]
        strategy = FractalStrategy()

        assert all(r is None for r in run(strategy, market_events_factory(market, highs, lows)))

    def test_signal_is_reported_once_per_pivot(self, market, market_events_factory, peak_series):
        """Test a pivot only signals while it sits at the window center."""
        highs, lows = peak_series
        highs = highs + [100.0, 99.0, 98.0]
        lows = lows + [95.0, 94.0, 93.0]
        strategy = FractalStrategy()

        results = run(strategy, market_events_factory(market, highs, lows))

        assert sum(1 for r in results if r is not None) == 1
        assert strategy.signal_count == 1


class TestSignalContents:
    """Test suite for the emitted Signal payload."""

    def test_signal_carries_market_identity(self, market, market_events_factory, peak_series):
        highs, lows = peak_series
        events = market_events_factory(market, highs, lows)
        strategy = FractalStrategy()

        signal = run(strategy, events)[-1]

        assert signal.exchange == "binance"
        assert signal.instrument == market.instrument

    def test_signal_time_is_pivot_bar_time(self, market, market_events_factory, peak_series):
        highs, lows = peak_series
        events = market_events_factory(market, highs, lows)
        strategy = FractalStrategy()

        signal = run(strategy, events)[-1]

        assert signal.time == events[2].bar.timestamp
        assert signal.market_meta.time == events[-1].time
        assert signal.market_meta.close == events[-1].bar.close

    def test_fixed_strength(self, market, market_events_factory, peak_series):
        highs, lows = peak_series
        strategy = FractalStrategy(StrategyConfig(fixed_strength=1.0))

        signal = run(strategy, market_events_factory(market, highs, lows))[-1]

        assert signal.signals == {Decision.SHORT: 1.0}


class TestInstruments:
    """Test suite for per-instrument windows."""

    def test_windows_are_independent(self, market, eth_market, market_events_factory, peak_series):
        highs, lows = peak_series
        btc_events = market_events_factory(market, highs, lows)
        eth_events = market_events_factory(eth_market, [50.0] * 5, [40.0] * 5)
        strategy = FractalStrategy()

        results = []
        for btc, eth in zip(btc_events, eth_events):
            results.append(strategy.generate_signal(btc))
            results.append(strategy.generate_signal(eth))

        assert strategy.instrument_count == 2
        signals = [r for r in results if r is not None]
        assert len(signals) == 1
        assert signals[0].instrument == market.instrument

    def test_instrument_kind_gets_its_own_window(
        self, market, perpetual_market, market_events_factory, peak_series
    ):
        highs, lows = peak_series
        spot_events = market_events_factory(market, highs, lows)
        perp_events = market_events_factory(perpetual_market, [50.0] * 5, [40.0] * 5)
        strategy = FractalStrategy()

        results = []
        for spot, perp in zip(spot_events, perp_events):
            results.append(strategy.generate_signal(spot))
            results.append(strategy.generate_signal(perp))

        assert strategy.instrument_count == 2
        signals = [r for r in results if r is not None]
        assert len(signals) == 1
        assert signals[0].instrument.kind == "spot"
        assert signals[0].signals[Decision.SHORT] == pytest.approx(7 / 15)

    def test_is_signal_generator(self):
        assert isinstance(FractalStrategy(), SignalGenerator)


class TestStrategyConfig:
    """Test suite for strategy configuration validation."""

    def test_defaults(self):
        config = StrategyConfig()

        assert config.period == 2
        assert config.radius == 2
        assert config.fixed_strength is None
        assert config.window_size == 5

    def test_zero_period_rejected(self):
        with pytest.raises(ValidationError):
            StrategyConfig(period=0, radius=1)

    def test_radius_above_period_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            StrategyConfig(period=1)

        assert "radius" in str(exc_info.value)

    def test_negative_fees_rejected(self):
        with pytest.raises(ValidationError):
            StrategyConfig(fees={"exchange": -0.1})
