"""
Fractal Strategy for Fractal Engine

Turns fractal pivots into trading decisions:
- A bearish fractal (local top in highs) proposes SHORT
- A bullish fractal (local bottom in lows) proposes LONG

Each instrument gets its own rolling window of 2*period+1 bars. The strategy
warms up until the window is full, then evaluates the center bar of the window
on every new observation.
"""

from typing import Dict, Optional
from loguru import logger

from ..config import StrategyConfig
from ..core.models import Decision, Market, MarketEvent, MarketMeta, Signal, SignalStrength
from .base import SignalGenerator
from .fractals import InsufficientDataError, PivotSide, detect_sides, pivot_strength
from .window import WindowBuffer


SIDE_DECISIONS: Dict[PivotSide, Decision] = {
    PivotSide.BEARISH: Decision.SHORT,
    PivotSide.BULLISH: Decision.LONG,
}


class FractalStrategy(SignalGenerator):
    """
    Generates signals from fractal pivots at the center of a rolling window.

    The first ``2 * period`` observations of an instrument never produce a
    signal. From then on a signal is returned whenever the center bar of the
    window is a pivot. If the center bar is both a high and a low pivot the
    signal carries both SHORT and LONG.

    Strength is ``config.fixed_strength`` when set, otherwise the pivot's
    dominance over its neighbours (see ``pivot_strength``).

    Examples:
        >>> strategy = FractalStrategy(StrategyConfig(period=2))
        >>> for market_event in feed:
        ...     signal = strategy.generate_signal(market_event)
        ...     if signal:
        ...         print(signal.signals)
    """

    def __init__(self, config: Optional[StrategyConfig] = None):
        """
        Initialize the strategy.

        Args:
            config (StrategyConfig, optional): Strategy parameters. Defaults
                to period 2, radius 2 and dominance-based strength
        """
        self.config = config or StrategyConfig()
        self._windows: Dict[Market, WindowBuffer] = {}
        self._signal_count: int = 0

    def _window_for(self, market: MarketEvent) -> WindowBuffer:
        key = market.market
        window = self._windows.get(key)
        if window is None:
            window = WindowBuffer(self.config.period)
            self._windows[key] = window
        return window

    def generate_signal(self, market: MarketEvent) -> Optional[Signal]:
        """
        Add the observation to its window and evaluate the center bar.

        Args:
            market (MarketEvent): Latest observation for an instrument

        Returns:
            Signal or None: A signal when the center bar is a pivot
        """
        window = self._window_for(market)
        window.push(market.bar)

        if not window.is_ready():
            logger.debug(
                f"Warming up {market.exchange}:{market.instrument} "
                f"({len(window)}/{window.capacity} bars)"
            )
            return None

        highs = window.highs()
        lows = window.lows()

        try:
            masks = detect_sides(highs, lows, self.config.period, self.config.radius)
        except InsufficientDataError as e:
            logger.debug(f"No signal for {market.exchange}:{market.instrument}: {e}")
            return None

        center = window.center_index
        sides = masks.sides_at(center)
        if not sides:
            return None

        signals: Dict[Decision, SignalStrength] = {}
        for side in sides:
            signals[SIDE_DECISIONS[side]] = self._strength(highs, lows, center, side)

        pivot_bar = window.center()
        signal = Signal(
            time=pivot_bar.timestamp,
            exchange=market.exchange,
            instrument=market.instrument,
            signals=signals,
            market_meta=MarketMeta(close=market.bar.close, time=market.time),
        )
        self._signal_count += 1

        logger.info(
            f"Fractal pivot on {market.exchange}:{market.instrument} at "
            f"{pivot_bar.timestamp}: "
            + ", ".join(f"{d.value}={s:.3f}" for d, s in signals.items())
        )
        return signal

    def _strength(
        self,
        highs: list,
        lows: list,
        index: int,
        side: PivotSide
    ) -> SignalStrength:
        if self.config.fixed_strength is not None:
            return self.config.fixed_strength
        return pivot_strength(highs, lows, index, side, self.config.radius)

    @property
    def signal_count(self) -> int:
        """Get total number of signals generated."""
        return self._signal_count

    @property
    def instrument_count(self) -> int:
        """Get number of instruments with a window."""
        return len(self._windows)
