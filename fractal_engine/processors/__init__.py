"""
Event producers for Fractal Engine

- MarketProcessor: Publishes market observations and the signals a strategy
  derives from them through one EventTx producer handle

Examples:
    >>> from fractal_engine.core.event_bus import EventBus
    >>> from fractal_engine.processors import MarketProcessor
    >>> from fractal_engine.strategy import FractalStrategy
    >>>
    >>> bus = EventBus()
    >>> processor = MarketProcessor(bus.producer("btc_usdt"), FractalStrategy())
    >>> await asyncio.gather(bus.run(), processor.run(feed))
"""

from .market_processor import MarketProcessor

__all__ = [
    "MarketProcessor",
]
