"""
Market Processor for Fractal Engine

The market processor is the producer side of one trading worker:
- Publishes every market observation as a MARKET event
- Runs the signal generator on the observation
- Publishes any resulting Signal as a SIGNAL event
- Publishes SIGNAL_FORCE_EXIT on request

All events go through the worker's own EventTx handle, so the consumer sees
them in exactly the order this processor sent them.
"""

from typing import AsyncIterable, Iterable, Optional, Union
from loguru import logger

from ..core.event_bus import Event, EventTx
from ..core.models import Market, MarketEvent, Signal, SignalForceExit
from ..strategy.base import SignalGenerator


class MarketProcessor:
    """
    Feeds market observations through a strategy onto the event bus.

    Attributes:
        event_tx (EventTx): Producer handle owned by this processor
        strategy (SignalGenerator): Strategy evaluated on every observation
        source (str): Source name stamped on every event

    Examples:
        >>> bus = EventBus()
        >>> processor = MarketProcessor(bus.producer("btc_usdt"), FractalStrategy())
        >>> consumer = asyncio.create_task(bus.run())
        >>> await processor.run(HistoricalMarketFeed(events))
        >>> await consumer
    """

    def __init__(
        self,
        event_tx: EventTx,
        strategy: SignalGenerator,
        source: Optional[str] = None
    ):
        self.event_tx = event_tx
        self.strategy = strategy
        self.source = source or event_tx.name
        self._market_count: int = 0
        self._signal_count: int = 0

    async def on_market(self, market: MarketEvent) -> Optional[Signal]:
        """
        Publish one observation and the signal it produces, if any.

        Args:
            market (MarketEvent): Latest observation

        Returns:
            Signal or None: The signal that was published
        """
        await self.event_tx.send(Event.market(market, self.source))
        self._market_count += 1

        signal = self.strategy.generate_signal(market)
        if signal is None:
            return None

        await self.event_tx.send(Event.signal(signal, self.source))
        self._signal_count += 1
        logger.debug(f"SIGNAL event published by {self.source}")
        return signal

    async def force_exit(self, market: Union[Market, MarketEvent]) -> SignalForceExit:
        """
        Publish an instruction to exit any open position on a market.

        Args:
            market: Market (or market observation) to exit

        Returns:
            SignalForceExit: The published instruction
        """
        force_exit = SignalForceExit.from_market(market)
        await self.event_tx.send(Event.force_exit(force_exit, self.source))
        logger.info(f"Force exit requested for {force_exit.exchange}:{force_exit.instrument}")
        return force_exit

    async def run(
        self,
        feed: Union[Iterable[MarketEvent], AsyncIterable[MarketEvent]]
    ) -> int:
        """
        Process a whole feed, then close the producer handle.

        The handle is closed even if processing fails, so the consumer is
        never left waiting on a dead producer.

        Args:
            feed: Sync or async iterable of market observations

        Returns:
            int: Number of signals published
        """
        logger.info(f"{self.source} processing market feed")
        try:
            if hasattr(feed, "__aiter__"):
                async for market in feed:
                    await self.on_market(market)
            else:
                for market in feed:
                    await self.on_market(market)
        finally:
            await self.event_tx.close()

        logger.info(
            f"{self.source} finished: {self._market_count} market event(s), "
            f"{self._signal_count} signal(s)"
        )
        return self._signal_count

    @property
    def market_count(self) -> int:
        """Get total number of market events published."""
        return self._market_count

    @property
    def signal_count(self) -> int:
        """Get total number of signals published."""
        return self._signal_count
