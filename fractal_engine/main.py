"""
Fractal Engine backtest runner.

Replays historical candles for one market through the fractal strategy and
routes every resulting event through the event bus.

Usage:
    fractal-engine
    fractal-engine --config path/to/config.yaml --verbose
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from loguru import logger

from .config import EngineConfig, load_config
from .core.event_bus import EventBus, EventQueueFullError
from .core.router import EventRouter
from .data.market_feed import HistoricalMarketFeed, load_candles_json
from .processors.market_processor import MarketProcessor
from .strategy.fractal_strategy import FractalStrategy


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a stderr sink at the given level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan> - <level>{message}</level>"
        ),
    )


async def run_backtest(config: EngineConfig, router: Optional[EventRouter] = None) -> int:
    """
    Run one backtest over the configured historical data.

    Args:
        config (EngineConfig): Engine configuration; data_path must be set
        router (EventRouter, optional): Router for the event bus

    Returns:
        int: Number of signals generated

    Raises:
        ValueError: If no data_path is configured
    """
    if config.data_path is None:
        raise ValueError("data_path must be configured to run a backtest")

    market = config.market.to_market()
    events = load_candles_json(config.data_path, market)

    bus = EventBus(
        router=router,
        capacity=config.queue.capacity,
        overflow=config.queue.overflow,
    )
    processor = MarketProcessor(
        bus.producer(str(market)),
        FractalStrategy(config.strategy),
    )

    signal_count, _ = await asyncio.gather(
        processor.run(HistoricalMarketFeed(events)),
        bus.run(),
    )

    logger.info(
        f"Backtest finished: {bus.dispatched_count} event(s) dispatched, "
        f"{signal_count} signal(s)"
    )
    return signal_count


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay candles through the fractal strategy")
    parser.add_argument("--config", "-c", help="Path to config.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging("DEBUG" if args.verbose else config.log_level)

    try:
        asyncio.run(run_backtest(config))
    except (OSError, ValueError, EventQueueFullError) as e:
        logger.error(f"Backtest failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
