"""
Fractal Engine - Signal generation and event routing for an event-driven trading simulator

This package contains the core of a backtesting engine that detects fractal
pivot points in price bars, turns them into trading signals and routes every
engine event through a single ordered queue.

Modules:
    core: Domain models, event taxonomy, event bus and router
    strategy: Window buffer, fractal detector and signal generators
    processors: Market processor publishing market and signal events
    data: Historical market feed and candle loading
"""

__version__ = "0.1.0"
__author__ = "Fractal Engine Team"
