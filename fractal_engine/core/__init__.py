"""
Core module for event-driven architecture.

This module provides the foundational components for the engine:
- Domain models: Bar, MarketEvent, Signal, SignalForceExit, Decision
- EventBus: Single-consumer, multi-producer event queue
- EventRouter: Exhaustive dispatch over every engine event kind
"""

from .event_bus import Event, EventBus, EventTx, EventType, OverflowPolicy
from .router import EventRouter

__all__ = [
    "Event",
    "EventBus",
    "EventTx",
    "EventType",
    "EventRouter",
    "OverflowPolicy",
]
