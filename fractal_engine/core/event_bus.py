"""
Event Bus System for Fractal Engine

This module provides the event-driven architecture foundation for the engine.
It includes the closed set of engine event types, the event envelope, producer
handles and the single-consumer event bus that drains one ordered queue.

Many producers (one per trading worker) send through their own ``EventTx``
handle; exactly one consumer runs ``EventBus.run()`` and hands every event to
the ``EventRouter``. Closing the last producer handle is the only shutdown
signal: the consumer drains what is queued and exits cleanly.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
from dataclasses import dataclass
from datetime import datetime
import asyncio

from loguru import logger
from pydantic import BaseModel

from .models import MarketEvent, Signal, SignalForceExit, utc_now

if TYPE_CHECKING:
    from .router import EventRouter


DEFAULT_QUEUE_CAPACITY = 1024


class EventType(Enum):
    """
    Enumeration of every engine event kind.

    The set is closed: the router handles each member explicitly, and adding a
    member without a router handler fails at import time.

    Examples:
        >>> EventType.SIGNAL
        <EventType.SIGNAL: 'signal'>

        >>> EventType.SIGNAL.value
        'signal'
    """

    MARKET = "market"
    """
    Market observation for one instrument (a price bar).

    Payload: MarketEvent.
    """

    SIGNAL = "signal"
    """
    Trading decisions derived from a market observation by a strategy.

    Payload: Signal.
    """

    SIGNAL_FORCE_EXIT = "signal_force_exit"
    """
    Instruction to unconditionally exit any open position for an instrument.

    Payload: SignalForceExit.
    """

    ORDER_NEW = "order_new"
    """New order generated by the portfolio collaborator. Payload is opaque."""

    ORDER_UPDATE = "order_update"
    """Update of an existing order. Payload is opaque."""

    FILL = "fill"
    """Order fill from the execution collaborator. Payload is opaque."""

    POSITION_NEW = "position_new"
    """Position opened. Payload is opaque."""

    POSITION_UPDATE = "position_update"
    """Open position re-valued. Payload is opaque."""

    POSITION_EXIT = "position_exit"
    """Position closed. Payload is opaque."""

    BALANCE = "balance"
    """Cash balance changed. Payload is opaque."""

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<EventType.{self.name}: '{self.value}'>"


# Payload type required for the event kinds this core produces.
PAYLOAD_TYPES = {
    EventType.MARKET: MarketEvent,
    EventType.SIGNAL: Signal,
    EventType.SIGNAL_FORCE_EXIT: SignalForceExit,
}


class OverflowPolicy(Enum):
    """What a producer does when the bounded event queue is full."""

    BLOCK = "block"
    """Wait until the consumer frees a slot."""

    DROP_OLDEST = "drop_oldest"
    """Discard the oldest queued event to make room."""

    REJECT = "reject"
    """Raise EventQueueFullError to the producer."""


class EventQueueFullError(RuntimeError):
    """Raised by EventTx.send() when the queue is full under OverflowPolicy.REJECT."""


class BusState(Enum):
    """Lifecycle of the consumer loop."""

    DRAINING = "draining"
    CLOSED = "closed"


@dataclass
class Event:
    """
    Event envelope flowing through the event bus.

    Attributes:
        event_type (EventType): The kind of engine event
        data (Any): Payload. MarketEvent, Signal or SignalForceExit for the
            kinds this core produces; a dict or pydantic model otherwise
        source (str): Component or worker that produced the event
        timestamp (datetime): When the event was created

    Examples:
        >>> event = Event(
        ...     event_type=EventType.BALANCE,
        ...     data={'total': 10000.0, 'available': 9500.0},
        ...     source='portfolio'
        ... )
        >>> event.event_type
        <EventType.BALANCE: 'balance'>
    """

    event_type: EventType
    data: Any
    source: str
    timestamp: datetime = None

    def __post_init__(self):
        """
        Validate the payload against the event type and set the timestamp.

        Raises:
            TypeError: If event_type is not EventType or the payload does not
                match the event type
        """
        if not isinstance(self.event_type, EventType):
            raise TypeError(
                f"event_type must be EventType enum, got {type(self.event_type).__name__}"
            )

        expected = PAYLOAD_TYPES.get(self.event_type)
        if expected is not None:
            if not isinstance(self.data, expected):
                raise TypeError(
                    f"{self.event_type.name} data must be {expected.__name__}, "
                    f"got {type(self.data).__name__}"
                )
        elif not isinstance(self.data, (dict, BaseModel)):
            raise TypeError(
                f"{self.event_type.name} data must be dict or pydantic model, "
                f"got {type(self.data).__name__}"
            )

        if self.timestamp is None:
            self.timestamp = utc_now()

    @classmethod
    def market(cls, market: MarketEvent, source: str) -> "Event":
        return cls(EventType.MARKET, market, source)

    @classmethod
    def signal(cls, signal: Signal, source: str) -> "Event":
        return cls(EventType.SIGNAL, signal, source)

    @classmethod
    def force_exit(cls, force_exit: SignalForceExit, source: str) -> "Event":
        return cls(EventType.SIGNAL_FORCE_EXIT, force_exit, source)

    def payload(self) -> Any:
        """Return the payload as plain data, suitable for structured logging."""
        if isinstance(self.data, BaseModel):
            return self.data.model_dump(mode="json")
        return self.data

    def __str__(self) -> str:
        return f"Event({self.event_type.name} from {self.source} at {self.timestamp})"

    def __repr__(self) -> str:
        return (
            f"Event(event_type={self.event_type!r}, "
            f"source='{self.source}', "
            f"timestamp={self.timestamp!r}, "
            f"data={self.data!r})"
        )


# Enqueued once the last producer handle closes; never dispatched.
_END_OF_STREAM = object()


class EventTx:
    """
    Producer handle onto the event bus queue.

    Each trading worker owns one handle. Closing the handle (or leaving its
    ``async with`` block) tells the bus this producer is done; once every
    handle is closed the consumer drains the queue and stops.

    Examples:
        >>> async with bus.producer("btc_usdt") as tx:
        ...     await tx.send(Event.market(market_event, "btc_usdt"))
    """

    def __init__(self, bus: "EventBus", name: str):
        self._bus = bus
        self.name = name
        self._closed = False

    async def send(self, event: Event) -> None:
        """
        Send an event to the consumer.

        Args:
            event (Event): The event to send

        Raises:
            TypeError: If event is not an Event instance
            RuntimeError: If this handle was already closed
            EventQueueFullError: If the queue is full under OverflowPolicy.REJECT
        """
        if not isinstance(event, Event):
            raise TypeError(f"event must be Event instance, got {type(event)}")

        if self._closed:
            raise RuntimeError(f"Producer '{self.name}' is closed")

        await self._bus._enqueue(event, self.name)

    async def close(self) -> None:
        """Drop this handle. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self._bus._release_producer(self.name)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "EventTx":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class EventBus:
    """
    Single-consumer, multi-producer event bus.

    Producers obtain ``EventTx`` handles with ``producer()``; one consumer
    awaits ``run()``, which dispatches every event to the router and then to
    any subscribed observer callbacks.

    Features:
        - One ordered queue: events from a single producer are dispatched in
          the order they were sent; producers interleave freely
        - Explicit capacity with an OverflowPolicy (capacity 0 is unbounded)
        - Synchronous dispatch; the queue get is the consumer's only
          suspension point
        - Clean shutdown once every producer handle is closed

    Examples:
        >>> bus = EventBus()
        >>> tx = bus.producer("btc_usdt")
        >>> consumer = asyncio.create_task(bus.run())
        >>> await tx.send(Event.market(market_event, "btc_usdt"))
        >>> await tx.close()
        >>> await consumer  # returns once the queue is drained
    """

    def __init__(
        self,
        router: Optional["EventRouter"] = None,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        overflow: OverflowPolicy = OverflowPolicy.BLOCK,
    ):
        """
        Initialize the event bus.

        Args:
            router (EventRouter, optional): Dispatch target. Defaults to a
                plain EventRouter that logs every event
            capacity (int): Maximum queued events; 0 means unbounded
            overflow (OverflowPolicy): Behaviour when the queue is full

        Raises:
            ValueError: If capacity is negative
        """
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        if not isinstance(overflow, OverflowPolicy):
            raise TypeError(f"overflow must be OverflowPolicy, got {type(overflow)}")

        if router is None:
            from .router import EventRouter
            router = EventRouter()

        self.router = router
        self.capacity = capacity
        self.overflow = overflow
        self._subscribers: Dict[EventType, List[Callable[[Event], None]]] = {
            event_type: [] for event_type in EventType
        }
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._open_producers: int = 0
        self._ever_opened: bool = False
        self._closing: bool = False
        self._eos_queued: bool = False
        self._running: bool = False
        self._state: BusState = BusState.DRAINING
        self._dispatched_count: int = 0
        self._dropped_count: int = 0

    def producer(self, name: str = "producer") -> EventTx:
        """
        Open a new producer handle.

        Args:
            name (str): Producer name used in log messages

        Returns:
            EventTx: Handle to send events with

        Raises:
            RuntimeError: If every earlier producer already closed the bus
        """
        if self._closing:
            raise RuntimeError("Event bus is closed, cannot open new producers")

        self._open_producers += 1
        self._ever_opened = True
        logger.debug(f"Opened producer '{name}' ({self._open_producers} open)")
        return EventTx(self, name)

    async def _enqueue(self, event: Event, producer_name: str) -> None:
        """
        Put an event on the queue, applying the overflow policy when full.

        Always yields to the event loop once the event is queued, so the
        consumer runs between the sends of a producer draining a synchronous
        feed.
        """
        if not self._queue.full():
            self._queue.put_nowait(event)
        elif self.overflow is OverflowPolicy.BLOCK:
            await self._queue.put(event)
        elif self.overflow is OverflowPolicy.DROP_OLDEST:
            dropped = self._queue.get_nowait()
            self._dropped_count += 1
            logger.warning(
                f"Event queue full ({self.capacity}), dropped oldest "
                f"{dropped.event_type.value} event from {dropped.source}"
            )
            self._queue.put_nowait(event)
        else:
            raise EventQueueFullError(
                f"Event queue full ({self.capacity}), rejected "
                f"{event.event_type.value} event from producer '{producer_name}'"
            )

        await asyncio.sleep(0)

    async def _release_producer(self, name: str) -> None:
        self._open_producers -= 1
        logger.debug(f"Closed producer '{name}' ({self._open_producers} open)")

        if self._open_producers == 0:
            self._closing = True
            # Ordered behind every pending event.
            await self._queue.put(_END_OF_STREAM)
            self._eos_queued = True

    def subscribe(self, event_type: EventType, callback: Callable[[Event], None]) -> None:
        """
        Observe a specific event type after the router has dispatched it.

        Args:
            event_type (EventType): The event type to observe
            callback (Callable): Synchronous function accepting an Event

        Raises:
            TypeError: If event_type is not an EventType enum member
        """
        if not isinstance(event_type, EventType):
            raise TypeError(f"event_type must be EventType enum, got {type(event_type)}")

        if callback not in self._subscribers[event_type]:
            self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: EventType, callback: Callable[[Event], None]) -> None:
        if callback in self._subscribers[event_type]:
            self._subscribers[event_type].remove(callback)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers[event_type])

    def clear_subscribers(self, event_type: EventType = None) -> None:
        """
        Clear subscribers for a specific event type or all events.

        Args:
            event_type (EventType, optional): Event type to clear.
                                            If None, clears all subscribers.
        """
        if event_type is None:
            for event_type in EventType:
                self._subscribers[event_type].clear()
        else:
            self._subscribers[event_type].clear()

    def dispatch(self, event: Event) -> None:
        """
        Route one event, then notify its observers.

        Observer exceptions are logged and do not prevent other observers
        from being called.

        Args:
            event (Event): The event to dispatch

        Raises:
            TypeError: If event is not an Event instance
        """
        if not isinstance(event, Event):
            raise TypeError(f"event must be Event instance, got {type(event)}")

        self.router.dispatch(event)
        self._dispatched_count += 1

        for callback in self._subscribers[event.event_type]:
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    f"Error in event subscriber {getattr(callback, '__name__', callback)} "
                    f"for {event.event_type.value}: {e}"
                )

    async def run(self) -> None:
        """
        Consume events until every producer handle has been closed.

        Events are dispatched in queue order. The loop exits cleanly once the
        end-of-stream marker queued by the last closing producer is reached.
        If no producer was ever opened there is nothing to wait for and the
        bus closes immediately.

        Raises:
            RuntimeError: If the consumer loop is already running or the bus
                is already closed
        """
        if self._running:
            raise RuntimeError("Event bus consumer is already running")
        if self._state is BusState.CLOSED:
            raise RuntimeError("Event bus is closed")

        if not self._ever_opened:
            logger.warning("Event bus started without producers, closing")
            self._closing = True
            self._state = BusState.CLOSED
            return

        self._running = True
        logger.info("Event bus consumer started")

        try:
            while True:
                event = await self._queue.get()
                if event is _END_OF_STREAM:
                    break

                try:
                    self.dispatch(event)
                except Exception as e:
                    logger.exception(
                        f"Error dispatching {event.event_type.value} event "
                        f"from {event.source}: {e}"
                    )
        finally:
            self._running = False

        self._state = BusState.CLOSED
        logger.info(
            f"Event bus closed after dispatching {self._dispatched_count} event(s)"
        )

    @property
    def state(self) -> BusState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def open_producers(self) -> int:
        return self._open_producers

    @property
    def queue_size(self) -> int:
        """Number of events waiting to be dispatched."""
        size = self._queue.qsize()
        if self._eos_queued and self._state is not BusState.CLOSED:
            # The end-of-stream marker is not an event.
            size -= 1
        return size

    @property
    def dispatched_count(self) -> int:
        return self._dispatched_count

    @property
    def dropped_count(self) -> int:
        return self._dropped_count
