"""
Event Router for Fractal Engine

The router is the dispatch target of the event bus consumer. It maps every
EventType to an ``on_<kind>`` handler and is total over the closed event
taxonomy: the handler table is checked against EventType when this module is
imported, and again for every subclass, so an unhandled kind can never reach
the consumer loop at runtime.

Dispatch is observational. The default handlers report each event through
loguru with its full payload; MARKET events are only traced at DEBUG level.
"""

from typing import Callable, Dict
from loguru import logger

from .event_bus import Event, EventType


HANDLER_NAMES: Dict[EventType, str] = {
    EventType.MARKET: "on_market",
    EventType.SIGNAL: "on_signal",
    EventType.SIGNAL_FORCE_EXIT: "on_signal_force_exit",
    EventType.ORDER_NEW: "on_order_new",
    EventType.ORDER_UPDATE: "on_order_update",
    EventType.FILL: "on_fill",
    EventType.POSITION_NEW: "on_position_new",
    EventType.POSITION_UPDATE: "on_position_update",
    EventType.POSITION_EXIT: "on_position_exit",
    EventType.BALANCE: "on_balance",
}

_unhandled = set(EventType) - set(HANDLER_NAMES)
if _unhandled:
    raise TypeError(
        f"EventRouter has no handler for: {sorted(t.name for t in _unhandled)}"
    )


class EventRouter:
    """
    Exhaustive dispatcher over all engine event kinds.

    Subclasses customise behaviour by overriding ``on_<kind>`` methods; the
    handler table is rebuilt per instance so overrides take effect.

    Examples:
        >>> class PrintingRouter(EventRouter):
        ...     def on_signal(self, event: Event) -> None:
        ...         print(event.data.signals)
        >>>
        >>> bus = EventBus(router=PrintingRouter())
    """

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        missing = [
            name for name in HANDLER_NAMES.values()
            if not callable(getattr(cls, name, None))
        ]
        if missing:
            raise TypeError(f"{cls.__name__} must define handlers: {missing}")

    def __init__(self):
        self._handlers: Dict[EventType, Callable[[Event], None]] = {
            event_type: getattr(self, name)
            for event_type, name in HANDLER_NAMES.items()
        }

    def dispatch(self, event: Event) -> None:
        """
        Route one event to the handler for its kind.

        Args:
            event (Event): The event to route
        """
        self._handlers[event.event_type](event)

    def _report(self, event: Event) -> None:
        logger.bind(
            event_type=event.event_type.value,
            source=event.source,
        ).info(f"{event.event_type.name} from {event.source}: {event.payload()}")

    def on_market(self, event: Event) -> None:
        market = event.data
        logger.bind(event_type=event.event_type.value, source=event.source).debug(
            f"MARKET {market.exchange}:{market.instrument} @ {market.time}"
        )

    def on_signal(self, event: Event) -> None:
        self._report(event)

    def on_signal_force_exit(self, event: Event) -> None:
        self._report(event)

    def on_order_new(self, event: Event) -> None:
        self._report(event)

    def on_order_update(self, event: Event) -> None:
        self._report(event)

    def on_fill(self, event: Event) -> None:
        self._report(event)

    def on_position_new(self, event: Event) -> None:
        self._report(event)

    def on_position_update(self, event: Event) -> None:
        self._report(event)

    def on_position_exit(self, event: Event) -> None:
        self._report(event)

    def on_balance(self, event: Event) -> None:
        self._report(event)
