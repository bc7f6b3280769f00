"""
In-process notification bus

Broadcasts ledger events (RightCreated, RightTransferred, ...) to external
indexers and audit trails. Notifications are fire-and-forget: a failing
subscriber is logged and never undoes or blocks the mutation that emitted it.

Fun fact: This is the observer pattern from the 1994 "Gang of Four" book -
in production the same interface could front Kafka or NATS without changing
any ledger code.
"""

from collections import defaultdict
from typing import Callable

from rights_provenance.kernel.events import Event
from rights_provenance.kernel.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Event], None]

# Subscribing to this receives every event regardless of type
ALL_EVENTS = "*"


class InProcessBus:
    """
    Simple synchronous in-process publish/subscribe bus

    Handlers are called in registration order on the publishing thread.
    """

    def __init__(self) -> None:
        self._event_handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Register an event handler (many handlers per event type allowed)

        Args:
            event_type: Event type to receive, or ALL_EVENTS for everything
            handler: Callable receiving the Event
        """
        self._event_handlers[event_type].append(handler)
        logger.debug(
            "Event handler registered",
            event_type=event_type,
            total_handlers=len(self._event_handlers[event_type]),
        )

    def publish_event(self, event: Event) -> None:
        """Deliver an event to its subscribers; handler errors are logged only"""
        handlers = self._event_handlers.get(event.event_type, []) + self._event_handlers.get(
            ALL_EVENTS, []
        )
        if not handlers:
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    "Event handler failed",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    stream_id=event.stream_id,
                    error=str(e),
                    exc_info=True,
                )

    def publish_events(self, events: list[Event]) -> None:
        for event in events:
            self.publish_event(event)
