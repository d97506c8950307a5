"""
Event Publisher

Application service for publishing domain events to registered handlers.
Enables decoupling of side effects from tracking logic.
"""

import logging
from typing import Callable, Dict, List, Type

from jobwatch.domain.events import DomainEvent

logger = logging.getLogger(__name__)


class EventPublisher:
    """
    Event publisher that dispatches domain events to registered handlers.

    Handlers registered for DomainEvent itself receive every event.
    Events are dispatched synchronously on the event loop thread; handler
    exceptions are caught and logged so they never break tracking.
    """

    def __init__(self):
        """Initialize EventPublisher with empty handler registry."""
        self._handlers: Dict[Type[DomainEvent], List[Callable[[DomainEvent], None]]] = {}

    def subscribe(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event_type: The type of domain event to handle
            handler: Callable that accepts the event as parameter

        Example:
            publisher = EventPublisher()
            publisher.subscribe(ChannelSwitchedEvent, handle_switch)
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            f"Registered handler {getattr(handler, '__name__', repr(handler))} "
            f"for {event_type.__name__}"
        )

    def unsubscribe(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ) -> None:
        """Remove a previously registered handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all registered handlers.

        Args:
            event: The domain event to publish
        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))
        if event_type is not DomainEvent:
            handlers.extend(self._handlers.get(DomainEvent, []))

        if not handlers:
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Side effects must not break tracking
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', repr(handler))} "
                    f"for {event_type.__name__}: {e}",
                    exc_info=True
                )
