"""
Event Bus implementation for entity state-change events.

The Event Bus is a simple, synchronous dispatcher. Subscribers may register
with an owner so a whole component can be detached in one call.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Optional, Dict, Any, Callable, List
import logging

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    """Get current UTC time (for default factory)."""
    return datetime.now(UTC)


@dataclass
class StateChangeEvent:
    """
    A state change observed on one entity.

    Attributes:
        entity_id: Entity the change belongs to
        update: Attributes carried by the message that caused the change
        from_state: Attribute snapshot before the change
        to_state: Attribute snapshot after the change
        source: Event source (e.g., "zigbee", "test")
        timestamp: When the change was observed
    """

    entity_id: str
    update: Dict[str, Any] = field(default_factory=dict)
    from_state: Dict[str, Any] = field(default_factory=dict)
    to_state: Dict[str, Any] = field(default_factory=dict)
    source: str = "host"
    timestamp: datetime = field(default_factory=_utc_now)


class EventFilter:
    """
    Filter for event subscriptions.

    Allows subscribers to receive events for a single entity only.
    """

    def __init__(self, entity_id: Optional[str] = None):
        """
        Initialize an event filter.

        Args:
            entity_id: Filter by entity ID (None = all entities)
        """
        self.entity_id = entity_id

    def matches(self, event: StateChangeEvent) -> bool:
        """Check if an event matches this filter."""
        if self.entity_id and event.entity_id != self.entity_id:
            return False
        return True


EventHandler = Callable[[StateChangeEvent], None]


@dataclass
class _Subscription:
    event_filter: EventFilter
    handler: EventHandler
    owner: Optional[object] = None


class EventBus:
    """
    Simple, synchronous event bus for entity state changes.

    Handlers are wrapped in try/except to prevent one bad subscriber from
    stopping delivery to the others.
    """

    def __init__(self) -> None:
        """Initialize the event bus."""
        self._subscriptions: List[_Subscription] = []

    def subscribe(
        self,
        handler: EventHandler,
        event_filter: Optional[EventFilter] = None,
        owner: Optional[object] = None,
    ) -> None:
        """
        Subscribe to state-change events.

        Args:
            handler: Callable that receives StateChangeEvent objects
            event_filter: Optional filter for events (None = receive all events)
            owner: Optional owner, used by unsubscribe_all()
        """
        if event_filter is None:
            event_filter = EventFilter()

        self._subscriptions.append(_Subscription(event_filter, handler, owner))
        logger.debug(f"Subscribed handler {handler.__name__} for entity {event_filter.entity_id}")

    def publish(self, event: StateChangeEvent) -> None:
        """
        Publish an event to all matching subscribers.

        Handlers are called synchronously and wrapped in try/except.

        Args:
            event: The event to publish
        """
        logger.debug(f"Publishing state change for {event.entity_id} from {event.source}")

        # Handlers may unsubscribe while we iterate
        for subscription in list(self._subscriptions):
            if subscription.event_filter.matches(event):
                try:
                    subscription.handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {subscription.handler.__name__} "
                        f"for entity {event.entity_id}: {e}",
                        exc_info=True,
                    )

    def unsubscribe(self, handler: EventHandler) -> None:
        """
        Unsubscribe a handler from all events.

        Args:
            handler: The handler to unsubscribe
        """
        self._subscriptions = [s for s in self._subscriptions if s.handler != handler]
        logger.debug(f"Unsubscribed handler {handler.__name__}")

    def unsubscribe_all(self, owner: object) -> int:
        """
        Remove every subscription registered by an owner.

        Returns:
            Number of subscriptions removed
        """
        before = len(self._subscriptions)
        self._subscriptions = [s for s in self._subscriptions if s.owner is not owner]
        removed = before - len(self._subscriptions)
        logger.debug(f"Removed {removed} subscriptions for {type(owner).__name__}")
        return removed

    @property
    def subscriber_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)
