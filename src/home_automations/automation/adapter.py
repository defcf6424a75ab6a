"""
Platform adapter interface for the Automation engine.

The adapter provides an abstraction layer between the automation engine and
the host (zigbee bridge, etc.). The integration layer provides a concrete
implementation.

Design Principle:
    The adapter is intentionally minimal. Entity resolution, the current
    attribute snapshot and message delivery belong to the host. The engine
    only needs these few calls plus a clock and a way to schedule callbacks.
"""

import heapq
import itertools
import json
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from home_automations.core.entity import Entity

from .solar import SolarEvent, solar_event_time


class TimerHandle(Protocol):
    """Anything returned by call_later() that can be cancelled."""

    def cancel(self) -> None: ...


class PlatformAdapter(ABC):
    """
    Abstract interface for platform operations.

    The host provides a concrete implementation that translates these calls
    to its own entity registry, state cache and message bus.

    Required:
    - resolve_entity: Look up an entity by configured id
    - get_attribute: Read the current value of an entity attribute
    - deliver: Send a command payload to a topic (fire-and-forget)

    Overridable defaults:
    - get_current_time: Local wall-clock time
    - call_later: Daemon threading.Timer
    - solar_event_time: astral-based solar calculation
    """

    @abstractmethod
    def resolve_entity(self, entity_id: str) -> Optional[Entity]:
        """
        Resolve a configured entity id.

        Returns:
            The entity, or None if the host does not know it
        """
        pass

    @abstractmethod
    def get_attribute(self, entity: Entity, attribute: str) -> Any:
        """
        Get the current value of an entity attribute.

        Returns:
            Attribute value, or None if not reported yet
        """
        pass

    @abstractmethod
    def deliver(self, topic: str, payload: bytes) -> None:
        """
        Deliver a command payload.

        Args:
            topic: Command topic, e.g. "zigbee2mqtt/kitchen_light/set"
            payload: JSON-encoded attribute map
        """
        pass

    def get_current_time(self) -> datetime:
        """
        Get current wall-clock time.

        Returns:
            Current local datetime (timezone-aware)
        """
        return datetime.now().astimezone()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Run callback once after delay seconds.

        The default timer runs on a daemon thread so it never keeps the
        process alive.
        """
        timer = threading.Timer(max(delay, 0.0), callback)
        timer.daemon = True
        timer.start()
        return timer

    def solar_event_time(
        self,
        day: date,
        latitude: float,
        longitude: float,
        elevation: float,
        event: SolarEvent,
        tz: Optional[tzinfo] = None,
    ) -> str:
        """
        Get the wall-clock time ("HH:MM:SS") of a solar event.

        Raises:
            ValueError: If the event does not occur on that day
        """
        return solar_event_time(day, latitude, longitude, elevation, event, tz)


def _instant(dt: datetime) -> datetime:
    # Aware times are ordered and shifted in UTC so DST changes count as real time
    return dt if dt.tzinfo is None else dt.astimezone(timezone.utc)


def _shift(dt: datetime, seconds: float) -> datetime:
    shifted = _instant(dt) + timedelta(seconds=seconds)
    return shifted if dt.tzinfo is None else shifted.astimezone(dt.tzinfo)


class MockTimerHandle:
    """Timer handle used by MockPlatformAdapter."""

    def __init__(self, due: datetime, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class MockPlatformAdapter(PlatformAdapter):
    """
    Mock adapter for testing.

    Keeps an entity table, records deliveries and runs timers on a virtual
    clock that only moves when advance() is called.
    """

    def __init__(self, now: Optional[datetime] = None) -> None:
        self._entities: Dict[str, Entity] = {}
        self._deliveries: List[Tuple[str, bytes]] = []
        self._solar_times: Dict[SolarEvent, str] = {}
        self._current_time: datetime = now or datetime(2025, 1, 15, 12, 0, 0)
        self._timers: List[Tuple[datetime, int, MockTimerHandle]] = []
        self._sequence = itertools.count()

    def add_entity(self, entity_id: str, name: Optional[str] = None, **attributes: Any) -> Entity:
        """Register an entity for testing."""
        entity = Entity(id=entity_id, name=name or entity_id, attributes=dict(attributes))
        self._entities[entity_id] = entity
        return entity

    def remove_entity(self, entity_id: str) -> None:
        """Forget an entity (simulates a device leaving the network)."""
        self._entities.pop(entity_id, None)

    def set_attribute(self, entity_id: str, attribute: str, value: Any) -> None:
        """Set an entity attribute for testing."""
        self._entities[entity_id].attributes[attribute] = value

    def set_current_time(self, dt: datetime) -> None:
        """Set current time for testing (does not fire timers)."""
        self._current_time = dt

    def set_solar_time(self, event: SolarEvent, value: str) -> None:
        """Pin a solar event to a fixed time for testing."""
        self._solar_times[event] = value

    def get_deliveries(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Get recorded deliveries with decoded payloads."""
        return [(topic, json.loads(payload)) for topic, payload in self._deliveries]

    def clear_deliveries(self) -> None:
        """Clear recorded deliveries."""
        self._deliveries.clear()

    def pending_timers(self) -> int:
        """Number of timers that are armed and not cancelled."""
        return sum(1 for _, _, handle in self._timers if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        """
        Move the virtual clock forward, firing due timers in order.

        Timers armed by fired callbacks run too if they fall inside the window.
        """
        target = _shift(self._current_time, seconds)
        while self._timers and self._timers[0][0] <= _instant(target):
            _, _, handle = heapq.heappop(self._timers)
            if handle.cancelled:
                continue
            self._current_time = handle.due
            handle.cancelled = True
            handle.callback()
        self._current_time = target

    # PlatformAdapter implementation

    def resolve_entity(self, entity_id: str) -> Optional[Entity]:
        return self._entities.get(entity_id)

    def get_attribute(self, entity: Entity, attribute: str) -> Any:
        return entity.attributes.get(attribute)

    def deliver(self, topic: str, payload: bytes) -> None:
        self._deliveries.append((topic, payload))

    def get_current_time(self) -> datetime:
        return self._current_time

    def call_later(self, delay: float, callback: Callable[[], None]) -> MockTimerHandle:
        due = _shift(self._current_time, max(delay, 0.0))
        handle = MockTimerHandle(due, callback)
        heapq.heappush(self._timers, (_instant(due), next(self._sequence), handle))
        return handle

    def solar_event_time(
        self,
        day: date,
        latitude: float,
        longitude: float,
        elevation: float,
        event: SolarEvent,
        tz: Optional[tzinfo] = None,
    ) -> str:
        if event in self._solar_times:
            return self._solar_times[event]
        return super().solar_event_time(day, latitude, longitude, elevation, event, tz)
