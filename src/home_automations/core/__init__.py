"""
Core components shared with the host.

This package contains:
- bus: synchronous state-change Event Bus
- entity: Entity dataclass returned by entity resolution
"""

from home_automations.core.entity import Entity
from home_automations.core.bus import EventBus, EventFilter, StateChangeEvent

__all__ = [
    "Entity",
    "EventBus",
    "EventFilter",
    "StateChangeEvent",
]
