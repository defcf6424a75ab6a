"""
home-automations: a rule-based automation engine for entity state changes.

This library provides:
- Trigger/condition/action automations driven by entity state changes
- Clock and solar-event triggers re-armed every day
- Dwell ("for") and turn-off-after timers
- A synchronous state-change Event Bus
"""

from home_automations.core.entity import Entity
from home_automations.core.bus import EventBus, EventFilter, StateChangeEvent
from home_automations.automation.engine import AutomationEngine

__version__ = "0.1.0"

__all__ = [
    "Entity",
    "EventBus",
    "EventFilter",
    "StateChangeEvent",
    "AutomationEngine",
]
