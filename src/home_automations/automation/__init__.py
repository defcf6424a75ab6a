"""
Automation engine for home-automations.

Provides rule-based automation with triggers, conditions, and actions.

Features:
- Event triggers on device actions, state and attribute changes
- Clock-time and solar-event triggers, re-armed every day
- Dwell ("for") timers cancelled when the trigger stops holding
- Time-window, weekday and entity attribute conditions
- Turn-off-after timers and execute-once automations

Flow:
    state change ──► registry (by entity) ──► trigger evaluator
                                                   │
                                     (dwell timer) ▼
    clock timer ─────────────────────────► condition evaluator
                                                   │
                                                   ▼
                                            action runner ──► host delivery
"""

from .models import (
    # Enums
    Verdict,
    TriggerType,
    ConditionType,
    PayloadShorthand,
    # Triggers
    TimeTrigger,
    EventTrigger,
    ActionTrigger,
    AttributeTrigger,
    StateTrigger,
    TriggerConfig,
    # Conditions
    TimeCondition,
    EntityCondition,
    ConditionConfig,
    # Actions
    Action,
    # Automation
    Automation,
    AutomationConfigError,
    normalize_payload,
)
from .solar import SolarEvent, solar_event_time
from .timestrings import match_time_string
from .adapter import PlatformAdapter, MockPlatformAdapter
from .config import load_automations_config, read_automations_file
from .registry import AutomationRegistry
from .triggers import TriggerEvaluator
from .evaluators import ConditionEvaluator
from .scheduler import TimerScheduler
from .actions import ActionRunner
from .engine import AutomationEngine, EngineResult

__all__ = [
    # Engine
    "AutomationEngine",
    "EngineResult",
    # Components
    "AutomationRegistry",
    "TriggerEvaluator",
    "ConditionEvaluator",
    "TimerScheduler",
    "ActionRunner",
    # Adapter
    "PlatformAdapter",
    "MockPlatformAdapter",
    # Config
    "load_automations_config",
    "read_automations_file",
    # Time
    "match_time_string",
    "SolarEvent",
    "solar_event_time",
    # Enums
    "Verdict",
    "TriggerType",
    "ConditionType",
    "PayloadShorthand",
    # Triggers
    "TimeTrigger",
    "EventTrigger",
    "ActionTrigger",
    "AttributeTrigger",
    "StateTrigger",
    "TriggerConfig",
    # Conditions
    "TimeCondition",
    "EntityCondition",
    "ConditionConfig",
    # Actions
    "Action",
    # Automation
    "Automation",
    "AutomationConfigError",
    "normalize_payload",
]
