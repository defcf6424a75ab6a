"""
Data models for the Automation engine.

Defines triggers, conditions, actions and automations, and parses them from
the configuration mapping.
"""

from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from .solar import SolarEvent
from .timestrings import match_time_string, seconds_to_time_string


class AutomationConfigError(ValueError):
    """Raised when an automation's configuration is invalid."""


# =============================================================================
# Enums
# =============================================================================


class Verdict(Enum):
    """Outcome of checking a trigger against a state change."""

    FIRE = "fire"  # Run (or start the dwell timer)
    SUPPRESS = "suppress"  # Trigger stopped holding: cancel any dwell timer
    IGNORE = "ignore"  # Irrelevant change: leave timers alone


class TriggerType(Enum):
    """Types of triggers that can activate an automation."""

    TIME = "time"  # Clock time or solar event
    ACTION = "action"  # Device reported an action (button press, etc.)
    ATTRIBUTE = "attribute"  # Attribute crossed a threshold or changed
    STATE = "state"  # "state" attribute changed to a value
    ENTITY = "entity"  # Entity named without a matcher


class ConditionType(Enum):
    """Types of conditions that must hold for actions to run."""

    TIME = "time"  # Time window and/or weekdays
    ENTITY = "entity"  # Entity attribute comparison


class PayloadShorthand(Enum):
    """String payloads accepted in place of an attribute map."""

    TURN_ON = "turn_on"
    TURN_OFF = "turn_off"
    TOGGLE = "toggle"


STATE_ON = "ON"
STATE_OFF = "OFF"
STATE_TOGGLE = "TOGGLE"

SHORTHAND_STATES = {
    PayloadShorthand.TURN_ON: STATE_ON,
    PayloadShorthand.TURN_OFF: STATE_OFF,
    PayloadShorthand.TOGGLE: STATE_TOGGLE,
}


# =============================================================================
# Trigger Configs
# =============================================================================


@dataclass(frozen=True)
class TimeTrigger:
    """Trigger at a clock time ("HH:MM:SS") or at a named solar event."""

    time: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: float = 0.0

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.TIME

    @property
    def solar_event(self) -> Optional[SolarEvent]:
        return SolarEvent.parse(self.time)


@dataclass(frozen=True)
class EventTrigger:
    """Trigger on state changes of one or more entities.

    Used directly only when no matcher kind was configured; such a trigger
    never fires.
    """

    entities: Tuple[str, ...] = ()
    for_seconds: float = 0  # Trigger must hold this long before firing

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.ENTITY


@dataclass(frozen=True)
class ActionTrigger(EventTrigger):
    """Trigger when the entity reports one of the configured actions."""

    actions: FrozenSet[str] = frozenset()

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.ACTION


@dataclass(frozen=True)
class AttributeTrigger(EventTrigger):
    """Trigger when an attribute changes, optionally crossing a value."""

    attribute: str = "state"
    equal: Any = None  # Also set from "state" when both are given
    not_equal: Any = None
    above: Optional[float] = None
    below: Optional[float] = None

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.ATTRIBUTE

    @property
    def has_comparator(self) -> bool:
        return any(
            v is not None for v in (self.equal, self.not_equal, self.above, self.below)
        )


@dataclass(frozen=True)
class StateTrigger(EventTrigger):
    """Trigger when the "state" attribute changes to a value."""

    state: Any = None

    @property
    def trigger_type(self) -> TriggerType:
        return TriggerType.STATE


TriggerConfig = TimeTrigger | EventTrigger


# =============================================================================
# Condition Configs
# =============================================================================


@dataclass(frozen=True)
class TimeCondition:
    """Current time must be within [after, before] and on an allowed weekday."""

    after: Optional[str] = None  # "HH:MM:SS"
    before: Optional[str] = None  # "HH:MM:SS"
    weekdays: Optional[FrozenSet[str]] = None  # e.g. frozenset({"sat", "sun"})

    @property
    def condition_type(self) -> ConditionType:
        return ConditionType.TIME


@dataclass(frozen=True)
class EntityCondition:
    """An entity attribute must compare as configured."""

    entity: str
    attribute: str = "state"
    state: Any = None
    equal: Any = None
    not_equal: Any = None
    above: Optional[float] = None
    below: Optional[float] = None

    @property
    def condition_type(self) -> ConditionType:
        return ConditionType.ENTITY


ConditionConfig = TimeCondition | EntityCondition


# =============================================================================
# Action Config
# =============================================================================


@dataclass(frozen=True)
class Action:
    """Send a payload to an entity."""

    entity: str
    payload: Any  # PayloadShorthand value or attribute map
    turn_off_after: Optional[float] = None  # Seconds
    log_level: Optional[str] = None  # debug, info, warn, error


# =============================================================================
# Automation
# =============================================================================


@dataclass
class Automation:
    """
    One registered automation.

    A configured automation is materialized once per trigger it owns; all
    records share the same name, conditions and actions.
    """

    name: str
    trigger: TriggerConfig
    conditions: List[ConditionConfig] = field(default_factory=list)
    actions: List[Action] = field(default_factory=list)
    execute_once: bool = False

    @property
    def entities(self) -> Tuple[str, ...]:
        """Entities this automation listens to (empty for time triggers)."""
        if isinstance(self.trigger, EventTrigger):
            return self.trigger.entities
        return ()

    @classmethod
    def from_config(cls, name: str, data: Mapping[str, Any]) -> List["Automation"]:
        """
        Parse one configured automation into one record per trigger.

        Raises:
            AutomationConfigError: If any part of the configuration is invalid
        """
        if not data.get("trigger"):
            raise AutomationConfigError("no triggers defined")
        if not data.get("action"):
            raise AutomationConfigError("no actions defined")

        triggers = [_parse_trigger(t) for t in to_list(data["trigger"])]
        actions = [_parse_action(a) for a in to_list(data["action"])]
        conditions: List[ConditionConfig] = []
        if data.get("condition"):
            for item in to_list(data["condition"]):
                conditions.extend(_parse_condition(item))

        execute_once = bool(data.get("execute_once", False))
        return [
            cls(
                name=name,
                trigger=trigger,
                conditions=conditions,
                actions=actions,
                execute_once=execute_once,
            )
            for trigger in triggers
        ]


# =============================================================================
# Parsing helpers
# =============================================================================


def to_list(item: Any) -> List[Any]:
    """Normalize a single value or a list to a list."""
    if isinstance(item, (list, tuple)):
        return list(item)
    return [item]


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _time_value(value: Any) -> str:
    # YAML 1.1 reads unquoted 17:30:00 as sexagesimal 63000
    if _is_number(value):
        return seconds_to_time_string(value)
    return str(value)


def _number(data: Mapping[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise AutomationConfigError(f"{key} must be a number, got {value!r}")
    return value


def _duration(data: Mapping[str, Any], key: str) -> Optional[float]:
    value = _number(data, key)
    if value is not None and value < 0:
        raise AutomationConfigError(f"{key} must not be negative, got {value!r}")
    return value


def _parse_trigger(data: Any) -> TriggerConfig:
    """Parse trigger config from dict."""
    if not isinstance(data, Mapping):
        raise AutomationConfigError(f"trigger must be a mapping, got {data!r}")

    if data.get("time") is not None:
        trigger = TimeTrigger(
            time=_time_value(data["time"]),
            latitude=_number(data, "latitude"),
            longitude=_number(data, "longitude"),
            elevation=_number(data, "elevation") or 0.0,
        )
        if trigger.solar_event is not None:
            if trigger.latitude is None or trigger.longitude is None:
                raise AutomationConfigError(
                    f"latitude and longitude are mandatory for {trigger.time}"
                )
        elif match_time_string(trigger.time) is None:
            raise AutomationConfigError(f"time syntax error for {trigger.time}")
        return trigger

    if not data.get("entity"):
        raise AutomationConfigError("trigger entity not defined")

    entities = tuple(str(e) for e in to_list(data["entity"]))
    for_seconds = _duration(data, "for") or 0

    if data.get("action") is not None:
        return ActionTrigger(
            entities=entities,
            for_seconds=for_seconds,
            actions=frozenset(str(a) for a in to_list(data["action"])),
        )
    elif data.get("attribute") is not None:
        equal = data["state"] if data.get("state") is not None else data.get("equal")
        return AttributeTrigger(
            entities=entities,
            for_seconds=for_seconds,
            attribute=str(data["attribute"]),
            equal=equal,
            not_equal=data.get("not_equal"),
            above=_number(data, "above"),
            below=_number(data, "below"),
        )
    elif data.get("state") is not None:
        return StateTrigger(entities=entities, for_seconds=for_seconds, state=data["state"])
    return EventTrigger(entities=entities, for_seconds=for_seconds)


def _parse_condition(data: Any) -> Tuple[ConditionConfig, ...]:
    """Parse one condition object; it may hold a time part and an entity part."""
    if not isinstance(data, Mapping):
        raise AutomationConfigError(f"condition must be a mapping, got {data!r}")

    parts: List[ConditionConfig] = []
    if data.get("after") or data.get("before") or data.get("weekday"):
        weekdays = None
        if data.get("weekday"):
            weekdays = frozenset(str(d).lower() for d in to_list(data["weekday"]))
        parts.append(
            TimeCondition(
                after=_time_value(data["after"]) if data.get("after") else None,
                before=_time_value(data["before"]) if data.get("before") else None,
                weekdays=weekdays,
            )
        )
    if data.get("entity"):
        parts.append(
            EntityCondition(
                entity=str(data["entity"]),
                attribute=str(data.get("attribute") or "state"),
                state=data.get("state"),
                equal=data.get("equal"),
                not_equal=data.get("not_equal"),
                above=_number(data, "above"),
                below=_number(data, "below"),
            )
        )
    if not parts:
        raise AutomationConfigError("condition unknown")
    return tuple(parts)


def _parse_action(data: Any) -> Action:
    """Parse action config from dict."""
    if not isinstance(data, Mapping):
        raise AutomationConfigError(f"action must be a mapping, got {data!r}")
    if not data.get("entity"):
        raise AutomationConfigError("action entity not defined")
    payload = data.get("payload")
    # An empty attribute map is a valid payload
    if payload is None or (not payload and not isinstance(payload, Mapping)):
        raise AutomationConfigError("action payload not defined")

    if isinstance(payload, Mapping):
        payload = dict(payload)
    return Action(
        entity=str(data["entity"]),
        payload=payload,
        turn_off_after=_duration(data, "turn_off_after"),
        log_level=data.get("logger"),
    )


def normalize_payload(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Turn an action payload into the attribute map to send.

    Returns:
        The attribute map, or None if the payload shape is not supported
    """
    if isinstance(payload, str):
        for shorthand, state in SHORTHAND_STATES.items():
            if payload == shorthand.value:
                return {"state": state}
        return None
    if isinstance(payload, Mapping):
        return dict(payload)
    return None
