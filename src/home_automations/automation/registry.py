"""
Automation registry.

Holds the two automation indices: entity id -> event automations, and
"HH:MM:SS" -> time automations. Both keep registration order.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import (
    Automation,
    AutomationConfigError,
    EntityCondition,
    EventTrigger,
    TimeTrigger,
)

if TYPE_CHECKING:
    from .adapter import PlatformAdapter

logger = logging.getLogger(__name__)


class AutomationRegistry:
    """
    Indexes automations by trigger entity and by clock time.

    Solar-event automations are also kept in registration order so they can
    be re-keyed when the day changes.
    """

    def __init__(self, platform: "PlatformAdapter") -> None:
        self._platform = platform
        self._event_automations: Dict[str, List[Automation]] = {}
        self._time_automations: Dict[str, List[Automation]] = {}
        self._solar_automations: List[Automation] = []

    # =========================================================================
    # Loading
    # =========================================================================

    def load(
        self,
        config: Mapping[str, Any],
        now: Optional[datetime] = None,
        on_replace: Optional[Callable[[str], None]] = None,
    ) -> int:
        """
        Validate and register every automation in a configuration mapping.

        An invalid automation is logged and skipped; the others are unaffected.
        A valid automation whose name is already registered replaces the old
        one, and on_replace is called with that name.

        Returns:
            Number of automations registered
        """
        if now is None:
            now = self._platform.get_current_time()

        registered = 0
        for name, data in config.items():
            if not isinstance(data, Mapping):
                logger.error(f"Config validation error for [{name}]: automation must be a mapping")
                continue
            if data.get("active") is False:
                logger.info(f"Automation [{name}] not registered since active is false")
                continue
            try:
                automations = Automation.from_config(str(name), data)
                self._check_entities(automations)
                keyed = [(a, self.resolve_time_key(a, now)) for a in automations]
            except AutomationConfigError as e:
                logger.error(f"Config validation error for [{name}]: {e}")
                continue

            if self.remove(str(name)):
                logger.info(f"Automation [{name}] replaced")
                if on_replace is not None:
                    on_replace(str(name))
            for automation, key in keyed:
                self._insert(automation, key)
            registered += 1
        return registered

    def _check_entities(self, automations: List[Automation]) -> None:
        """Raise if any referenced entity is unknown to the host."""
        first = automations[0]
        for automation in automations:
            for entity_id in automation.entities:
                if self._platform.resolve_entity(entity_id) is None:
                    raise AutomationConfigError(f"trigger entity #{entity_id}# not found")
        for action in first.actions:
            if self._platform.resolve_entity(action.entity) is None:
                raise AutomationConfigError(f"action entity #{action.entity}# not found")
        for condition in first.conditions:
            if isinstance(condition, EntityCondition):
                if self._platform.resolve_entity(condition.entity) is None:
                    raise AutomationConfigError(
                        f"condition entity #{condition.entity}# not found"
                    )

    # =========================================================================
    # Registration
    # =========================================================================

    def resolve_time_key(self, automation: Automation, now: datetime) -> Optional[str]:
        """
        Get the time index key of a time automation for the day of now.

        Returns:
            "HH:MM:SS", or None for event automations

        Raises:
            AutomationConfigError: If a solar event cannot be resolved
        """
        trigger = automation.trigger
        if not isinstance(trigger, TimeTrigger):
            return None
        event = trigger.solar_event
        if event is None:
            return trigger.time
        try:
            return self._platform.solar_event_time(
                now.date(),
                trigger.latitude,
                trigger.longitude,
                trigger.elevation,
                event,
                now.tzinfo,
            )
        except ValueError as e:
            raise AutomationConfigError(f"cannot compute {trigger.time}: {e}") from e

    def register(self, automation: Automation, now: Optional[datetime] = None) -> None:
        """
        Register one automation record.

        Raises:
            AutomationConfigError: If a solar event cannot be resolved
        """
        if now is None:
            now = self._platform.get_current_time()
        self._insert(automation, self.resolve_time_key(automation, now))

    def _insert(self, automation: Automation, time_key: Optional[str]) -> None:
        trigger = automation.trigger
        if isinstance(trigger, TimeTrigger):
            logger.info(f"Registering time automation [{automation.name}] trigger: {trigger.time}")
            if trigger.solar_event is not None:
                self._solar_automations.append(automation)
            self._time_automations.setdefault(time_key, []).append(automation)
        elif isinstance(trigger, EventTrigger):
            if type(trigger) is EventTrigger:
                logger.warning(
                    f"Automation [{automation.name}] trigger has no action, state or "
                    f"attribute and will never fire"
                )
            logger.info(
                f"Registering event automation [{automation.name}] trigger: "
                f"entity #{', '.join(trigger.entities)}#"
            )
            for entity_id in trigger.entities:
                self._event_automations.setdefault(entity_id, []).append(automation)

    # =========================================================================
    # Lookup
    # =========================================================================

    def lookup_by_entity(self, entity_id: str) -> List[Automation]:
        """Get the automations listening to an entity, in registration order."""
        return list(self._event_automations.get(entity_id, []))

    def time_automations(self) -> List[Tuple[str, Automation]]:
        """Get (time key, automation) pairs in key then registration order."""
        return [
            (key, automation)
            for key, automations in self._time_automations.items()
            for automation in automations
        ]

    def time_keys(self) -> List[str]:
        """Get the registered clock-time keys."""
        return list(self._time_automations)

    def is_registered(self, automation: Automation) -> bool:
        """Check whether this exact record is still registered."""
        for automations in self._iter_lists():
            if any(a is automation for a in automations):
                return True
        return False

    def names(self) -> List[str]:
        """Get the distinct registered automation names."""
        seen: Dict[str, None] = {}
        for automations in self._iter_lists():
            for automation in automations:
                seen.setdefault(automation.name, None)
        return list(seen)

    def _iter_lists(self) -> Iterable[List[Automation]]:
        yield from self._event_automations.values()
        yield from self._time_automations.values()

    # =========================================================================
    # Removal
    # =========================================================================

    def remove(self, name: str) -> int:
        """
        Remove every record of an automation from both indices.

        Removing an unknown name is a no-op.

        Returns:
            Number of index entries removed
        """
        removed = 0
        for index in (self._event_automations, self._time_automations):
            for key in list(index):
                kept = [a for a in index[key] if a.name != name]
                removed += len(index[key]) - len(kept)
                if kept:
                    index[key] = kept
                else:
                    del index[key]
        self._solar_automations = [a for a in self._solar_automations if a.name != name]
        if removed:
            logger.info(f"Unregistered automation [{name}] ({removed} entries)")
        return removed

    # =========================================================================
    # Daily refresh
    # =========================================================================

    def refresh_solar(self, now: Optional[datetime] = None) -> None:
        """Re-key solar-event automations for the day of now."""
        if not self._solar_automations:
            return
        if now is None:
            now = self._platform.get_current_time()

        solar_ids = {id(a) for a in self._solar_automations}
        for key in list(self._time_automations):
            kept = [a for a in self._time_automations[key] if id(a) not in solar_ids]
            if kept:
                self._time_automations[key] = kept
            else:
                del self._time_automations[key]

        for automation in self._solar_automations:
            try:
                key = self.resolve_time_key(automation, now)
            except AutomationConfigError as e:
                logger.error(f"Solar trigger of [{automation.name}] skipped today: {e}")
                continue
            logger.debug(f"Solar trigger {automation.trigger.time} of [{automation.name}] at {key}")
            self._time_automations.setdefault(key, []).append(automation)
