"""
Automation engine - core rule processing logic.

Handles trigger matching, dwell timers, condition evaluation, action
execution and the daily re-arming of time triggers.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import TYPE_CHECKING, Any, Mapping, Optional

from home_automations.core.bus import EventBus, StateChangeEvent

from .actions import ActionRunner
from .config import ConfigSource, load_automations_config
from .evaluators import ConditionEvaluator
from .models import Automation, EventTrigger, Verdict
from .registry import AutomationRegistry
from .scheduler import TimerScheduler
from .triggers import TriggerEvaluator

if TYPE_CHECKING:
    from .adapter import PlatformAdapter

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Result of processing one state change."""

    automations_evaluated: int = 0
    automations_fired: int = 0
    timers_started: int = 0
    timers_cancelled: int = 0
    actions_sent: int = 0


class AutomationEngine:
    """
    Core engine for automation processing.

    Responsibilities:
    - Register automations from configuration
    - Match incoming state changes to event triggers
    - Hold triggers for their dwell time before running
    - Evaluate conditions and run actions
    - Arm time triggers every day

    All entry points run under one re-entrant lock, so timer callbacks and
    state changes never interleave.
    """

    def __init__(
        self,
        platform: "PlatformAdapter",
        bus: Optional[EventBus] = None,
        base_topic: str = "zigbee2mqtt",
    ) -> None:
        self._platform = platform
        self._bus = bus
        self._lock = threading.RLock()
        self._registry = AutomationRegistry(platform)
        self._triggers = TriggerEvaluator()
        self._conditions = ConditionEvaluator(platform)
        self._scheduler = TimerScheduler(platform, self._lock)
        self._actions = ActionRunner(platform, self._scheduler, self._registry, base_topic)
        self._started = False

    @property
    def registry(self) -> AutomationRegistry:
        return self._registry

    @property
    def scheduler(self) -> TimerScheduler:
        return self._scheduler

    @property
    def started(self) -> bool:
        return self._started

    # =========================================================================
    # Configuration
    # =========================================================================

    def load(self, config: ConfigSource) -> int:
        """
        Register automations from an inline mapping or a YAML file.

        Loading a name that is already registered replaces that automation
        and cancels its pending hold and daily timers.

        Returns:
            Number of automations registered
        """
        with self._lock:
            count = self._registry.load(
                load_automations_config(config),
                on_replace=self._scheduler.cancel_automation,
            )
            logger.info(f"Loaded {count} automations")
            if self._started:
                self._start_time_triggers()
            return count

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Subscribe to state changes and arm today's time triggers."""
        with self._lock:
            if self._started:
                logger.debug("Engine already started")
                return
            if self._bus is not None:
                self._bus.subscribe(self._on_state_change, owner=self)
            else:
                logger.warning("AutomationEngine started without an event bus")
            self._start_time_triggers()
            self._scheduler.start_midnight(self._on_midnight)
            self._started = True
            logger.info("Automations started")

    def stop(self) -> None:
        """Cancel every timer and unsubscribe from state changes."""
        with self._lock:
            logger.debug("Automations unloading")
            self._scheduler.cancel_all()
            if self._bus is not None:
                logger.debug("Removing listeners")
                self._bus.unsubscribe_all(self)
            self._started = False
            logger.debug("Automations unloaded")

    # =========================================================================
    # Event Processing
    # =========================================================================

    def _on_state_change(self, event: StateChangeEvent) -> None:
        self.process_state_change(event.entity_id, event.update, event.from_state, event.to_state)

    def process_state_change(
        self,
        entity_id: str,
        update: Mapping[str, Any],
        from_state: Mapping[str, Any],
        to_state: Mapping[str, Any],
    ) -> EngineResult:
        """
        Evaluate every automation listening to an entity, in registration order.

        Returns:
            Result with counts for this state change
        """
        result = EngineResult()
        with self._lock:
            for automation in self._registry.lookup_by_entity(entity_id):
                # An execute_once sibling may have unregistered it during this loop
                if not self._registry.is_registered(automation):
                    continue
                result.automations_evaluated += 1
                self._run_automation_if_matches(automation, update, from_state, to_state, result)
        return result

    def _run_automation_if_matches(
        self,
        automation: Automation,
        update: Mapping[str, Any],
        from_state: Mapping[str, Any],
        to_state: Mapping[str, Any],
        result: EngineResult,
    ) -> None:
        trigger = automation.trigger
        if not isinstance(trigger, EventTrigger):
            return

        verdict = self._triggers.evaluate(trigger, update, from_state, to_state, automation.name)
        if verdict is Verdict.SUPPRESS:
            if self._scheduler.stop_trigger_for(automation.name):
                result.timers_cancelled += 1
            return
        if verdict is Verdict.IGNORE:
            return

        if self._scheduler.has_trigger_for(automation.name):
            logger.debug(f"Waiting trigger-for timeout for automation [{automation.name}]")
            return

        logger.debug(f"Start automation [{automation.name}]")
        result.automations_fired += 1
        if trigger.for_seconds:
            if self._scheduler.start_trigger_for(
                automation.name,
                trigger.for_seconds,
                partial(self.run_actions_with_conditions, automation),
            ):
                result.timers_started += 1
            return
        result.actions_sent += self.run_actions_with_conditions(automation)

    def run_actions_with_conditions(self, automation: Automation) -> int:
        """
        Run an automation's actions if all its conditions hold.

        Returns:
            Number of payloads delivered
        """
        with self._lock:
            if not self._conditions.evaluate_all(automation.conditions, automation.name):
                return 0
            return self._actions.run(automation)

    # =========================================================================
    # Time triggers
    # =========================================================================

    def _start_time_triggers(self, now: Optional[datetime] = None) -> int:
        if now is None:
            now = self._platform.get_current_time()
        armed = 0
        for key, automation in self._registry.time_automations():
            if self._scheduler.start_daily(
                key,
                automation.name,
                partial(self._on_time_trigger, automation),
                now,
            ):
                armed += 1
        return armed

    def _on_time_trigger(self, automation: Automation) -> None:
        logger.debug(f"Timeout for [{automation.name}]")
        if not self._registry.is_registered(automation):
            return
        self.run_actions_with_conditions(automation)

    def _on_midnight(self) -> None:
        logger.info("Run timeout to reload time automations")
        now = self._platform.get_current_time()
        self._registry.refresh_solar(now)
        self._start_time_triggers(now)
        self._scheduler.start_midnight(self._on_midnight, now)
