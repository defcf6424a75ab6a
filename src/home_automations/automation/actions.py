"""
Action runner for the Automation engine.

Resolves action entities, normalizes payloads and hands them to the host
for delivery.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from .models import STATE_OFF, Action, Automation, normalize_payload

if TYPE_CHECKING:
    from .adapter import PlatformAdapter
    from .registry import AutomationRegistry
    from .scheduler import TimerScheduler

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def encode_payload(data: Dict[str, Any]) -> bytes:
    """Serialize an attribute map for delivery."""
    return json.dumps(data).encode("utf-8")


class ActionRunner:
    """
    Executes an automation's actions in order.

    An unresolvable entity skips only that action. An unsupported payload
    aborts the rest of the run. Automations flagged execute_once are
    unregistered after their action list completes.
    """

    def __init__(
        self,
        platform: "PlatformAdapter",
        scheduler: "TimerScheduler",
        registry: "AutomationRegistry",
        base_topic: str = "zigbee2mqtt",
    ) -> None:
        self._platform = platform
        self._scheduler = scheduler
        self._registry = registry
        self._base_topic = base_topic

    def run(self, automation: Automation) -> int:
        """
        Run an automation's actions.

        Returns:
            Number of payloads delivered
        """
        sent = 0
        for action in automation.actions:
            entity = self._platform.resolve_entity(action.entity)
            if entity is None:
                logger.error(f"Entity #{action.entity}# not found so ignoring this action")
                continue

            data = normalize_payload(action.payload)
            if data is None:
                logger.error(
                    f"Run automation [{automation.name}] for entity #{action.entity}# error: "
                    f"payload can be turn_on turn_off toggle or an object"
                )
                return sent

            self._log(
                action,
                f"Run automation [{automation.name}] send {json.dumps(data)} "
                f"to entity #{action.entity}#",
            )
            self._platform.deliver(self.topic_for(entity.name), encode_payload(data))
            sent += 1

            if action.turn_off_after:
                self._scheduler.start_turn_off_after(
                    automation.name,
                    action.entity,
                    action.turn_off_after,
                    lambda automation=automation, action=action: self.turn_off(automation, action),
                )

        if automation.execute_once:
            self.unregister(automation.name)
        return sent

    def turn_off(self, automation: Automation, action: Action) -> bool:
        """Send the "off" payload for an expired turn-off-after timer."""
        entity = self._platform.resolve_entity(action.entity)
        if entity is None:
            logger.error(f"Entity #{action.entity}# not found so ignoring this action")
            return False
        data = {"state": STATE_OFF}
        self._log(
            action,
            f"Turn_off_after timeout for automation [{automation.name}] send "
            f"{json.dumps(data)} to entity #{action.entity}#",
        )
        self._platform.deliver(self.topic_for(entity.name), encode_payload(data))
        return True

    def unregister(self, name: str) -> None:
        """Remove an automation and its pending trigger timers."""
        logger.info(f"Unregistering automation [{name}]")
        self._registry.remove(name)
        self._scheduler.cancel_automation(name)

    def topic_for(self, entity_name: str) -> str:
        return f"{self._base_topic}/{entity_name}/set"

    def _log(self, action: Action, message: str) -> None:
        level: Optional[int] = LOG_LEVELS.get(str(action.log_level).lower()) if action.log_level else None
        logger.log(level or logging.DEBUG, message)
