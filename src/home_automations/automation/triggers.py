"""
Trigger evaluator for the Automation engine.

Decides, for one state change, whether an event trigger fires, stops
holding, or is not concerned by the change.
"""

import logging
from numbers import Real
from typing import Any, Mapping

from .models import (
    ActionTrigger,
    AttributeTrigger,
    EventTrigger,
    StateTrigger,
    Verdict,
)

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class TriggerEvaluator:
    """
    Evaluates event triggers against observed state changes.

    Returns a Verdict:
    - FIRE: the trigger condition just became true
    - SUPPRESS: the trigger condition is false (cancels a pending dwell timer)
    - IGNORE: the change does not concern this trigger
    """

    def evaluate(
        self,
        trigger: EventTrigger,
        update: Mapping[str, Any],
        from_state: Mapping[str, Any],
        to_state: Mapping[str, Any],
        name: str = "",
    ) -> Verdict:
        """
        Evaluate a trigger.

        Args:
            trigger: The trigger to check
            update: Attributes carried by the incoming message
            from_state: Attribute snapshot before the change
            to_state: Attribute snapshot after the change
            name: Automation name (for logging)
        """
        if isinstance(trigger, ActionTrigger):
            return self._check_action(trigger, update, name)
        elif isinstance(trigger, AttributeTrigger):
            return self._check_attribute(trigger, update, from_state, to_state, name)
        elif isinstance(trigger, StateTrigger):
            return self._check_state(trigger, update, from_state, to_state, name)
        logger.warning(f"Trigger check [{name}] no matcher configured for #{trigger.entities}#")
        return Verdict.SUPPRESS

    # =========================================================================
    # Matchers
    # =========================================================================

    def _check_action(self, trigger: ActionTrigger, update: Mapping[str, Any], name: str) -> Verdict:
        if "action" not in update:
            logger.debug(f"Trigger check [{name}] no 'action' in update")
            return Verdict.IGNORE
        fired = update["action"] in trigger.actions
        logger.debug(
            f"Trigger check [{name}] trigger is {fired} for action {update['action']!r} "
            f"in {sorted(trigger.actions)}"
        )
        return Verdict.FIRE if fired else Verdict.SUPPRESS

    def _check_attribute(
        self,
        trigger: AttributeTrigger,
        update: Mapping[str, Any],
        from_state: Mapping[str, Any],
        to_state: Mapping[str, Any],
        name: str,
    ) -> Verdict:
        attribute = trigger.attribute
        if not self._changed(attribute, update, from_state, to_state, name):
            return Verdict.IGNORE

        old = from_state.get(attribute)
        new = to_state[attribute]

        if trigger.equal is not None:
            if new != trigger.equal:
                logger.debug(f"Trigger check [{name}] '{attribute}' != {trigger.equal!r}")
                return Verdict.SUPPRESS
            if old == trigger.equal:
                logger.debug(f"Trigger check [{name}] '{attribute}' already = {trigger.equal!r}")
                return Verdict.IGNORE

        if trigger.not_equal is not None:
            if new == trigger.not_equal:
                logger.debug(f"Trigger check [{name}] '{attribute}' = {trigger.not_equal!r}")
                return Verdict.SUPPRESS
            if old != trigger.not_equal:
                logger.debug(
                    f"Trigger check [{name}] '{attribute}' already != {trigger.not_equal!r}"
                )
                return Verdict.IGNORE

        if trigger.above is not None:
            if not _is_number(new) or new <= trigger.above:
                logger.debug(f"Trigger check [{name}] '{attribute}' <= {trigger.above}")
                return Verdict.SUPPRESS
            if _is_number(old) and old > trigger.above:
                logger.debug(f"Trigger check [{name}] '{attribute}' already > {trigger.above}")
                return Verdict.IGNORE

        if trigger.below is not None:
            if not _is_number(new) or new >= trigger.below:
                logger.debug(f"Trigger check [{name}] '{attribute}' >= {trigger.below}")
                return Verdict.SUPPRESS
            if _is_number(old) and old < trigger.below:
                logger.debug(f"Trigger check [{name}] '{attribute}' already < {trigger.below}")
                return Verdict.IGNORE

        logger.debug(f"Trigger check [{name}] trigger is true, '{attribute}' is {new!r}")
        return Verdict.FIRE

    def _check_state(
        self,
        trigger: StateTrigger,
        update: Mapping[str, Any],
        from_state: Mapping[str, Any],
        to_state: Mapping[str, Any],
        name: str,
    ) -> Verdict:
        if not self._changed("state", update, from_state, to_state, name):
            return Verdict.IGNORE
        if to_state["state"] != trigger.state:
            logger.debug(f"Trigger check [{name}] 'state' != {trigger.state!r}")
            return Verdict.SUPPRESS
        logger.debug(f"Trigger check [{name}] trigger state {trigger.state!r} is true")
        return Verdict.FIRE

    def _changed(
        self,
        attribute: str,
        update: Mapping[str, Any],
        from_state: Mapping[str, Any],
        to_state: Mapping[str, Any],
        name: str,
    ) -> bool:
        """Check that the attribute was published and actually changed."""
        if attribute not in update or attribute not in to_state:
            logger.debug(f"Trigger check [{name}] no '{attribute}' published")
            return False
        if from_state.get(attribute) == to_state[attribute]:
            logger.debug(f"Trigger check [{name}] no '{attribute}' change")
            return False
        return True
