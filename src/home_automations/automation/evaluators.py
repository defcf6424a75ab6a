"""
Condition evaluators for the Automation engine.

Each evaluator checks whether a specific condition type is met.
"""

import logging
from datetime import datetime
from numbers import Real
from typing import TYPE_CHECKING, Any, Iterable, Optional

from .models import ConditionConfig, EntityCondition, TimeCondition
from .timestrings import match_time_string

if TYPE_CHECKING:
    from .adapter import PlatformAdapter

logger = logging.getLogger(__name__)

# Week starts on Sunday
WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def weekday_name(now: datetime) -> str:
    """Three-letter lowercase weekday of a datetime."""
    return WEEKDAYS[(now.weekday() + 1) % 7]


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class ConditionEvaluator:
    """
    Evaluates conditions for automations.

    Uses the platform adapter for entity attributes and the current time.
    """

    def __init__(self, platform: "PlatformAdapter") -> None:
        self._platform = platform

    def evaluate(self, condition: ConditionConfig, name: str = "") -> bool:
        """
        Evaluate a condition.

        Args:
            condition: The condition to evaluate
            name: Automation name (for logging)

        Returns:
            True if condition is met, False otherwise
        """
        if isinstance(condition, TimeCondition):
            return self.check_time_condition(condition, name)
        elif isinstance(condition, EntityCondition):
            return self.check_entity_condition(condition, name)
        else:
            logger.warning(f"Unknown condition type: {type(condition)}")
            return False

    def evaluate_all(self, conditions: Iterable[ConditionConfig], name: str = "") -> bool:
        """
        Evaluate all conditions (AND logic).

        Returns:
            True if ALL conditions are met (an empty list passes)
        """
        for condition in conditions:
            if not self.evaluate(condition, name):
                logger.debug(f"Condition not met for [{name}]: {condition}")
                return False
        return True

    # =========================================================================
    # Condition Implementations
    # =========================================================================

    def check_time_condition(
        self,
        condition: TimeCondition,
        name: str = "",
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Check weekday and [after, before] window.

        A malformed time is logged and that bound is ignored.
        """
        if now is None:
            now = self._platform.get_current_time()

        if condition.weekdays and weekday_name(now) not in condition.weekdays:
            logger.debug(
                f"Condition check [{name}] time condition is false for weekday: "
                f"{sorted(condition.weekdays)}"
            )
            return False

        if condition.before:
            before = match_time_string(condition.before, now)
            if before is None:
                logger.error(
                    f"Condition check [{name}] config validation error: "
                    f"before #{condition.before}# ignoring condition"
                )
            elif now > before:
                logger.debug(f"Condition check [{name}] time condition is false for before: {condition.before}")
                return False

        if condition.after:
            after = match_time_string(condition.after, now)
            if after is None:
                logger.error(
                    f"Condition check [{name}] config validation error: "
                    f"after #{condition.after}# ignoring condition"
                )
            elif now < after:
                logger.debug(f"Condition check [{name}] time condition is false for after: {condition.after}")
                return False

        return True

    def check_entity_condition(self, condition: EntityCondition, name: str = "") -> bool:
        """Check the current value of an entity attribute."""
        entity = self._platform.resolve_entity(condition.entity)
        if entity is None:
            logger.error(
                f"Condition check [{name}] config validation error: "
                f"entity #{condition.entity}# not found"
            )
            return False

        attribute = condition.attribute
        value = self._platform.get_attribute(entity, attribute)

        if condition.state is not None and value != condition.state:
            return self._failed(name, condition, f"is {value!r} not {condition.state!r}")
        if condition.equal is not None and value != condition.equal:
            return self._failed(name, condition, f"is {value!r} not equal {condition.equal!r}")
        if condition.not_equal is not None and value == condition.not_equal:
            return self._failed(name, condition, f"is {value!r} equal {condition.not_equal!r}")
        if condition.below is not None and (not _is_number(value) or value >= condition.below):
            return self._failed(name, condition, f"is {value!r} not below {condition.below}")
        if condition.above is not None and (not _is_number(value) or value <= condition.above):
            return self._failed(name, condition, f"is {value!r} not above {condition.above}")

        logger.debug(
            f"Condition check [{name}] entity condition is true for #{condition.entity}# "
            f"'{attribute}' is {value!r}"
        )
        return True

    def _failed(self, name: str, condition: EntityCondition, reason: str) -> bool:
        logger.debug(
            f"Condition check [{name}] entity condition is false for #{condition.entity}# "
            f"'{condition.attribute}' {reason}"
        )
        return False
