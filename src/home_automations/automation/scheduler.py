"""
Timer scheduler for the Automation engine.

Owns every pending timer:
- trigger-for: one per automation name, fires after the trigger held
- turn-off-after: one per (automation name, action entity)
- daily: one per (clock time key, automation name), armed for today only
- midnight: a single timer that re-arms the daily timers every day
"""

import logging
import threading
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, Hashable, Optional

from .timestrings import match_time_string, seconds_between, wall_clock

if TYPE_CHECKING:
    from .adapter import PlatformAdapter, TimerHandle

logger = logging.getLogger(__name__)

MIDNIGHT = "midnight"
MIDNIGHT_GRACE_SECONDS = 2


class TimerScheduler:
    """
    Arms, replaces and cancels timers by key.

    Every callback runs under the shared lock, after its own entry has been
    removed. A callback whose handle was cancelled or replaced in the meantime
    does nothing.
    """

    def __init__(self, platform: "PlatformAdapter", lock: Optional[threading.RLock] = None) -> None:
        self._platform = platform
        self._lock = lock or threading.RLock()
        self._trigger_for: Dict[str, "TimerHandle"] = {}
        self._turn_off_after: Dict[tuple, "TimerHandle"] = {}
        self._daily: Dict[tuple, "TimerHandle"] = {}
        self._midnight: Dict[str, "TimerHandle"] = {}

    # =========================================================================
    # Core
    # =========================================================================

    def _arm(
        self,
        timers: Dict,
        key: Hashable,
        delay: float,
        callback: Callable[[], None],
    ) -> None:
        self._cancel(timers, key)
        handle = None

        def fire() -> None:
            with self._lock:
                if timers.get(key) is not handle:
                    return
                del timers[key]
                callback()

        handle = self._platform.call_later(delay, fire)
        timers[key] = handle

    def _cancel(self, timers: Dict, key: Hashable) -> bool:
        handle = timers.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    # =========================================================================
    # Trigger-for timers
    # =========================================================================

    def has_trigger_for(self, name: str) -> bool:
        """Check whether a trigger-for timer is pending for an automation."""
        return name in self._trigger_for

    def start_trigger_for(self, name: str, seconds: Optional[float], callback: Callable[[], None]) -> bool:
        """
        Arm the trigger-for timer of an automation.

        Returns:
            False (and logs an error) if seconds is missing or not positive
        """
        if not seconds or seconds <= 0:
            logger.error(f"Start {seconds} seconds trigger-for timeout error for automation [{name}]")
            return False
        logger.debug(f"Start {seconds} seconds trigger-for timeout for automation [{name}]")
        self._arm(self._trigger_for, name, seconds, callback)
        return True

    def stop_trigger_for(self, name: str) -> bool:
        """Cancel the trigger-for timer of an automation, if any."""
        if self._cancel(self._trigger_for, name):
            logger.debug(f"Stop trigger-for timeout for automation [{name}]")
            return True
        return False

    # =========================================================================
    # Turn-off-after timers
    # =========================================================================

    def has_turn_off_after(self, name: str, entity_id: str) -> bool:
        return (name, entity_id) in self._turn_off_after

    def start_turn_off_after(
        self,
        name: str,
        entity_id: str,
        seconds: float,
        callback: Callable[[], None],
    ) -> None:
        """Arm (or restart) the turn-off-after timer of an action."""
        if self.stop_turn_off_after(name, entity_id):
            logger.debug(f"Restarting turn_off_after timeout for automation [{name}]")
        logger.debug(
            f"Start {seconds} seconds turn_off_after timeout for automation [{name}] "
            f"entity #{entity_id}#"
        )
        self._arm(self._turn_off_after, (name, entity_id), seconds, callback)

    def stop_turn_off_after(self, name: str, entity_id: str) -> bool:
        """Cancel the turn-off-after timer of an action, if any."""
        return self._cancel(self._turn_off_after, (name, entity_id))

    # =========================================================================
    # Daily timers
    # =========================================================================

    def has_daily(self, time_key: str, name: str) -> bool:
        return (time_key, name) in self._daily

    def start_daily(
        self,
        time_key: str,
        name: str,
        callback: Callable[[], None],
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Arm a time trigger for today.

        Returns:
            True if armed, False if the time already passed today or is invalid
        """
        if now is None:
            now = self._platform.get_current_time()
        when = match_time_string(time_key, now)
        if when is None:
            logger.error(f"Timeout config error at {time_key} for [{name}]")
            return False
        delay = seconds_between(now, when)
        if delay <= 0:
            logger.debug(f"Timeout at {when.isoformat()} is passed for [{name}]")
            return False
        logger.debug(f"Set timeout at {when.isoformat()} for [{name}]")
        self._arm(self._daily, (time_key, name), delay, callback)
        return True

    # =========================================================================
    # Midnight timer
    # =========================================================================

    def start_midnight(self, callback: Callable[[], None], now: Optional[datetime] = None) -> float:
        """
        Arm the rollover timer just after the end of today.

        Returns:
            Delay in seconds
        """
        if now is None:
            now = self._platform.get_current_time()
        end_of_day = wall_clock(now, 23, 59, 59)
        delay = seconds_between(now, end_of_day) + MIDNIGHT_GRACE_SECONDS
        logger.debug("Set timeout to reload time automations")
        self._arm(self._midnight, MIDNIGHT, delay, callback)
        return delay

    def stop_midnight(self) -> bool:
        return self._cancel(self._midnight, MIDNIGHT)

    # =========================================================================
    # Bulk cancellation
    # =========================================================================

    def cancel_automation(self, name: str) -> None:
        """Cancel the trigger-for and daily timers of an automation."""
        self.stop_trigger_for(name)
        for key in [k for k in self._daily if k[1] == name]:
            self._cancel(self._daily, key)

    def cancel_all(self) -> int:
        """
        Cancel every pending timer, including the midnight timer.

        Returns:
            Number of timers cancelled
        """
        cancelled = 0
        for timers in (self._trigger_for, self._turn_off_after, self._daily, self._midnight):
            for key in list(timers):
                logger.debug(f"Clearing timeout {key}")
                if self._cancel(timers, key):
                    cancelled += 1
        return cancelled

    def pending(self) -> Dict[str, int]:
        """Count pending timers per family."""
        return {
            "trigger_for": len(self._trigger_for),
            "turn_off_after": len(self._turn_off_after),
            "daily": len(self._daily),
            "midnight": len(self._midnight),
        }
