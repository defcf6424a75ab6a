"""
Wall-clock time string helpers.

Automations express clock times as strict "HH:MM:SS" strings.
"""

import re
from datetime import datetime, timezone
from typing import Optional

_TIME_STRING = re.compile(r"([0-9]{2}):([0-9]{2}):([0-9]{2})")


def match_time_string(value: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Convert an "HH:MM:SS" string to today's instant at that wall-clock time.

    Args:
        value: Time string, exactly 8 characters
        now: Reference time; its date and zone are kept (defaults to local now)

    Returns:
        The instant, or None if the string is not a valid time of day
    """
    if not isinstance(value, str) or len(value) != 8:
        return None
    match = _TIME_STRING.fullmatch(value)
    if not match:
        return None
    hours, minutes, seconds = (int(part) for part in match.groups())
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    if now is None:
        now = datetime.now().astimezone()
    return wall_clock(now, hours, minutes, seconds)


def seconds_to_time_string(total: int) -> str:
    """Format seconds past midnight as "HH:MM:SS"."""
    hours, rest = divmod(int(total), 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def wall_clock(now: datetime, hours: int, minutes: int, seconds: int) -> datetime:
    """
    Get the instant at a wall-clock time on the day of now.

    The UTC offset is the one in force at that time, not the one of now, so
    the result is right on days the clocks change. A fixed offset equal to
    the host's local offset (what datetime.astimezone() returns) is treated
    as the host's local zone.
    """
    naive = now.replace(tzinfo=None, hour=hours, minute=minutes, second=seconds, microsecond=0)
    zone = now.tzinfo
    if zone is None:
        return naive
    host_offset = now.replace(tzinfo=None).astimezone().utcoffset()
    if isinstance(zone, timezone) and zone.utcoffset(now) == host_offset:
        return naive.astimezone()
    return naive.replace(tzinfo=zone)


def seconds_between(start: datetime, end: datetime) -> float:
    """Elapsed seconds from start to end, measured on UTC instants."""
    if start.tzinfo is None or end.tzinfo is None:
        return (end - start).total_seconds()
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()
