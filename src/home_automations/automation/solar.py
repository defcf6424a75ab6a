"""
Solar event resolution.

Turns a named solar event and an observer position into today's wall-clock
time, using the astral library for the ephemeris math.
"""

import logging
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Optional

from astral import Observer
from astral.sun import (
    SunDirection,
    dawn,
    dusk,
    midnight,
    noon,
    sunrise,
    sunset,
    time_at_elevation,
)

logger = logging.getLogger(__name__)

CIVIL_DEPRESSION = 6.0
NAUTICAL_DEPRESSION = 12.0
ASTRONOMICAL_DEPRESSION = 18.0
SUN_DISC_ELEVATION = -0.3  # Bottom edge of the sun touches the horizon
GOLDEN_HOUR_ELEVATION = 6.0


class SolarEvent(Enum):
    """Named solar events usable as time triggers."""

    SOLAR_NOON = "solarNoon"
    NADIR = "nadir"
    SUNRISE = "sunrise"
    SUNSET = "sunset"
    SUNRISE_END = "sunriseEnd"
    SUNSET_START = "sunsetStart"
    DAWN = "dawn"
    DUSK = "dusk"
    NAUTICAL_DAWN = "nauticalDawn"
    NAUTICAL_DUSK = "nauticalDusk"
    NIGHT_END = "nightEnd"
    NIGHT = "night"
    GOLDEN_HOUR_END = "goldenHourEnd"
    GOLDEN_HOUR = "goldenHour"

    @classmethod
    def parse(cls, value: object) -> Optional["SolarEvent"]:
        """Return the event named by value, or None if it is not a solar event."""
        for event in cls:
            if event.value == value:
                return event
        return None


def solar_event_datetime(
    day: date,
    latitude: float,
    longitude: float,
    elevation: float,
    event: SolarEvent,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """
    Compute when a solar event happens on a given day.

    Raises:
        ValueError: If the sun never reaches the event's elevation that day
    """
    observer = Observer(latitude=latitude, longitude=longitude, elevation=elevation)
    kwargs = {"date": day}
    if tz is not None:
        kwargs["tzinfo"] = tz
    # Elevation events use plain geometric angles
    geometric = dict(kwargs, with_refraction=False)

    if event is SolarEvent.SOLAR_NOON:
        return noon(observer, **kwargs)
    elif event is SolarEvent.NADIR:
        return midnight(observer, **kwargs)
    elif event is SolarEvent.SUNRISE:
        return sunrise(observer, **kwargs)
    elif event is SolarEvent.SUNSET:
        return sunset(observer, **kwargs)
    elif event is SolarEvent.SUNRISE_END:
        return time_at_elevation(
            observer, SUN_DISC_ELEVATION, direction=SunDirection.RISING, **geometric
        )
    elif event is SolarEvent.SUNSET_START:
        return time_at_elevation(
            observer, SUN_DISC_ELEVATION, direction=SunDirection.SETTING, **geometric
        )
    elif event is SolarEvent.DAWN:
        return dawn(observer, depression=CIVIL_DEPRESSION, **kwargs)
    elif event is SolarEvent.DUSK:
        return dusk(observer, depression=CIVIL_DEPRESSION, **kwargs)
    elif event is SolarEvent.NAUTICAL_DAWN:
        return dawn(observer, depression=NAUTICAL_DEPRESSION, **kwargs)
    elif event is SolarEvent.NAUTICAL_DUSK:
        return dusk(observer, depression=NAUTICAL_DEPRESSION, **kwargs)
    elif event is SolarEvent.NIGHT_END:
        return dawn(observer, depression=ASTRONOMICAL_DEPRESSION, **kwargs)
    elif event is SolarEvent.NIGHT:
        return dusk(observer, depression=ASTRONOMICAL_DEPRESSION, **kwargs)
    elif event is SolarEvent.GOLDEN_HOUR_END:
        return time_at_elevation(
            observer, GOLDEN_HOUR_ELEVATION, direction=SunDirection.RISING, **geometric
        )
    elif event is SolarEvent.GOLDEN_HOUR:
        return time_at_elevation(
            observer, GOLDEN_HOUR_ELEVATION, direction=SunDirection.SETTING, **geometric
        )
    raise ValueError(f"Unknown solar event: {event}")


def solar_event_time(
    day: date,
    latitude: float,
    longitude: float,
    elevation: float,
    event: SolarEvent,
    tz: Optional[tzinfo] = None,
) -> str:
    """
    Compute a solar event as an "HH:MM:SS" wall-clock string.

    Args:
        day: Calendar day
        latitude: Observer latitude in degrees
        longitude: Observer longitude in degrees
        elevation: Observer elevation in meters
        event: Solar event to compute
        tz: Timezone the result is expressed in (default: UTC)

    Raises:
        ValueError: If the event does not occur on that day
    """
    when = solar_event_datetime(day, latitude, longitude, elevation, event, tz)
    logger.debug(
        f"{event.value} on {day.isoformat()} at {when.strftime('%H:%M:%S')} for "
        f"latitude:{latitude} longitude:{longitude} elevation:{elevation}"
    )
    return when.strftime("%H:%M:%S")
