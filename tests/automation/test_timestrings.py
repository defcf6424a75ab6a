"""Tests for time string matching."""

import time

import pytest
from datetime import datetime, timedelta, timezone, UTC
from zoneinfo import ZoneInfo

from home_automations.automation import match_time_string
from home_automations.automation.timestrings import seconds_between, seconds_to_time_string

NOW = datetime(2025, 3, 10, 9, 30, 15, 123456, tzinfo=UTC)


class TestMatchTimeString:
    """Tests for match_time_string."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("00:00:00", (0, 0, 0)),
            ("07:00:00", (7, 0, 0)),
            ("23:59:59", (23, 59, 59)),
            ("12:34:56", (12, 34, 56)),
        ],
    )
    def test_valid_times_are_today(self, value, expected):
        """Valid strings become today's instant at that time."""
        result = match_time_string(value, NOW)
        assert result is not None
        assert result.date() == NOW.date()
        assert (result.hour, result.minute, result.second) == expected
        assert result.microsecond == 0
        assert result.tzinfo == NOW.tzinfo

    @pytest.mark.parametrize(
        "value",
        [
            "24:00:00",
            "23:60:00",
            "23:59:60",
            "7:00:00",
            "07:00",
            "07:00:000",
            "07-00-00",
            "ab:cd:ef",
            " 7:00:00",
            "sunrise",
            "",
        ],
    )
    def test_invalid_times_do_not_match(self, value):
        """Anything that is not a valid HH:MM:SS yields None."""
        assert match_time_string(value, NOW) is None

    def test_non_string_does_not_match(self):
        """Non-string values never match."""
        assert match_time_string(25200, NOW) is None

    def test_defaults_to_local_now(self):
        """Without a reference time, today's local date is used."""
        result = match_time_string("06:00:00")
        assert result is not None
        assert result.date() == datetime.now().astimezone().date()


def test_seconds_to_time_string():
    """Seconds past midnight format as HH:MM:SS."""
    assert seconds_to_time_string(0) == "00:00:00"
    assert seconds_to_time_string(63000) == "17:30:00"
    assert seconds_to_time_string(86399) == "23:59:59"


BERLIN = ZoneInfo("Europe/Berlin")


@pytest.fixture
def berlin_host(monkeypatch):
    """Run with the host's local zone set to Europe/Berlin."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestDaylightSaving:
    """Clock times on days the clocks change."""

    def test_spring_forward_zoneinfo(self):
        now = datetime(2025, 3, 30, 0, 0, 1, tzinfo=BERLIN)
        when = match_time_string("07:00:00", now)
        assert when.utcoffset() == timedelta(hours=2)
        assert seconds_between(now, when) == 6 * 3600 - 1

    def test_fall_back_zoneinfo(self):
        now = datetime(2025, 10, 26, 0, 0, 1, tzinfo=BERLIN)
        when = match_time_string("23:59:59", now)
        assert when.utcoffset() == timedelta(hours=1)
        assert seconds_between(now, when) == 25 * 3600 - 2

    def test_host_local_fixed_offset(self, berlin_host):
        """The default clock's fixed offset follows the host zone across the change."""
        now = datetime(2025, 3, 30, 0, 0, 1).astimezone()
        assert now.utcoffset() == timedelta(hours=1)
        when = match_time_string("07:00:00", now)
        assert when.utcoffset() == timedelta(hours=2)
        assert seconds_between(now, when) == 6 * 3600 - 1

    def test_foreign_fixed_offset_kept(self, berlin_host):
        now = datetime(2025, 3, 30, 0, 0, 1, tzinfo=timezone(timedelta(hours=-5)))
        when = match_time_string("07:00:00", now)
        assert when.utcoffset() == timedelta(hours=-5)
        assert seconds_between(now, when) == 7 * 3600 - 1

    def test_naive_times_are_wall_clock(self):
        now = datetime(2025, 3, 30, 0, 0, 1)
        assert seconds_between(now, match_time_string("07:00:00", now)) == 7 * 3600 - 1
