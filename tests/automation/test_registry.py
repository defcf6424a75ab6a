"""Tests for the automation registry."""

import logging

import pytest
from datetime import datetime

from home_automations.automation import (
    AutomationRegistry,
    MockPlatformAdapter,
    SolarEvent,
)


@pytest.fixture
def platform():
    """Create a mock platform adapter with a few entities."""
    adapter = MockPlatformAdapter(now=datetime(2025, 1, 15, 12, 0, 0))
    for entity_id in ("sensor1", "sensor2", "light1", "lux"):
        adapter.add_entity(entity_id)
    return adapter


@pytest.fixture
def registry(platform):
    return AutomationRegistry(platform)


def event_automation(entity="sensor1", **extra):
    data = {
        "trigger": {"entity": entity, "state": "ON"},
        "action": {"entity": "light1", "payload": "turn_on"},
    }
    data.update(extra)
    return data


class TestLoad:
    """Tests for loading configuration."""

    def test_event_automations_keep_order(self, registry):
        """Automations on the same entity keep registration order."""
        count = registry.load({"first": event_automation(), "second": event_automation()})
        assert count == 2
        assert [a.name for a in registry.lookup_by_entity("sensor1")] == ["first", "second"]

    def test_lookup_unknown_entity(self, registry):
        assert registry.lookup_by_entity("nothing") == []

    def test_multiple_entities(self, registry):
        """A trigger naming two entities is indexed under both."""
        registry.load({"both": event_automation(entity=["sensor1", "sensor2"])})
        assert [a.name for a in registry.lookup_by_entity("sensor1")] == ["both"]
        assert [a.name for a in registry.lookup_by_entity("sensor2")] == ["both"]

    def test_time_automation(self, registry):
        registry.load(
            {
                "morning": {
                    "trigger": {"time": "07:00:00"},
                    "action": {"entity": "light1", "payload": "turn_off"},
                }
            }
        )
        assert registry.time_keys() == ["07:00:00"]
        [(key, automation)] = registry.time_automations()
        assert key == "07:00:00"
        assert automation.name == "morning"

    def test_inactive_automation_skipped(self, registry, caplog):
        with caplog.at_level(logging.INFO):
            count = registry.load({"off": event_automation(active=False)})
        assert count == 0
        assert registry.lookup_by_entity("sensor1") == []
        assert "not registered since active is false" in caplog.text

    def test_invalid_automation_does_not_affect_others(self, registry, caplog):
        """A config error skips only the offending automation."""
        config = {
            "good": event_automation(),
            "bad": event_automation(entity="ghost"),
            "also_good": event_automation(entity="sensor2"),
        }
        with caplog.at_level(logging.ERROR):
            count = registry.load(config)
        assert count == 2
        assert registry.names() == ["good", "also_good"]
        assert "Config validation error for [bad]: trigger entity #ghost# not found" in caplog.text

    @pytest.mark.parametrize(
        "data, message",
        [
            (
                {"trigger": {"time": "07:00:00"}, "action": {"entity": "ghost", "payload": "turn_on"}},
                "action entity #ghost# not found",
            ),
            (
                {
                    "trigger": {"time": "07:00:00"},
                    "action": {"entity": "light1", "payload": "turn_on"},
                    "condition": {"entity": "ghost", "state": "ON"},
                },
                "condition entity #ghost# not found",
            ),
            (
                {"trigger": {"time": "7:00"}, "action": {"entity": "light1", "payload": "turn_on"}},
                "time syntax error",
            ),
        ],
    )
    def test_validation_errors(self, registry, caplog, data, message):
        with caplog.at_level(logging.ERROR):
            assert registry.load({"bad": data}) == 0
        assert message in caplog.text
        assert registry.names() == []

    def test_failure_registers_no_trigger(self, registry):
        """If one trigger is invalid, none of the automation's triggers register."""
        data = {
            "trigger": [{"entity": "sensor1", "state": "ON"}, {"time": "sunset"}],
            "action": {"entity": "light1", "payload": "turn_on"},
        }
        assert registry.load({"partial": data}) == 0
        assert registry.lookup_by_entity("sensor1") == []

    def test_same_name_replaces(self, registry):
        """A name loaded again replaces the previous automation everywhere."""
        replaced = []
        registry.load({"a": event_automation(entity=["sensor1", "sensor2"])})
        assert registry.load({"a": event_automation(entity="sensor2")}, on_replace=replaced.append) == 1

        assert replaced == ["a"]
        assert registry.lookup_by_entity("sensor1") == []
        assert [a.name for a in registry.lookup_by_entity("sensor2")] == ["a"]

    def test_invalid_replacement_keeps_previous(self, registry):
        replaced = []
        registry.load({"a": event_automation()})
        assert registry.load({"a": event_automation(entity="ghost")}, on_replace=replaced.append) == 0

        assert replaced == []
        assert [a.name for a in registry.lookup_by_entity("sensor1")] == ["a"]

    def test_non_mapping_entry(self, registry):
        assert registry.load({"weird": "not a mapping"}) == 0


class TestSolar:
    """Tests for solar-event time keys."""

    def test_solar_trigger_keyed_by_resolved_time(self, platform, registry):
        platform.set_solar_time(SolarEvent.SUNSET, "17:12:30")
        registry.load(
            {
                "dusk_lights": {
                    "trigger": {"time": "sunset", "latitude": 48.8, "longitude": 2.3},
                    "action": {"entity": "light1", "payload": "turn_on"},
                }
            }
        )
        assert registry.time_keys() == ["17:12:30"]

    def test_refresh_solar_rekeys(self, platform, registry):
        """On a new day solar automations move to the new time key."""
        platform.set_solar_time(SolarEvent.SUNSET, "17:12:30")
        registry.load(
            {
                "dusk_lights": {
                    "trigger": {"time": "sunset", "latitude": 48.8, "longitude": 2.3},
                    "action": {"entity": "light1", "payload": "turn_on"},
                },
                "morning": {
                    "trigger": {"time": "07:00:00"},
                    "action": {"entity": "light1", "payload": "turn_off"},
                },
            }
        )
        platform.set_solar_time(SolarEvent.SUNSET, "17:14:01")
        registry.refresh_solar(datetime(2025, 1, 16, 0, 0, 1))
        assert sorted(registry.time_keys()) == ["07:00:00", "17:14:01"]

    def test_unresolvable_solar_event(self, registry, caplog):
        """A solar event that does not happen that day is a config error."""
        data = {
            "trigger": {"time": "sunrise", "latitude": 89.9, "longitude": 0},
            "action": {"entity": "light1", "payload": "turn_on"},
        }
        with caplog.at_level(logging.ERROR):
            # Mid-January at the north pole: the sun never rises
            assert registry.load({"polar": data}) == 0
        assert "cannot compute sunrise" in caplog.text


class TestRemove:
    """Tests for removal."""

    def test_remove_from_every_key(self, registry):
        registry.load(
            {
                "A": {
                    "trigger": [
                        {"entity": ["sensor1", "sensor2"], "state": "ON"},
                        {"time": "07:00:00"},
                    ],
                    "action": {"entity": "light1", "payload": "turn_on"},
                },
                "B": event_automation(),
            }
        )
        assert registry.remove("A") == 3
        assert [a.name for a in registry.lookup_by_entity("sensor1")] == ["B"]
        assert registry.lookup_by_entity("sensor2") == []
        assert registry.time_keys() == []

    def test_remove_is_idempotent(self, registry):
        registry.load({"A": event_automation()})
        assert registry.remove("A") == 1
        assert registry.remove("A") == 0
        assert registry.remove("never_registered") == 0

    def test_remove_adjacent_duplicates(self, registry):
        """Consecutive entries with the same name are all removed."""
        registry.load(
            {
                "A": {
                    "trigger": [
                        {"entity": "sensor1", "state": "ON"},
                        {"entity": "sensor1", "state": "OFF"},
                    ],
                    "action": {"entity": "light1", "payload": "turn_on"},
                },
                "B": event_automation(),
            }
        )
        registry.remove("A")
        assert [a.name for a in registry.lookup_by_entity("sensor1")] == ["B"]

    def test_is_registered(self, registry):
        registry.load({"A": event_automation()})
        [automation] = registry.lookup_by_entity("sensor1")
        assert registry.is_registered(automation)
        registry.remove("A")
        assert not registry.is_registered(automation)
