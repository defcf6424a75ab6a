"""Tests for the action runner."""

import logging

import pytest
from datetime import datetime

from home_automations.automation import (
    Action,
    ActionRunner,
    Automation,
    AutomationRegistry,
    MockPlatformAdapter,
    StateTrigger,
    TimerScheduler,
)


@pytest.fixture
def platform():
    adapter = MockPlatformAdapter(now=datetime(2025, 1, 15, 12, 0, 0))
    adapter.add_entity("light1", name="Kitchen Light")
    adapter.add_entity("light2")
    adapter.add_entity("sensor1")
    return adapter


@pytest.fixture
def scheduler(platform):
    return TimerScheduler(platform)


@pytest.fixture
def registry(platform):
    return AutomationRegistry(platform)


@pytest.fixture
def runner(platform, scheduler, registry):
    return ActionRunner(platform, scheduler, registry, base_topic="z2m")


def make_automation(*actions, execute_once=False):
    return Automation(
        name="test",
        trigger=StateTrigger(entities=("sensor1",), state="ON"),
        actions=list(actions),
        execute_once=execute_once,
    )


class TestRun:
    """Tests for running actions."""

    def test_shorthand_and_object_payloads(self, platform, runner):
        automation = make_automation(
            Action(entity="light1", payload="turn_on"),
            Action(entity="light2", payload={"brightness": 40, "state": "ON"}),
        )
        assert runner.run(automation) == 2
        assert platform.get_deliveries() == [
            ("z2m/Kitchen Light/set", {"state": "ON"}),
            ("z2m/light2/set", {"brightness": 40, "state": "ON"}),
        ]

    def test_unknown_entity_skips_only_that_action(self, platform, runner, caplog):
        automation = make_automation(
            Action(entity="ghost", payload="turn_on"),
            Action(entity="light2", payload="toggle"),
        )
        with caplog.at_level(logging.ERROR):
            assert runner.run(automation) == 1
        assert platform.get_deliveries() == [("z2m/light2/set", {"state": "TOGGLE"})]
        assert "Entity #ghost# not found" in caplog.text

    def test_bad_payload_aborts_run(self, platform, runner, registry, caplog):
        """An unsupported payload stops the run but keeps the automation."""
        registry.load(
            {
                "test": {
                    "trigger": {"entity": "sensor1", "state": "ON"},
                    "action": {"entity": "light1", "payload": "turn_on"},
                    "execute_once": True,
                }
            }
        )
        automation = make_automation(
            Action(entity="light1", payload="switch_on"),
            Action(entity="light2", payload="turn_on"),
            execute_once=True,
        )
        with caplog.at_level(logging.ERROR):
            assert runner.run(automation) == 0
        assert platform.get_deliveries() == []
        assert "payload can be turn_on turn_off toggle or an object" in caplog.text
        assert registry.names() == ["test"]

    def test_log_level_override(self, runner, caplog):
        automation = make_automation(Action(entity="light1", payload="turn_on", log_level="info"))
        with caplog.at_level(logging.INFO, logger="home_automations.automation.actions"):
            runner.run(automation)
        assert any(
            r.levelno == logging.INFO and "send" in r.getMessage() for r in caplog.records
        )


class TestTurnOffAfter:
    """Tests for turn-off-after."""

    def test_sends_off_after_delay(self, platform, runner):
        automation = make_automation(Action(entity="light1", payload="turn_on", turn_off_after=5))
        runner.run(automation)
        platform.clear_deliveries()

        platform.advance(5)
        assert platform.get_deliveries() == [("z2m/Kitchen Light/set", {"state": "OFF"})]

    def test_resend_restarts_timer(self, platform, runner):
        """A second send within the window resets the timer; only one off is sent."""
        automation = make_automation(Action(entity="light1", payload="turn_on", turn_off_after=5))
        runner.run(automation)
        platform.advance(3)
        runner.run(automation)
        platform.clear_deliveries()

        platform.advance(4)
        assert platform.get_deliveries() == []
        platform.advance(1)
        assert platform.get_deliveries() == [("z2m/Kitchen Light/set", {"state": "OFF"})]
        platform.advance(60)
        assert len(platform.get_deliveries()) == 1

    def test_entity_gone_at_turn_off(self, platform, runner):
        automation = make_automation(Action(entity="light2", payload="turn_on", turn_off_after=5))
        runner.run(automation)
        platform.clear_deliveries()
        platform.remove_entity("light2")
        platform.advance(5)
        assert platform.get_deliveries() == []


class TestExecuteOnce:
    """Tests for execute_once deregistration."""

    def test_unregisters_after_run(self, platform, runner, registry, scheduler):
        registry.load(
            {
                "test": {
                    "trigger": [
                        {"entity": "sensor1", "state": "ON", "for": 10},
                        {"time": "18:00:00"},
                    ],
                    "action": {"entity": "light1", "payload": "turn_on"},
                    "execute_once": True,
                }
            }
        )
        scheduler.start_trigger_for("test", 10, lambda: None)
        scheduler.start_daily("18:00:00", "test", lambda: None)

        [automation] = registry.lookup_by_entity("sensor1")
        runner.run(automation)

        assert registry.names() == []
        assert scheduler.pending()["trigger_for"] == 0
        assert scheduler.pending()["daily"] == 0
