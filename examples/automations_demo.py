#!/usr/bin/env python3
"""
Demo of the AutomationEngine with common automation patterns.

This example demonstrates:
1. Setting up the engine with the mock platform adapter
2. Motion-activated light with turn_off_after
3. A "for" trigger that waits for the hall to stay empty
4. A button with several actions
5. Clock and sunset triggers re-armed at midnight

Run with: python -m examples.automations_demo
"""

import logging
from datetime import datetime

from home_automations.core.bus import EventBus, StateChangeEvent
from home_automations.automation import AutomationEngine, MockPlatformAdapter, SolarEvent

AUTOMATIONS = {
    "hall_motion_light": {
        "trigger": {"entity": "hall_motion", "attribute": "occupancy", "equal": True},
        "condition": {"entity": "hall_lux", "attribute": "illuminance", "below": 50},
        "action": {"entity": "hall_light", "payload": "turn_on", "turn_off_after": 120},
    },
    "hall_empty": {
        "trigger": {"entity": "hall_motion", "attribute": "occupancy", "equal": False, "for": 60},
        "action": {"entity": "hall_light", "payload": "turn_off", "logger": "info"},
    },
    "bedside_button": {
        "trigger": {"entity": "bedside_button", "action": ["single", "double"]},
        "action": [
            {"entity": "hall_light", "payload": "toggle"},
            {"entity": "porch_light", "payload": {"state": "ON", "brightness": 40}},
        ],
    },
    "porch_at_sunset": {
        "trigger": {"time": "sunset", "latitude": 45.07, "longitude": 7.69},
        "action": {"entity": "porch_light", "payload": "turn_on"},
    },
    "porch_off_weekdays": {
        "trigger": {"time": "23:30:00"},
        "condition": {"weekday": ["mon", "tue", "wed", "thu", "fri"]},
        "action": {"entity": "porch_light", "payload": "turn_off"},
    },
}


def show(platform):
    for topic, payload in platform.get_deliveries():
        print(f"   → {topic} {payload}")
    platform.clear_deliveries()


def occupancy(entity_id, old, new):
    return StateChangeEvent(
        entity_id=entity_id,
        update={"occupancy": new},
        from_state={"occupancy": old},
        to_state={"occupancy": new},
        source="demo",
    )


def main():
    logging.basicConfig(level=logging.WARNING)

    print("=" * 60)
    print("AutomationEngine Demo")
    print("=" * 60)

    # Create mock platform adapter (the host provides the real one)
    platform = MockPlatformAdapter(now=datetime(2025, 1, 15, 16, 0, 0))
    platform.add_entity("hall_motion")
    platform.add_entity("hall_lux", illuminance=12)
    platform.add_entity("bedside_button")
    platform.add_entity("hall_light", name="Hall Light")
    platform.add_entity("porch_light", name="Porch Light")
    platform.set_solar_time(SolarEvent.SUNSET, "17:05:00")

    bus = EventBus()
    engine = AutomationEngine(platform, bus)

    print("\n1. Loading automations...")
    count = engine.load(AUTOMATIONS)
    engine.start()
    print(f"   ✓ {count} automations registered")
    print(f"   ✓ Pending timers: {engine.scheduler.pending()}")

    print("\n2. Motion in the hall (dark)...")
    bus.publish(occupancy("hall_motion", False, True))
    show(platform)

    print("\n3. Hall empty for 60 seconds...")
    bus.publish(occupancy("hall_motion", True, False))
    platform.advance(30)
    print("   (30s: still waiting)")
    show(platform)
    platform.advance(30)
    show(platform)

    print("\n4. Bedside button double press...")
    bus.publish(
        StateChangeEvent(
            entity_id="bedside_button",
            update={"action": "double"},
            to_state={"action": "double"},
            source="demo",
        )
    )
    show(platform)

    print("\n5. Let the day run (sunset, 23:30, midnight rollover)...")
    platform.advance(9 * 3600)
    show(platform)
    print(f"   ✓ Pending timers after midnight: {engine.scheduler.pending()}")

    engine.stop()
    print("\n" + "=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
