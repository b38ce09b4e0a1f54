"""Tests for the synchronous event bus."""

from datetime import datetime, timedelta

import pytest

from ashfall.events import EventBus, Events, GameEvent, event_type

from conftest import FakeClock


@pytest.fixture
def bus():
    return EventBus(clock=FakeClock())


# ---------------------------------------------------------------------------
# Subscription & delivery
# ---------------------------------------------------------------------------

class TestDelivery:
    def test_handler_receives_event(self, bus):
        received = []
        bus.on(Events.TREMOR, received.append)

        event = bus.emit(Events.TREMOR, {"intensity": "light"})

        assert received == [event]
        assert isinstance(event, GameEvent)
        assert event.data == {"intensity": "light"}
        assert event.timestamp == datetime(2026, 3, 1, 9, 0, 0)

    def test_other_types_not_delivered(self, bus):
        received = []
        bus.on(Events.TREMOR, received.append)
        bus.emit(Events.WEATHER_CHANGE, {"weather": "fog"})
        assert received == []

    def test_emit_without_data(self, bus):
        event = bus.emit(Events.GAME_START)
        assert event.data == {}

    def test_payload_is_copied(self, bus):
        payload = {"npc": "mara"}
        event = bus.emit(Events.NPC_MET, payload)
        payload["npc"] = "kale"
        assert event.data["npc"] == "mara"

    def test_registration_order(self, bus):
        calls = []
        bus.on(Events.TREMOR, lambda e: calls.append("first"))
        bus.on(Events.TREMOR, lambda e: calls.append("second"))
        bus.emit(Events.TREMOR)
        assert calls == ["first", "second"]

    def test_wildcard_runs_after_typed_handlers(self, bus):
        calls = []
        bus.on(Events.WILDCARD, lambda e: calls.append(("wild", e.type)))
        bus.on(Events.TREMOR, lambda e: calls.append(("typed", e.type)))

        bus.emit(Events.TREMOR)

        assert calls == [("typed", Events.TREMOR), ("wild", Events.TREMOR)]

    def test_unsubscribe_callable(self, bus):
        received = []
        unsubscribe = bus.on(Events.TREMOR, received.append)
        unsubscribe()
        bus.emit(Events.TREMOR)
        assert received == []
        assert not bus.has_listeners(Events.TREMOR)

    def test_off_unknown_handler_is_noop(self, bus):
        bus.off(Events.TREMOR, print)
        bus.on(Events.TREMOR, len)
        bus.off(Events.TREMOR, print)
        assert bus.listener_count(Events.TREMOR) == 1

    def test_once(self, bus):
        received = []
        bus.once(Events.TREMOR, received.append)
        bus.emit(Events.TREMOR)
        bus.emit(Events.TREMOR)
        assert len(received) == 1
        assert bus.listener_count(Events.TREMOR) == 0

    def test_off_all(self, bus):
        bus.on(Events.TREMOR, len)
        bus.on(Events.WEATHER_CHANGE, len)

        bus.off_all(Events.TREMOR)
        assert not bus.has_listeners(Events.TREMOR)
        assert bus.has_listeners(Events.WEATHER_CHANGE)

        bus.off_all()
        assert not bus.has_listeners(Events.WEATHER_CHANGE)

    def test_event_type_helper(self):
        assert event_type("quest", "start") == Events.QUEST_START


# ---------------------------------------------------------------------------
# Re-entrancy & failures
# ---------------------------------------------------------------------------

class TestRobustness:
    def test_failing_handler_does_not_stop_others(self, bus, caplog):
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.on(Events.TREMOR, broken)
        bus.on(Events.TREMOR, received.append)
        bus.on(Events.WILDCARD, received.append)

        bus.emit(Events.TREMOR)

        assert len(received) == 2
        assert "Event handler failed" in caplog.text

    def test_payload_drift_is_logged(self, bus, caplog):
        bus.emit(Events.NPC_GATE_UNLOCK, {"npc": "mara", "newGate": 1, "gate_name": "Fear Admitted"})
        assert "npc:gate_unlock" in caplog.text
        assert "newGate" in caplog.text

    def test_catalogued_payload_is_quiet(self, bus, caplog):
        bus.emit(Events.NPC_GATE_UNLOCK, {"npc": "mara", "new_gate": 1, "gate_name": "Fear Admitted"})
        assert "catalogue" not in caplog.text

    def test_subscribe_during_emit_applies_next_time(self, bus):
        late = []

        def subscriber(event):
            bus.on(Events.TREMOR, late.append)

        bus.once(Events.TREMOR, subscriber)
        bus.emit(Events.TREMOR)
        assert late == []

        bus.emit(Events.TREMOR)
        assert len(late) == 1

    def test_unsubscribe_during_emit(self, bus):
        calls = []
        unsubscribe_second = None

        def first(event):
            calls.append("first")
            unsubscribe_second()

        bus.on(Events.TREMOR, first)
        unsubscribe_second = bus.on(Events.TREMOR, lambda e: calls.append("second"))

        bus.emit(Events.TREMOR)
        bus.emit(Events.TREMOR)

        # The snapshot still delivers to "second" once.
        assert calls == ["first", "second", "first"]

    def test_emit_from_handler(self, bus):
        received = []
        bus.on(Events.TREMOR, lambda e: bus.emit(Events.TENSION_CHANGE, {"delta": 5}))
        bus.on(Events.TENSION_CHANGE, received.append)

        bus.emit(Events.TREMOR)

        assert [e.type for e in received] == [Events.TENSION_CHANGE]
        assert [e.type for e in bus.history] == [Events.TREMOR, Events.TENSION_CHANGE]


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class TestHistory:
    def test_history_is_bounded(self):
        bus = EventBus(clock=FakeClock(), max_history=3)
        for i in range(5):
            bus.emit(Events.DAY_START, {"day": i})

        assert [e.data["day"] for e in bus.history] == [2, 3, 4]

    def test_get_recent_filters_and_limits(self, bus):
        bus.emit(Events.TREMOR, {"n": 1})
        bus.emit(Events.WEATHER_CHANGE)
        bus.emit(Events.TREMOR, {"n": 2})
        bus.emit(Events.TREMOR, {"n": 3})

        assert [e.data["n"] for e in bus.get_recent(Events.TREMOR, count=2)] == [2, 3]
        assert len(bus.get_recent()) == 4
        assert bus.get_recent(count=0) == []

    def test_get_since_is_strict(self):
        clock = FakeClock()
        bus = EventBus(clock=clock)
        start = clock.now

        bus.emit(Events.GAME_START)
        clock.advance(seconds=5)
        bus.emit(Events.TREMOR)

        since = bus.get_since(start)
        assert [e.type for e in since] == [Events.TREMOR]
        assert bus.get_since(start + timedelta(seconds=5)) == []

    def test_clear_history(self, bus):
        bus.emit(Events.TREMOR)
        bus.clear_history()
        assert bus.history == []
