"""Shared fixtures for the Ashfall test suite."""

import random
from datetime import datetime, timedelta

import pytest

from ashfall.engine import RuleEngine
from ashfall.events import Events
from ashfall.state import NarrativeRules


class ScriptedRandom(random.Random):
    """Random source that plays back queued values.

    ``random()`` pops from ``values`` and falls back to 0.99, which is above
    every probability threshold the engine uses. ``choice()`` pops from
    ``choices`` and falls back to the first element.
    """

    def __init__(self, values=(), choices=()):
        super().__init__(0)
        self.values = list(values)
        self.choices = list(choices)

    def random(self):
        return self.values.pop(0) if self.values else 0.99

    def choice(self, seq):
        return self.choices.pop(0) if self.choices else seq[0]


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start=datetime(2026, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class EventRecorder:
    """Wildcard listener that keeps every event it sees."""

    def __init__(self, bus):
        self.events = []
        bus.on(Events.WILDCARD, self.events.append)

    def of_type(self, event_type):
        return [e for e in self.events if e.type == event_type]

    @property
    def types(self):
        return [e.type for e in self.events]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def rules():
    """The rule tables shipped with the package."""
    return NarrativeRules.default()


@pytest.fixture
def rng():
    return ScriptedRandom()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(rules, rng, clock):
    return RuleEngine(rules=rules, rng=rng, clock=clock)


@pytest.fixture
def recorder(engine):
    return EventRecorder(engine.events)
