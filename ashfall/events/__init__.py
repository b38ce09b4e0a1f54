"""Event bus and event catalogue."""

from .event_bus import EventBus, GameEvent
from .event_types import PAYLOAD_KEYS, Events, event_type

__all__ = ["EventBus", "GameEvent", "Events", "PAYLOAD_KEYS", "event_type"]
