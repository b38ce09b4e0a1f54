"""Synchronous publish/subscribe bus with a bounded history."""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from .. import config
from .event_types import PAYLOAD_KEYS, Events

logger = logging.getLogger(__name__)

Handler = Callable[["GameEvent"], Any]


@dataclass
class GameEvent:
    """An emitted event."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


class EventBus:
    """Typed publish/subscribe between engine components.

    Handlers run synchronously in registration order. Wildcard handlers
    run after the handlers registered for the specific type. Emission
    iterates a snapshot of the listener list, so handlers may subscribe
    or unsubscribe while an event is being delivered. A handler that
    raises is logged and skipped; the remaining handlers still run.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        max_history: int = config.EVENT_HISTORY_CAP,
    ):
        self._clock = clock or datetime.now
        self._listeners: dict[str, list[Handler]] = {}
        self._history: deque[GameEvent] = deque(maxlen=max_history)

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def on(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """Subscribe to an event type. Returns an unsubscribe callable."""
        self._listeners.setdefault(event_type, []).append(handler)
        return lambda: self.off(event_type, handler)

    def once(self, event_type: str, handler: Handler) -> Callable[[], None]:
        """Subscribe for a single delivery."""

        def wrapper(event: GameEvent) -> Any:
            self.off(event_type, wrapper)
            return handler(event)

        return self.on(event_type, wrapper)

    def off(self, event_type: str, handler: Handler) -> None:
        """Remove the first registration of a handler."""
        handlers = self._listeners.get(event_type)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return

    def off_all(self, event_type: Optional[str] = None) -> None:
        """Remove every handler for one type, or for all types."""
        if event_type is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event_type, None)

    def has_listeners(self, event_type: str) -> bool:
        return bool(self._listeners.get(event_type))

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, ()))

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def emit(self, event_type: str, data: Optional[dict[str, Any]] = None) -> GameEvent:
        """Deliver an event to its handlers, then to wildcard handlers."""
        event = GameEvent(type=event_type, data=dict(data or {}), timestamp=self._clock())
        expected = PAYLOAD_KEYS.get(event_type)
        if expected is not None and expected != set(event.data):
            logger.warning(
                "Payload of %s has keys %s, catalogue lists %s", event_type, sorted(event.data), sorted(expected)
            )
        self._history.append(event)

        self._deliver(event, list(self._listeners.get(event_type, ())))
        if event_type != Events.WILDCARD:
            self._deliver(event, list(self._listeners.get(Events.WILDCARD, ())))

        return event

    def _deliver(self, event: GameEvent, handlers: list[Handler]) -> None:
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler failed for %s", event.type)

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def get_recent(self, event_type: Optional[str] = None, count: int = 10) -> list[GameEvent]:
        """Most recent events, optionally filtered by type."""
        if event_type is None:
            events = list(self._history)
        else:
            events = [e for e in self._history if e.type == event_type]
        return events[-count:] if count > 0 else []

    def get_since(self, timestamp: datetime) -> list[GameEvent]:
        """Events emitted strictly after a timestamp."""
        return [e for e in self._history if e.timestamp > timestamp]

    def clear_history(self) -> None:
        self._history.clear()

    @property
    def history(self) -> list[GameEvent]:
        return list(self._history)
