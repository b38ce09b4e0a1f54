"""Session logger for engine events.

Subscribes to every event on the bus and appends them to a per-session
JSON Lines file for later review. The first line is a session header,
each following line is one event. Lines are never rewritten. The log is
diagnostic only; nothing replays from it.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..events import EventBus, Events, GameEvent


class SessionLogger:
    """Logs all engine events of one play session.

    Attributes:
        session_id: Timestamp-based identifier for this session.
        log_dir: Directory where log files are saved.
        log_file: Path to the current session's log file.
    """

    def __init__(
        self,
        title: str = "ashfall",
        log_dir: str = "logs",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the session logger.

        Args:
            title: Session title (used in filename).
            log_dir: Directory to save log files (created if doesn't exist).
            clock: Timestamp source, defaults to ``datetime.now``.
        """
        self._clock = clock or datetime.now
        self.session_id = self._clock().strftime("%Y%m%d_%H%M%S")
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        # Sanitize title for filename
        safe_title = "".join(c if c.isalnum() or c in (" ", "-", "_") else "_" for c in title)
        safe_title = safe_title.replace(" ", "_")[:50]

        self.log_file = self.log_dir / f"{safe_title}_{self.session_id}.jsonl"
        self._event_count = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

        self._append(
            {
                "session_id": self.session_id,
                "title": title,
                "start_time": self._clock().isoformat(),
            }
        )

    def attach(self, bus: EventBus) -> None:
        """Start logging every event emitted on a bus."""
        self.detach()
        self._unsubscribe = bus.on(Events.WILDCARD, self.log_event)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def log_event(self, event: GameEvent) -> None:
        """Append one event to the session log."""
        self._append(
            {
                "type": event.type,
                "timestamp": event.timestamp.isoformat(),
                "data": event.data,
            }
        )
        self._event_count += 1

    def _append(self, record: Dict[str, Any]) -> None:
        # Append mode recreates the file if it was removed mid-session.
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")

    def get_log_path(self) -> str:
        """Get the path to the current log file.

        Returns:
            Absolute path to the log file.
        """
        return str(self.log_file.resolve())

    def get_event_count(self) -> int:
        return self._event_count
