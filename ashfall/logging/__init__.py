"""Session event logging."""

from .session_logger import SessionLogger

__all__ = ["SessionLogger"]
