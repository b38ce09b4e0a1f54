"""User interface module."""

from .terminal_ui import TerminalUI

__all__ = ["TerminalUI"]
