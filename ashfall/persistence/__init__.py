"""Save/load persistence."""

from .results import SaveLoadError, SaveResult, is_compatible_version
from .save_manager import SaveManager, format_play_time

__all__ = ["SaveLoadError", "SaveResult", "is_compatible_version", "SaveManager", "format_play_time"]
