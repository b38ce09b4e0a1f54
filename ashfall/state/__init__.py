"""Narrative state and rule tables."""

from .game_state import GameState, Quest, time_of_day_for
from .static_config import ChoiceDef, NarrativeRules, QuestTrigger

__all__ = ["GameState", "Quest", "time_of_day_for", "ChoiceDef", "NarrativeRules", "QuestTrigger"]
