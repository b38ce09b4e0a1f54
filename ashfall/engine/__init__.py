"""Narrative rule engine."""

from .rule_engine import DialogueResult, RuleEngine
from .voice import BALANCED, DominantVoice, ending_path_for, get_dominant_voice

__all__ = [
    "DialogueResult",
    "RuleEngine",
    "BALANCED",
    "DominantVoice",
    "ending_path_for",
    "get_dominant_voice",
]
