"""Quest trigger matching."""

from .quest_triggers import QuestTriggerMatcher, conditions_hold

__all__ = ["QuestTriggerMatcher", "conditions_hold"]
