"""Context-sensitive dialogue choices.

``select`` is a pure function of the NPC and the state. It merges five
pools (story, relationship, situational, voice, quest), ranks them by
priority, keeps the best few and always appends a trailing "leave"
option. ``apply_choice`` turns a picked option into rule-engine calls.
"""

import logging
from typing import TYPE_CHECKING

from .. import config
from ..engine.voice import get_dominant_voice
from ..events import Events
from ..state.game_state import GameState
from ..state.static_config import ChoiceDef, NarrativeRules

if TYPE_CHECKING:
    from ..engine.rule_engine import RuleEngine

logger = logging.getLogger(__name__)

LEAVE_ID = "leave"

LEAVE_CHOICE = ChoiceDef(
    id=LEAVE_ID,
    text="[Leave]",
    category="leave",
    priority=config.LEAVE_PRIORITY,
)


def _with_priority(choice: ChoiceDef, default: int, **updates) -> ChoiceDef:
    priority = choice.priority if choice.priority is not None else default
    return choice.model_copy(update={"priority": priority, **updates})


class ChoiceSelector:
    """Ranks the dialogue options available with an NPC."""

    def __init__(self, rules: NarrativeRules, max_choices: int = config.MAX_CHOICES):
        self.rules = rules
        self.max_choices = max_choices

    def select(self, npc_id: str, state: GameState) -> list[ChoiceDef]:
        """Eligible choices, best first, with "leave" always last."""
        npc = state.npcs.get(npc_id)
        if npc is None:
            logger.warning("select: unknown NPC '%s'", npc_id)
            return [LEAVE_CHOICE]

        candidates: list[ChoiceDef] = []
        candidates += self.story_choices(npc_id, state)
        candidates += self.relationship_choices(npc_id, state)
        candidates += self.situational_choices(npc_id, state)
        candidates += self.voice_choices(npc_id, state)
        candidates += self.quest_choices(npc_id, state)

        # Stable sort: equal priorities keep pool order.
        candidates.sort(key=lambda c: -(c.priority or 0))

        # An id offered by two pools appears once, as its higher-priority copy.
        ranked: list[ChoiceDef] = []
        seen: set[str] = set()
        for choice in candidates:
            if len(ranked) >= self.max_choices:
                break
            if choice.id in seen or choice.id == LEAVE_ID:
                continue
            seen.add(choice.id)
            ranked.append(choice)

        ranked.append(LEAVE_CHOICE)
        return ranked

    # -------------------------------------------------------------------------
    # Pools
    # -------------------------------------------------------------------------

    def story_choices(self, npc_id: str, state: GameState) -> list[ChoiceDef]:
        pool = self.rules.choice_pools.get(npc_id)
        if pool is None:
            return []
        gate = state.npcs[npc_id].current_gate

        choices = []
        for choice in pool.story:
            if choice.require_gate is not None and choice.require_gate > gate:
                continue
            if not all(flag in state.flags for flag in choice.require_flags):
                continue
            if any(flag in state.flags for flag in choice.exclude_flags):
                continue
            choices.append(_with_priority(choice, config.STORY_PRIORITY, category="story"))
        return choices

    def relationship_choices(self, npc_id: str, state: GameState) -> list[ChoiceDef]:
        pool = self.rules.choice_pools.get(npc_id)
        if pool is None:
            return []
        relationship = state.npcs[npc_id].relationship

        choices = []
        for choice in pool.relationship:
            if choice.min_relationship is not None and relationship < choice.min_relationship:
                continue
            if choice.max_relationship is not None and relationship > choice.max_relationship:
                continue
            choices.append(_with_priority(choice, config.RELATIONSHIP_PRIORITY, category="relationship"))
        return choices

    def situational_choices(self, npc_id: str, state: GameState) -> list[ChoiceDef]:
        pool = self.rules.choice_pools.get(npc_id)
        if pool is None:
            return []
        tension = state.narrative.tension

        choices = []
        for choice in pool.situational:
            if choice.min_tension is not None and tension < choice.min_tension:
                continue
            if choice.max_tension is not None and tension > choice.max_tension:
                continue
            if choice.time_of_day is not None and choice.time_of_day != state.time.time_of_day:
                continue
            if choice.location is not None and choice.location != state.player.location:
                continue
            if not all(flag in state.flags for flag in choice.require_flags):
                continue
            choices.append(_with_priority(choice, config.SITUATIONAL_PRIORITY, category="situational"))
        return choices

    def voice_choices(self, npc_id: str, state: GameState) -> list[ChoiceDef]:
        """The dominant voice's option plus any secondary voice above the floor."""
        pool = self.rules.voice_choices.get(npc_id, {})
        scores = state.player.voice_scores
        dominant = get_dominant_voice(scores)

        choices = []
        if not dominant.is_balanced and dominant.voice in pool:
            choices.append(
                pool[dominant.voice].model_copy(
                    update={
                        "voice_tag": dominant.voice,
                        "priority": config.DOMINANT_VOICE_PRIORITY,
                        "category": "voice",
                        "is_dominant_voice": True,
                    }
                )
            )

        for voice in config.VOICES:
            if voice == dominant.voice or voice not in pool:
                continue
            if scores.get(voice, 0) > config.SECONDARY_VOICE_MIN_SCORE:
                choices.append(
                    pool[voice].model_copy(
                        update={
                            "voice_tag": voice,
                            "priority": config.SECONDARY_VOICE_PRIORITY,
                            "category": "voice",
                        }
                    )
                )
        return choices

    def quest_choices(self, npc_id: str, state: GameState) -> list[ChoiceDef]:
        choices = []
        for quest in state.quests.active:
            for choice in self.rules.quest_choices.get(quest.archetype, []):
                if choice.npc is not None and choice.npc != npc_id:
                    continue
                if choice.stage is not None and choice.stage != quest.stage:
                    continue
                if not all(flag in state.flags for flag in choice.require_flags):
                    continue
                choices.append(
                    _with_priority(choice, config.QUEST_PRIORITY, category="quest", quest_id=quest.id)
                )
        return choices


def apply_choice(engine: "RuleEngine", npc_id: str, choice: ChoiceDef) -> ChoiceDef:
    """Apply the declared effects of a picked choice through the engine."""
    if choice.id == LEAVE_ID:
        engine.end_dialogue(npc_id)
        return choice

    if choice.voice_tag:
        engine.adjust_voice_score(choice.voice_tag, 1)
        engine.events.emit(Events.VOICE_CHOICE, {"voice": choice.voice_tag, "npc": npc_id})

    if choice.relationship_change:
        engine.adjust_relationship(choice.npc or npc_id, choice.relationship_change)

    for flag in choice.set_flags:
        engine.set_flag(flag)

    if choice.tension_change:
        engine.adjust_tension(choice.tension_change, "player_choice")

    if choice.curie_activity_change:
        engine.adjust_curie_activity(choice.curie_activity_change)

    engine.events.emit(
        Events.DIALOGUE_CHOICE,
        {
            "npc": npc_id,
            "choice_id": choice.id,
            "voice": choice.voice_tag,
            "category": choice.category,
            "quest_id": choice.quest_id,
        },
    )
    return choice
