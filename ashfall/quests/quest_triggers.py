"""Declarative quest triggers evaluated against the narrative state.

Each trigger is a conjunction of typed predicates. The matcher listens on
the bus and, for each event category, evaluates only the triggers that
mention the changed value. A trigger whose predicates all hold spawns a
quest through the rule engine. ``once`` triggers are tracked in a fired-set
kept apart from the flags.
"""

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from ..events import Events, GameEvent
from ..state.game_state import GameState, Quest
from ..state.static_config import QuestTrigger, TriggerConditions

if TYPE_CHECKING:
    from ..engine.rule_engine import RuleEngine

logger = logging.getLogger(__name__)


def conditions_hold(conditions: TriggerConditions, state: GameState) -> bool:
    """Evaluate every predicate, stopping at the first that fails."""
    c = conditions

    if c.npc is not None:
        npc = state.npcs.get(c.npc)
        if npc is None:
            return False
        if c.conversation_count_min is not None and npc.conversation_count < c.conversation_count_min:
            return False
        if c.stress_min is not None and npc.stress < c.stress_min:
            return False
        if c.relationship_min is not None and npc.relationship < c.relationship_min:
            return False
        if c.gate_min is not None and npc.current_gate < c.gate_min:
            return False

    if c.location is not None and state.player.location != c.location:
        return False

    if c.day_min is not None and state.time.day < c.day_min:
        return False
    if c.time_of_day is not None and state.time.time_of_day != c.time_of_day:
        return False

    if c.tension_min is not None and state.narrative.tension < c.tension_min:
        return False
    if c.act_min is not None and state.narrative.current_act < c.act_min:
        return False

    for flag in c.flags:
        if flag not in state.flags:
            return False

    if c.curie_activity_min is not None and state.curie.activity < c.curie_activity_min:
        return False
    if c.curie_resonance is not None:
        resonance = state.curie.resonance.get(c.curie_resonance.npc)
        if resonance is None or resonance < c.curie_resonance.min:
            return False

    return True


class QuestTriggerMatcher:
    """Spawns quests when their trigger conditions are met.

    Args:
        engine: Rule engine that owns the state and starts quests.
        triggers: Trigger table. Defaults to the engine's rule tables.
        subscribe: Register the bus listeners immediately.
    """

    def __init__(
        self,
        engine: "RuleEngine",
        triggers: Optional[Iterable[QuestTrigger]] = None,
        subscribe: bool = True,
    ):
        self.engine = engine
        self.triggers: list[QuestTrigger] = list(
            triggers if triggers is not None else engine.rules.quest_triggers
        )
        self.fired: set[str] = set()
        self._unsubscribers: list[Callable[[], None]] = []

        if subscribe:
            self.attach()

    # -------------------------------------------------------------------------
    # Bus wiring
    # -------------------------------------------------------------------------

    def attach(self) -> None:
        """Subscribe to the events that can make a trigger fire."""
        if self._unsubscribers:
            return
        bus = self.engine.events
        handlers = {
            Events.DIALOGUE_END: self._on_dialogue_end,
            Events.PLAYER_LOCATION_CHANGE: self._on_location_change,
            Events.TENSION_CHANGE: lambda event: self.check_tension_triggers(),
            Events.TIME_ADVANCE: lambda event: self.check_time_triggers(),
            Events.NPC_RELATIONSHIP_CHANGE: self._on_relationship_change,
            Events.CURIE_ACTIVITY_CHANGE: lambda event: self.check_curie_triggers(),
            Events.CURIE_RESONANCE: lambda event: self.check_curie_triggers(),
            Events.GAME_LOAD: lambda event: self.rebuild_fired(),
            Events.GAME_START: lambda event: self.fired.clear(),
        }
        for event_type, handler in handlers.items():
            self._unsubscribers.append(bus.on(event_type, handler))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _on_dialogue_end(self, event: GameEvent) -> None:
        npc_id = event.data.get("npc")
        if npc_id:
            self._check(t for t in self.triggers if t.conditions.npc == npc_id)

    def _on_location_change(self, event: GameEvent) -> None:
        location_id = event.data.get("to")
        if location_id:
            self._check(t for t in self.triggers if t.conditions.location == location_id)

    def _on_relationship_change(self, event: GameEvent) -> None:
        npc_id = event.data.get("npc")
        if npc_id:
            self._check(
                t
                for t in self.triggers
                if t.conditions.npc == npc_id and t.conditions.relationship_min is not None
            )

    # -------------------------------------------------------------------------
    # Category checks
    # -------------------------------------------------------------------------

    def check_tension_triggers(self) -> list[Quest]:
        return self._check(t for t in self.triggers if t.conditions.tension_min is not None)

    def check_time_triggers(self) -> list[Quest]:
        return self._check(
            t
            for t in self.triggers
            if t.conditions.day_min is not None or t.conditions.time_of_day is not None
        )

    def check_curie_triggers(self) -> list[Quest]:
        return self._check(
            t
            for t in self.triggers
            if t.conditions.curie_activity_min is not None or t.conditions.curie_resonance is not None
        )

    def check_all_triggers(self) -> list[Quest]:
        """Evaluate every trigger regardless of category."""
        return self._check(self.triggers)

    # -------------------------------------------------------------------------
    # Matching
    # -------------------------------------------------------------------------

    def can_fire(self, trigger: QuestTrigger) -> bool:
        if trigger.once and trigger.id in self.fired:
            return False
        return conditions_hold(trigger.conditions, self.engine.state)

    def _check(self, candidates: Iterable[QuestTrigger]) -> list[Quest]:
        started = []
        # Materialize first; firing a trigger emits events that re-enter the matcher.
        for trigger in list(candidates):
            if self.can_fire(trigger):
                quest = self.fire(trigger)
                if quest is not None:
                    started.append(quest)
        return started

    def fire(self, trigger: QuestTrigger) -> Optional[Quest]:
        """Spawn the trigger's quest. Marks the trigger fired first."""
        self.fired.add(trigger.id)
        logger.info("Quest trigger fired: %s", trigger.id)
        return self.engine.start_quest(trigger.id, trigger.archetype, trigger.context)

    def rebuild_fired(self) -> None:
        """Re-derive the fired-set from the quest log after a load."""
        self.fired = set(self.engine.state.quests.all_ids())
