"""Rule engine: the single writer of the narrative state.

Every mutation goes through a method here. The pattern is always the same:
clamp the input, mutate the state, emit an event, then run the rule checks
that depend on the changed value (act transitions, gate unlocks, ending
path). Invalid references are logged and ignored; nothing raises across
the public API.
"""

import logging
import random
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from .. import config
from ..events import EventBus, Events
from ..persistence.results import SaveResult, is_compatible_version
from ..state.game_state import GameState, NpcState, Quest, time_of_day_for
from ..state.static_config import GateRequirement, NarrativeRules
from .voice import DominantVoice, ending_path_for, get_dominant_voice

logger = logging.getLogger(__name__)

QUEST_STAGES = ("discovered", "investigating", "ready", "confronting")


def _clamp(value, low, high):
    return max(low, min(high, value))


def _clamp_unit(value: float) -> float:
    return round(_clamp(value, 0.0, 1.0), 4)


class DialogueResult(BaseModel):
    """What the dialogue service hands back after an NPC turn."""

    response: str = Field(default="", description="NPC line shown to the player")
    triggers: list[dict[str, Any]] = Field(
        default_factory=list, description="Narrative triggers detected in the exchange"
    )


class RuleEngine:
    """Owns the game state and enforces the narrative rules.

    Args:
        rules: Static rule tables. Defaults to the tables shipped with the package.
        rng: Source for every probabilistic effect. Seed it for deterministic runs.
        clock: Source for every timestamp.
        events: Event bus to publish on. One is created when omitted.
    """

    def __init__(
        self,
        rules: Optional[NarrativeRules] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        events: Optional[EventBus] = None,
    ):
        self.rules = rules or NarrativeRules.default()
        self.rng = rng or random.Random()
        self.clock = clock or datetime.now
        self.events = events or EventBus(clock=self.clock)

        self._state = GameState.initialize_from_rules(self.rules, started_at=self.clock())
        self._dialogue_npc: Optional[str] = None
        self._in_act_check = False

    # -------------------------------------------------------------------------
    # State access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> GameState:
        """The current state tree. Treat it as read-only outside the engine."""
        return self._state

    @property
    def current_dialogue_npc(self) -> Optional[str]:
        """NPC the player is talking to, or None."""
        return self._dialogue_npc

    def get(self, path: str) -> Any:
        """Look up a value by dotted path, e.g. ``npcs.mara.relationship``.

        Returns None when any segment is missing.
        """
        value: Any = self._state
        for part in path.split("."):
            if value is None:
                return None
            if isinstance(value, Mapping):
                value = value.get(part)
            elif isinstance(value, BaseModel):
                value = getattr(value, part, None)
            else:
                return None
        return value

    def get_npc(self, npc_id: str) -> Optional[NpcState]:
        """Get the dynamic state of an NPC."""
        return self._state.npcs.get(npc_id)

    def _require_npc(self, npc_id: str, action: str) -> Optional[NpcState]:
        npc = self._state.npcs.get(npc_id)
        if npc is None:
            logger.warning("%s: unknown NPC '%s'", action, npc_id)
        return npc

    # -------------------------------------------------------------------------
    # Flags & event log
    # -------------------------------------------------------------------------

    def set_flag(self, flag: str) -> bool:
        """Add a flag. Returns False when it was already set."""
        if flag in self._state.flags:
            return False
        self._state.flags.add(flag)
        self.events.emit(Events.FLAG_SET, {"flag": flag})
        return True

    def has_flag(self, flag: str) -> bool:
        """Check whether a flag has been set."""
        return flag in self._state.flags

    def get_flags(self) -> list[str]:
        """All flags, sorted."""
        return sorted(self._state.flags)

    def log_event(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Append an entry to the bounded narrative log."""
        self._state.log_event(event_type, data or {}, self.clock())

    def get_recent_events(self, count: int = 20):
        """Get the most recent narrative log entries."""
        return self._state.get_recent_events(count)

    # -------------------------------------------------------------------------
    # Time
    # -------------------------------------------------------------------------

    def advance_time(self, hours: int = 1) -> None:
        """Move the clock forward, rolling hours over into days.

        Each call relieves one point of stress per NPC, each new day adds
        tension, and the weather may change. TIME_ADVANCE is emitted last
        so listeners see the settled state.
        """
        if hours <= 0:
            logger.warning("advance_time: ignoring non-positive hours %s", hours)
            return

        time = self._state.time
        total = time.hour + hours
        old_day = time.day
        new_days = total // config.HOURS_PER_DAY

        time.day = old_day + new_days
        time.hour = total % config.HOURS_PER_DAY
        time.time_of_day = time_of_day_for(time.hour)

        for day in range(old_day, time.day):
            self.events.emit(Events.DAY_END, {"day": day})
            self.events.emit(Events.DAY_START, {"day": day + 1})

        for npc_id in list(self._state.npcs):
            self.adjust_npc_stress(npc_id, config.TIME_STRESS_RELIEF)

        for _ in range(new_days):
            self.adjust_tension(config.DAILY_TENSION, "time_passage")

        self._maybe_change_weather()

        self.events.emit(
            Events.TIME_ADVANCE,
            {"day": time.day, "hour": time.hour, "time_of_day": time.time_of_day, "hours": hours},
        )

    def _maybe_change_weather(self) -> None:
        if self.rng.random() >= config.WEATHER_CHANGE_CHANCE:
            return
        weather = self.rng.choice(config.WEATHER_TYPES)
        if weather != self._state.environment.weather:
            self._state.environment.weather = weather
            self.events.emit(Events.WEATHER_CHANGE, {"weather": weather})

    def set_weather(self, weather: str) -> None:
        """Force the weather. Unknown weather types are ignored."""
        if weather not in config.WEATHER_TYPES:
            logger.warning("set_weather: unknown weather '%s'", weather)
            return
        self._state.environment.weather = weather
        self.events.emit(Events.WEATHER_CHANGE, {"weather": weather})

    # -------------------------------------------------------------------------
    # Player
    # -------------------------------------------------------------------------

    def move_player(self, location_id: str) -> None:
        """Move the player, refresh the hum and run first-visit effects."""
        location = self.rules.get_location(location_id)
        if location is None:
            logger.warning("move_player: unknown location '%s'", location_id)
            return

        player = self._state.player
        old_location = player.location
        player.previous_location = old_location
        player.location = location_id

        self.events.emit(Events.PLAYER_LOCATION_CHANGE, {"from": old_location, "to": location_id})

        self._update_hum()

        if location_id not in player.visited_locations:
            player.visited_locations.append(location_id)
            for flag in location.first_visit_flags:
                self.set_flag(flag)
            if location.first_visit_activity:
                self.adjust_curie_activity(location.first_visit_activity)
            for npc_id, delta in location.first_visit_resonance.items():
                self.update_curie_resonance(npc_id, delta)

    def adjust_voice_score(self, voice: str, delta: int) -> None:
        """Shift one inner voice score and recompute the ending path.

        Voice scores are unbounded in both directions.
        """
        scores = self._state.player.voice_scores
        if voice not in config.VOICES:
            logger.warning("adjust_voice_score: unknown voice '%s'", voice)
            return

        scores[voice] = scores.get(voice, 0) + delta
        self.events.emit(
            Events.VOICE_SCORE_CHANGE, {"voice": voice, "delta": delta, "new_value": scores[voice]}
        )
        self.recalculate_ending_path()

    def get_dominant_voice(self) -> DominantVoice:
        """Rank the voice scores of the player."""
        return get_dominant_voice(self._state.player.voice_scores)

    def set_initial_tone(self, tone: str) -> None:
        """Record the tone the player picked in the opening."""
        self._state.player.initial_tone = tone
        self.set_flag(f"opening_tone_{tone}")

    # -------------------------------------------------------------------------
    # NPCs
    # -------------------------------------------------------------------------

    def adjust_relationship(self, npc_id: str, delta: int) -> None:
        """Shift how an NPC feels about the player.

        The result is clamped to [0, 100] and always emits a change event.
        The NPC's next gate is checked afterwards.
        """
        npc = self._require_npc(npc_id, "adjust_relationship")
        if npc is None:
            return

        old_value = npc.relationship
        npc.relationship = _clamp(old_value + delta, config.RELATIONSHIP_MIN, config.RELATIONSHIP_MAX)

        self.events.emit(
            Events.NPC_RELATIONSHIP_CHANGE,
            {"npc": npc_id, "delta": delta, "old_value": old_value, "new_value": npc.relationship},
        )
        self.check_gate_unlock(npc_id)

    def adjust_npc_stress(self, npc_id: str, delta: int) -> None:
        """Shift an NPC's stress, clamped to [0, 100].

        Small changes stay silent. Stress above the check level runs the
        critical-stress check.
        """
        npc = self._require_npc(npc_id, "adjust_npc_stress")
        if npc is None:
            return

        old_value = npc.stress
        npc.stress = _clamp(old_value + delta, config.STRESS_MIN, config.STRESS_MAX)

        if abs(delta) > config.STRESS_EVENT_THRESHOLD:
            self.events.emit(
                Events.NPC_STRESS_CHANGE,
                {"npc": npc_id, "delta": delta, "old_value": old_value, "new_value": npc.stress},
            )

        if npc.stress > config.STRESS_CHECK_LEVEL:
            self._check_stress_triggers(npc_id, npc)

    def _check_stress_triggers(self, npc_id: str, npc: NpcState) -> None:
        if npc.stress > config.STRESS_CRITICAL_LEVEL:
            self.events.emit(Events.NPC_STRESS_CRITICAL, {"npc": npc_id, "stress": npc.stress})
            self.set_flag(f"{npc_id}_stress_critical")

    def meet_npc(self, npc_id: str) -> None:
        """Mark an NPC as met. Sets met_all_npcs once everyone is met."""
        npc = self._require_npc(npc_id, "meet_npc")
        if npc is None or npc.met:
            return

        npc.met = True
        self.set_flag(f"met_{npc_id}")
        self.events.emit(Events.NPC_MET, {"npc": npc_id})

        if all(n.met for n in self._state.npcs.values()):
            self.set_flag("met_all_npcs")

    def increment_conversation(self, npc_id: str) -> None:
        """Count one more exchange with an NPC."""
        npc = self._require_npc(npc_id, "increment_conversation")
        if npc is not None:
            npc.conversation_count += 1

    def set_npc_outcome(self, npc_id: str, outcome: str) -> None:
        """Record how an NPC's arc resolved."""
        npc = self._require_npc(npc_id, "set_npc_outcome")
        if npc is None:
            return
        npc.outcome = outcome
        self.events.emit(Events.NPC_OUTCOME_SET, {"npc": npc_id, "outcome": outcome})
        self.log_event("npc_outcome", {"npc": npc_id, "outcome": outcome})

    def get_all_npc_stress(self) -> dict[str, int]:
        """Stress per NPC."""
        return {npc_id: npc.stress for npc_id, npc in self._state.npcs.items()}

    def get_all_npc_gates(self) -> dict[str, int]:
        """Current gate per NPC."""
        return {npc_id: npc.current_gate for npc_id, npc in self._state.npcs.items()}

    def get_all_relationships(self) -> dict[str, int]:
        """Relationship per NPC."""
        return {npc_id: npc.relationship for npc_id, npc in self._state.npcs.items()}

    # -------------------------------------------------------------------------
    # Gates
    # -------------------------------------------------------------------------

    def unlock_gate(self, npc_id: str) -> bool:
        """Open the next gate of an NPC. Never skips, never passes the cap."""
        npc = self._require_npc(npc_id, "unlock_gate")
        if npc is None or npc.current_gate >= config.MAX_GATE:
            return False

        npc.current_gate += 1
        gate = npc.current_gate
        arc = self.rules.get_arc(npc_id)
        gate_name = arc.gate_name(gate) if arc else None

        self.events.emit(Events.NPC_GATE_UNLOCK, {"npc": npc_id, "new_gate": gate, "gate_name": gate_name})
        self.log_event("gate_unlock", {"npc": npc_id, "gate": gate, "gate_name": gate_name})
        self.set_flag(f"{npc_id}_gate_{gate}")
        return True

    def check_gate_unlock(self, npc_id: str) -> bool:
        """Unlock the next gate if its requirements hold. At most one per call."""
        npc = self._state.npcs.get(npc_id)
        if npc is None or npc.current_gate >= config.MAX_GATE:
            return False

        gate_def = self.rules.get_gate(npc_id, npc.current_gate + 1)
        if gate_def is None:
            return False

        if not self._gate_requirements_met(npc, gate_def.requires):
            return False
        return self.unlock_gate(npc_id)

    def _gate_requirements_met(self, npc: NpcState, req: GateRequirement) -> bool:
        state = self._state
        if req.relationship is not None and npc.relationship < req.relationship:
            return False
        if req.tension is not None and state.narrative.tension < req.tension:
            return False
        if req.act is not None and state.narrative.current_act < req.act:
            return False
        if req.conversation_count is not None and npc.conversation_count < req.conversation_count:
            return False
        if req.curie_activity is not None and state.curie.activity < req.curie_activity:
            return False
        if any(flag not in state.flags for flag in req.flags):
            return False
        if req.voice_determined and self.get_dominant_voice().is_balanced:
            return False
        return True

    def get_npc_arc(self, npc_id: str) -> Optional[dict[str, Any]]:
        """Revelation bounds for the dialogue service."""
        npc = self._state.npcs.get(npc_id)
        arc = self.rules.get_arc(npc_id)
        if npc is None or arc is None:
            return None

        gate = npc.current_gate
        return {
            "npc": npc_id,
            "current_gate": gate,
            "gate_name": arc.gate_name(gate),
            "next_gate_name": arc.gate_name(gate + 1),
            "can_reveal": arc.gate_description(gate),
            "cannot_reveal_yet": arc.gate_description(gate + 1) or "All truths unlocked",
        }

    # -------------------------------------------------------------------------
    # Narrative: tension, acts, ending
    # -------------------------------------------------------------------------

    def adjust_tension(self, delta: int, source: str = "unknown") -> None:
        """Shift the global tension, clamped to [0, 100].

        Every call re-checks the act transition, even when the change was
        too small to emit an event.
        """
        narrative = self._state.narrative
        old_value = narrative.tension
        narrative.tension = _clamp(old_value + delta, config.TENSION_MIN, config.TENSION_MAX)

        if abs(delta) > config.TENSION_EVENT_THRESHOLD:
            self.events.emit(
                Events.TENSION_CHANGE,
                {"delta": delta, "old_value": old_value, "new_value": narrative.tension, "source": source},
            )

        self.check_act_transition()

    def _next_due_act(self) -> Optional[int]:
        narrative = self._state.narrative
        triggers = narrative.act_triggers
        if narrative.current_act == 1 and triggers.act1to2 and narrative.tension > config.ACT1_TO_2_TENSION:
            return 2
        if narrative.current_act == 2 and triggers.act2to3 and narrative.tension > config.ACT2_TO_3_TENSION:
            return 3
        return None

    def check_act_transition(self) -> bool:
        """Advance the act while a transition is due.

        The act-entry tension bonus calls back into ``adjust_tension`` and so
        into this method. Nested calls return immediately and the outer loop
        re-evaluates, so at most one transition per remaining act happens.
        """
        if self._in_act_check:
            logger.debug("Act check re-entered; outer check will re-evaluate")
            return False

        self._in_act_check = True
        transitioned = False
        try:
            for _ in range(config.FINAL_ACT - 1):
                next_act = self._next_due_act()
                if next_act is None:
                    break
                self.transition_to_act(next_act)
                transitioned = True
        finally:
            self._in_act_check = False
        return transitioned

    def transition_to_act(self, new_act: int) -> bool:
        """Enter a later act. Acts never go backwards."""
        narrative = self._state.narrative
        old_act = narrative.current_act
        if new_act <= old_act or new_act > config.FINAL_ACT:
            return False

        narrative.current_act = new_act
        narrative.act_progress = 0

        self.events.emit(Events.ACT_TRANSITION, {"from": old_act, "to": new_act})
        self.log_event("act_transition", {"from": old_act, "to": new_act})
        self.set_flag(f"act_{new_act}_begun")

        if new_act == 2:
            self.adjust_tension(config.ACT2_ENTRY_TENSION_BONUS, "act_transition")
        elif new_act == 3:
            narrative.point_of_no_return = True
            self.adjust_tension(config.ACT3_ENTRY_TENSION_BONUS, "act_transition")
        return True

    def trigger_act_transition(self, which: str) -> None:
        """Arm a scripted act trigger ('1to2' or '2to3') and re-check."""
        triggers = self._state.narrative.act_triggers
        if which == "1to2":
            triggers.act1to2 = True
        elif which == "2to3":
            triggers.act2to3 = True
        else:
            logger.warning("trigger_act_transition: unknown trigger '%s'", which)
            return
        self.check_act_transition()

    def recalculate_ending_path(self) -> None:
        """Derive the ending path from the dominant voice unless it is locked."""
        narrative = self._state.narrative
        if narrative.ending_locked:
            return
        narrative.ending_path = ending_path_for(self.get_dominant_voice().voice)

    def lock_ending(self) -> bool:
        """Freeze the ending path. Returns False if it was already locked."""
        narrative = self._state.narrative
        if narrative.ending_locked:
            return False

        if narrative.ending_path is None:
            self.recalculate_ending_path()
        narrative.ending_locked = True

        scores = dict(self._state.player.voice_scores)
        self.events.emit(Events.ENDING_LOCKED, {"path": narrative.ending_path, "voice_scores": scores})
        self.log_event("ending_locked", {"path": narrative.ending_path})
        return True

    def get_tension_description(self) -> str:
        """One-line description of the current tension band."""
        tension = self._state.narrative.tension
        if tension < 20:
            return "Quiet. The settlement breathes."
        if tension < 40:
            return "Uneasy. Something stirs beneath the surface."
        if tension < 60:
            return "Tense. The cracks are showing."
        if tension < 80:
            return "Critical. The settlement frays."
        return "Breaking point. The unburying begins."

    # -------------------------------------------------------------------------
    # Curie
    # -------------------------------------------------------------------------

    def adjust_curie_activity(self, delta: float) -> None:
        """Shift Curie's activity and refresh the hum.

        Above the manifestation level one draw from the rng decides whether
        Curie manifests.
        """
        curie = self._state.curie
        old_value = curie.activity
        curie.activity = _clamp_unit(old_value + delta)

        self.events.emit(
            Events.CURIE_ACTIVITY_CHANGE, {"delta": delta, "old_value": old_value, "new_value": curie.activity}
        )
        self._update_hum()

        if curie.activity > config.MANIFESTATION_ACTIVITY and self.rng.random() < config.MANIFESTATION_CHANCE:
            self.trigger_curie_manifestation()

    def trigger_curie_manifestation(self) -> None:
        """Curie reaches into the settlement: flag, log entry and a tension spike."""
        curie = self._state.curie
        curie.manifestations += 1
        curie.last_pattern_seek = self.clock()

        self.events.emit(
            Events.CURIE_MANIFESTATION, {"count": curie.manifestations, "activity": curie.activity}
        )
        self.log_event("curie_manifestation", {"count": curie.manifestations})
        self.set_flag("curie_manifested")
        self.adjust_tension(config.MANIFESTATION_TENSION, "curie_manifestation")

    def adjust_curie_coherence(self, delta: float) -> None:
        """Shift Curie's coherence, clamped to [0, 1]."""
        curie = self._state.curie
        curie.coherence = _clamp_unit(curie.coherence + delta)
        self.events.emit(Events.CURIE_COHERENCE_CHANGE, {"delta": delta, "new_value": curie.coherence})

    def update_curie_resonance(self, npc_id: str, delta: float) -> None:
        """Shift Curie's affinity with one NPC, clamped to [0, 1]."""
        resonance = self._state.curie.resonance
        if npc_id not in resonance:
            logger.warning("update_curie_resonance: unknown NPC '%s'", npc_id)
            return
        resonance[npc_id] = _clamp_unit(resonance[npc_id] + delta)
        self.events.emit(Events.CURIE_RESONANCE, {"npc": npc_id, "new_value": resonance[npc_id]})

    def adjust_player_attunement(self, delta: float) -> None:
        """Shift how attuned the player is to Curie, clamped to [0, 1]."""
        curie = self._state.curie
        curie.player_attunement = _clamp_unit(curie.player_attunement + delta)

    # -------------------------------------------------------------------------
    # Environment
    # -------------------------------------------------------------------------

    def trigger_tremor(self, intensity: str = "light") -> None:
        """Shake the settlement.

        Raises Curie activity by a fixed amount per intensity and adds
        tension. A heavy tremor during act 1 arms the act 1 to 2 trigger.
        """
        activity_delta = config.TREMOR_ACTIVITY.get(intensity)
        if activity_delta is None:
            logger.warning("trigger_tremor: unknown intensity '%s'", intensity)
            return

        environment = self._state.environment
        environment.last_tremor = self.clock()
        environment.tremor_count += 1

        self.events.emit(Events.TREMOR, {"intensity": intensity, "count": environment.tremor_count})
        self.log_event("tremor", {"intensity": intensity, "count": environment.tremor_count})

        if environment.tremor_count == 1:
            self.set_flag("first_tremor_felt")
        self.set_flag("tremor_witnessed")
        self.set_flag("recent_tremor")

        self.adjust_curie_activity(activity_delta)
        self.adjust_tension(config.TREMOR_TENSION, "tremor")

        if intensity == "heavy" and self._state.narrative.current_act == 1:
            self._state.narrative.act_triggers.act1to2 = True
            self.check_act_transition()

    def _update_hum(self) -> None:
        location = self.rules.get_location(self._state.player.location)
        proximity = location.proximity if location else config.DEFAULT_PROXIMITY
        hum = round(
            config.HUM_BASE
            + self._state.curie.activity * config.HUM_ACTIVITY_WEIGHT
            + proximity * config.HUM_PROXIMITY_WEIGHT,
            4,
        )

        environment = self._state.environment
        if hum == environment.hum_intensity:
            return
        environment.hum_intensity = hum
        self.events.emit(
            Events.HUM_INTENSITY_CHANGE, {"location": self._state.player.location, "intensity": hum}
        )

    # -------------------------------------------------------------------------
    # Dialogue
    # -------------------------------------------------------------------------

    def start_dialogue(self, npc_id: str) -> bool:
        """Open a conversation with an NPC."""
        if self._require_npc(npc_id, "start_dialogue") is None:
            return False
        self._dialogue_npc = npc_id
        self.events.emit(Events.DIALOGUE_START, {"npc": npc_id})
        return True

    def end_dialogue(self, npc_id: Optional[str] = None) -> bool:
        """Close the conversation with an NPC, or the current one."""
        npc_id = npc_id or self._dialogue_npc
        if npc_id is None:
            logger.warning("end_dialogue: no dialogue in progress")
            return False
        self._dialogue_npc = None
        self.events.emit(Events.DIALOGUE_END, {"npc": npc_id})
        return True

    def get_dialogue_context(self, npc_id: str) -> Optional[dict[str, Any]]:
        """Read-only projection of the state for the dialogue service."""
        npc = self._state.npcs.get(npc_id)
        if npc is None:
            return None

        state = self._state
        dominant = self.get_dominant_voice()
        return {
            "npc": npc_id,
            "day": state.time.day,
            "time_of_day": state.time.time_of_day,
            "weather": state.environment.weather,
            "hum_intensity": state.environment.hum_intensity,
            "current_act": state.narrative.current_act,
            "tension": state.narrative.tension,
            "relationship": npc.relationship,
            "stress": npc.stress,
            "current_gate": npc.current_gate,
            "conversation_count": npc.conversation_count,
            "arc": self.get_npc_arc(npc_id),
            "npc_stress": self.get_all_npc_stress(),
            "npc_gates": self.get_all_npc_gates(),
            "relationships": self.get_all_relationships(),
            "player_location": state.player.location,
            "dominant_voice": dominant.voice,
            "voice_scores": dict(state.player.voice_scores),
            "curie_activity": state.curie.activity,
            "curie_resonance": state.curie.resonance.get(npc_id, 0.0),
            "flags": self.get_flags(),
        }

    def process_dialogue_result(self, npc_id: str, result: Any) -> bool:
        """Apply what the dialogue service reported for one exchange."""
        if self._require_npc(npc_id, "process_dialogue_result") is None:
            return False

        if not isinstance(result, DialogueResult):
            try:
                result = DialogueResult.model_validate(result)
            except ValidationError as exc:
                logger.warning("process_dialogue_result: malformed result for %s: %s", npc_id, exc)
                return False

        self.increment_conversation(npc_id)
        for trigger in result.triggers:
            self.handle_dialogue_trigger(trigger, npc_id)
        self.meet_npc(npc_id)
        self.adjust_relationship(npc_id, 1)
        return True

    def handle_dialogue_trigger(self, trigger: Mapping[str, Any], npc_id: str) -> None:
        """Apply the canonical effect of one trigger reported by the dialogue service."""
        trigger_type = trigger.get("type")

        if trigger_type == "shaft_mentioned":
            self.set_flag(f"shaft_mentioned_by_{npc_id}")
            self.adjust_curie_activity(0.03)
        elif trigger_type == "23_mentioned":
            self.set_flag("23_mentioned")
            self.adjust_tension(3, "dialogue")
        elif trigger_type == "hum_mentioned":
            self.set_flag(f"hum_mentioned_by_{npc_id}")
            self.adjust_curie_activity(0.02)
        elif trigger_type == "emotional_spike":
            self.adjust_npc_stress(npc_id, 5)
            self.adjust_tension(2, "emotional_dialogue")
        elif trigger_type == "confession_adjacent":
            self.adjust_relationship(npc_id, 5)
            self.check_gate_unlock(npc_id)
        else:
            logger.warning("Ignoring unknown dialogue trigger '%s'", trigger_type)

    # -------------------------------------------------------------------------
    # Quests
    # -------------------------------------------------------------------------

    def start_quest(
        self, quest_id: str, archetype: str, context: Optional[dict[str, Any]] = None
    ) -> Optional[Quest]:
        """Create an active quest. Refuses ids that were already started."""
        quests = self._state.quests
        if quests.contains(quest_id):
            logger.warning("start_quest: quest '%s' already exists", quest_id)
            return None

        quest = Quest(
            id=quest_id,
            archetype=archetype,
            context=dict(context or {}),
            started_at=self.clock(),
            day=self._state.time.day,
        )
        quests.active.append(quest)

        self.events.emit(
            Events.QUEST_START, {"quest_id": quest_id, "archetype": archetype, "context": quest.context}
        )
        self.log_event("quest_start", {"quest_id": quest_id, "archetype": archetype})
        self.set_flag(f"quest_started_{quest_id}")
        return quest

    def advance_quest_stage(self, quest_id: str, stage: str) -> bool:
        """Move an active quest to another stage."""
        if stage not in QUEST_STAGES:
            logger.warning("advance_quest_stage: unknown stage '%s'", stage)
            return False
        quest = self._state.quests.get_active(quest_id)
        if quest is None:
            logger.warning("advance_quest_stage: no active quest '%s'", quest_id)
            return False

        old_stage = quest.stage
        quest.stage = stage
        self.events.emit(Events.QUEST_UPDATE, {"quest_id": quest_id, "from": old_stage, "to": stage})
        return True

    def complete_quest(self, quest_id: str, outcome: Optional[str] = None) -> bool:
        """Move an active quest to the completed list."""
        quest = self._pop_active_quest(quest_id, "complete_quest")
        if quest is None:
            return False

        quest.completed_at = self.clock()
        quest.outcome = outcome
        self._state.quests.completed.append(quest)

        self.events.emit(
            Events.QUEST_COMPLETE, {"quest_id": quest_id, "outcome": outcome, "archetype": quest.archetype}
        )
        self.log_event("quest_complete", {"quest_id": quest_id, "outcome": outcome})
        self.set_flag(f"quest_completed_{quest_id}")
        return True

    def fail_quest(self, quest_id: str, reason: Optional[str] = None) -> bool:
        """Move an active quest to the failed list."""
        quest = self._pop_active_quest(quest_id, "fail_quest")
        if quest is None:
            return False

        quest.failed_at = self.clock()
        quest.outcome = reason
        self._state.quests.failed.append(quest)

        self.events.emit(Events.QUEST_FAIL, {"quest_id": quest_id, "reason": reason, "archetype": quest.archetype})
        self.log_event("quest_fail", {"quest_id": quest_id, "reason": reason})
        self.set_flag(f"quest_failed_{quest_id}")
        return True

    def _pop_active_quest(self, quest_id: str, action: str) -> Optional[Quest]:
        active = self._state.quests.active
        for index, quest in enumerate(active):
            if quest.id == quest_id:
                return active.pop(index)
        logger.warning("%s: no active quest '%s'", action, quest_id)
        return None

    def get_active_quests(self) -> list[Quest]:
        """Snapshot of the active quests."""
        return list(self._state.quests.active)

    # -------------------------------------------------------------------------
    # Persistence & lifecycle
    # -------------------------------------------------------------------------

    def export_state(self, slot: Optional[str] = None) -> dict[str, Any]:
        """JSON-ready snapshot with accumulated play time."""
        now = self.clock()
        data = self._state.model_dump(mode="json")

        elapsed = max(0.0, (now - self._state.meta.started_at).total_seconds())
        data["meta"]["version"] = config.SAVE_VERSION
        data["meta"]["saved_at"] = now.isoformat()
        data["meta"]["play_time"] = self._state.meta.play_time + elapsed
        if slot is not None:
            data["meta"]["save_slot"] = slot
        return data

    def import_state(self, data: Any) -> SaveResult:
        """Replace the state with a snapshot. Incompatible saves are refused."""
        if not isinstance(data, Mapping):
            return SaveResult.failed("Save data is not an object")

        meta = data.get("meta") or {}
        version = meta.get("version") if isinstance(meta, Mapping) else None
        if not is_compatible_version(version, config.SAVE_VERSION):
            logger.warning("Refusing save with version %s (engine %s)", version, config.SAVE_VERSION)
            return SaveResult.failed(f"Incompatible save version: {version}")

        try:
            state = GameState.model_validate(data)
        except ValidationError as exc:
            logger.warning("Refusing malformed save: %s", exc)
            return SaveResult.failed(f"Malformed save data ({exc.error_count()} errors)")

        state.meta.started_at = self.clock()
        self._state = state
        self._dialogue_npc = None

        self.events.emit(Events.GAME_LOAD, {"day": state.time.day, "slot": state.meta.save_slot})
        return SaveResult.ok(slot=state.meta.save_slot)

    def reset(self) -> None:
        """Start over with a fresh opening state."""
        self._state = GameState.initialize_from_rules(self.rules, started_at=self.clock())
        self._dialogue_npc = None
        self.events.clear_history()
        self.events.emit(Events.GAME_START, {"day": self._state.time.day})
