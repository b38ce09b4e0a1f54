"""Catalogue of engine event types and their payloads.

Event types are namespaced ``domain:action`` strings. Together with the
payload keys in ``PAYLOAD_KEYS`` they are the wire format between the
engine and every other subsystem, so both must stay stable. Payload keys
are snake_case (``old_value``, ``new_gate``, ``quest_id``) like every
other field name in the state tree and in save files; listeners written
against camelCase keys have to map them.
"""


class Events:
    """Event type constants."""

    # Game flow
    GAME_START = "game:start"
    GAME_SAVE = "game:save"
    GAME_LOAD = "game:load"

    # Time
    TIME_ADVANCE = "time:advance"
    DAY_START = "time:day_start"
    DAY_END = "time:day_end"

    # Player
    PLAYER_LOCATION_CHANGE = "player:location_change"
    VOICE_SCORE_CHANGE = "player:voice_score_change"
    VOICE_CHOICE = "voice:choice"

    # Dialogue
    DIALOGUE_START = "dialogue:start"
    DIALOGUE_END = "dialogue:end"
    DIALOGUE_CHOICE = "dialogue:choice"

    # NPCs
    NPC_RELATIONSHIP_CHANGE = "npc:relationship_change"
    NPC_STRESS_CHANGE = "npc:stress_change"
    NPC_GATE_UNLOCK = "npc:gate_unlock"
    NPC_OUTCOME_SET = "npc:outcome_set"
    NPC_MET = "npc:met"
    NPC_STRESS_CRITICAL = "npc:stress_critical"

    # Narrative
    TENSION_CHANGE = "narrative:tension_change"
    ACT_TRANSITION = "narrative:act_transition"
    FLAG_SET = "narrative:flag_set"
    ENDING_LOCKED = "narrative:ending_locked"

    # Curie
    CURIE_ACTIVITY_CHANGE = "curie:activity_change"
    CURIE_COHERENCE_CHANGE = "curie:coherence_change"
    CURIE_MANIFESTATION = "curie:manifestation"
    CURIE_RESONANCE = "curie:resonance"

    # Environment
    WEATHER_CHANGE = "environment:weather_change"
    TREMOR = "environment:tremor"
    HUM_INTENSITY_CHANGE = "environment:hum_change"

    # Quests
    QUEST_START = "quest:start"
    QUEST_COMPLETE = "quest:complete"
    QUEST_FAIL = "quest:fail"
    QUEST_UPDATE = "quest:update"

    WILDCARD = "*"


# Keys carried by each event type.
PAYLOAD_KEYS: dict[str, frozenset[str]] = {
    Events.GAME_START: frozenset({"day"}),
    Events.GAME_SAVE: frozenset({"slot", "day"}),
    Events.GAME_LOAD: frozenset({"day", "slot"}),
    Events.TIME_ADVANCE: frozenset({"day", "hour", "time_of_day", "hours"}),
    Events.DAY_START: frozenset({"day"}),
    Events.DAY_END: frozenset({"day"}),
    Events.PLAYER_LOCATION_CHANGE: frozenset({"from", "to"}),
    Events.VOICE_SCORE_CHANGE: frozenset({"voice", "delta", "new_value"}),
    Events.VOICE_CHOICE: frozenset({"voice", "npc"}),
    Events.DIALOGUE_START: frozenset({"npc"}),
    Events.DIALOGUE_END: frozenset({"npc"}),
    Events.DIALOGUE_CHOICE: frozenset({"npc", "choice_id", "voice", "category", "quest_id"}),
    Events.NPC_RELATIONSHIP_CHANGE: frozenset({"npc", "delta", "old_value", "new_value"}),
    Events.NPC_STRESS_CHANGE: frozenset({"npc", "delta", "old_value", "new_value"}),
    Events.NPC_GATE_UNLOCK: frozenset({"npc", "new_gate", "gate_name"}),
    Events.NPC_OUTCOME_SET: frozenset({"npc", "outcome"}),
    Events.NPC_MET: frozenset({"npc"}),
    Events.NPC_STRESS_CRITICAL: frozenset({"npc", "stress"}),
    Events.TENSION_CHANGE: frozenset({"delta", "old_value", "new_value", "source"}),
    Events.ACT_TRANSITION: frozenset({"from", "to"}),
    Events.FLAG_SET: frozenset({"flag"}),
    Events.ENDING_LOCKED: frozenset({"path", "voice_scores"}),
    Events.CURIE_ACTIVITY_CHANGE: frozenset({"delta", "old_value", "new_value"}),
    Events.CURIE_COHERENCE_CHANGE: frozenset({"delta", "new_value"}),
    Events.CURIE_MANIFESTATION: frozenset({"count", "activity"}),
    Events.CURIE_RESONANCE: frozenset({"npc", "new_value"}),
    Events.WEATHER_CHANGE: frozenset({"weather"}),
    Events.TREMOR: frozenset({"intensity", "count"}),
    Events.HUM_INTENSITY_CHANGE: frozenset({"location", "intensity"}),
    Events.QUEST_START: frozenset({"quest_id", "archetype", "context"}),
    Events.QUEST_COMPLETE: frozenset({"quest_id", "outcome", "archetype"}),
    Events.QUEST_FAIL: frozenset({"quest_id", "reason", "archetype"}),
    Events.QUEST_UPDATE: frozenset({"quest_id", "from", "to"}),
}


def event_type(namespace: str, name: str) -> str:
    """Build a namespaced event type."""
    return f"{namespace}:{name}"
