"""Dynamic narrative state that evolves during gameplay.

The state is a tree of plain records. Nothing holds a reference to another
record; relations go through string identifiers (NPC id, location id, flag).
Only the RuleEngine mutates it.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from .. import config
from .static_config import NarrativeRules

TimeOfDay = Literal["morning", "afternoon", "dusk", "night"]
QuestStage = Literal["discovered", "investigating", "ready", "confronting"]


def time_of_day_for(hour: int) -> TimeOfDay:
    """Map an hour of the day onto its period."""
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "dusk"
    return "night"


class TimeState(BaseModel):
    """Calendar position of the session."""

    day: int = Field(default=1, ge=1, description="Day number, starting at 1")
    hour: int = Field(default=8, ge=0, lt=config.HOURS_PER_DAY, description="Hour of the day")
    time_of_day: TimeOfDay = Field(default="morning", description="Derived from hour")


class ActTriggers(BaseModel):
    """One-shot scripted triggers that arm each act transition."""

    act1to2: bool = Field(default=False, description="First major tremor/hum event happened")
    act2to3: bool = Field(default=False, description="Shaft became accessible")


class NarrativeState(BaseModel):
    """Macro progress of the story."""

    current_act: int = Field(default=1, ge=1, le=config.FINAL_ACT, description="Only increases")
    act_progress: int = Field(default=0, ge=0, description="Progress within the current act")
    tension: int = Field(
        default=20, ge=config.TENSION_MIN, le=config.TENSION_MAX, description="Global pressure"
    )
    act_triggers: ActTriggers = Field(default_factory=ActTriggers)
    ending_path: str | None = Field(default=None, description="Current ending trajectory")
    ending_locked: bool = Field(default=False, description="Once true, ending_path is frozen")
    point_of_no_return: bool = Field(default=False, description="Set on entering the final act")


class PlayerState(BaseModel):
    """Current state of the player character."""

    location: str = Field(default="gate", description="Current location id")
    previous_location: str | None = Field(default=None, description="Location before the last move")
    visited_locations: list[str] = Field(default_factory=list, description="Locations entered so far")
    voice_scores: dict[str, int] = Field(
        default_factory=lambda: {voice: 0 for voice in config.VOICES},
        description="Unbounded alignment score per inner voice",
    )
    initial_tone: str | None = Field(default=None, description="Tone picked in the opening")
    inventory: list[str] = Field(default_factory=list, description="Item ids carried")


class NpcState(BaseModel):
    """Dynamic state of one settlement resident."""

    location: str = Field(description="Where the NPC currently is")
    relationship: int = Field(default=50, ge=config.RELATIONSHIP_MIN, le=config.RELATIONSHIP_MAX)
    stress: int = Field(default=40, ge=config.STRESS_MIN, le=config.STRESS_MAX)
    current_gate: int = Field(default=0, ge=0, le=config.MAX_GATE, description="Only increases")
    outcome: str | None = Field(default=None, description="Resolved arc outcome")
    met: bool = Field(default=False)
    conversation_count: int = Field(default=0, ge=0)
    mirroring_target: str | None = Field(default=None, description="Who the NPC is mirroring")
    identity_stability: int | None = Field(default=None, description="Only tracked for mirroring NPCs")


class CurieState(BaseModel):
    """The entity beneath the settlement."""

    activity: float = Field(default=0.2, ge=0.0, le=1.0)
    coherence: float = Field(default=0.3, ge=0.0, le=1.0)
    player_attunement: float = Field(default=0.0, ge=0.0, le=1.0)
    resonance: dict[str, float] = Field(
        default_factory=dict, description="npc_id -> affinity in [0, 1]"
    )
    last_pattern_seek: datetime | None = Field(default=None, description="Last manifestation time")
    manifestations: int = Field(default=0, ge=0)


class EnvironmentState(BaseModel):
    """Weather, hum and tremors."""

    weather: str = Field(default="still")
    hum_intensity: float = Field(default=0.2, ge=0.0)
    last_tremor: datetime | None = Field(default=None)
    tremor_count: int = Field(default=0, ge=0)


class Quest(BaseModel):
    """A spawned quest instance."""

    id: str = Field(description="Trigger id the quest was spawned from")
    archetype: str = Field(description="Quest archetype, e.g. intervention")
    context: dict[str, Any] = Field(default_factory=dict, description="Scenario details")
    stage: QuestStage = Field(default="discovered")
    started_at: datetime = Field(default_factory=datetime.now)
    day: int = Field(default=1, ge=1, description="Day the quest started")
    completed_at: datetime | None = Field(default=None)
    failed_at: datetime | None = Field(default=None)
    outcome: str | None = Field(default=None)


class QuestLog(BaseModel):
    """Quests partitioned by status. A quest lives in exactly one list."""

    active: list[Quest] = Field(default_factory=list)
    completed: list[Quest] = Field(default_factory=list)
    failed: list[Quest] = Field(default_factory=list)

    def get_active(self, quest_id: str) -> Quest | None:
        """Get an active quest by id."""
        for quest in self.active:
            if quest.id == quest_id:
                return quest
        return None

    def contains(self, quest_id: str) -> bool:
        """Check whether any list holds the quest."""
        return any(q.id == quest_id for q in self.active + self.completed + self.failed)

    def all_ids(self) -> set[str]:
        """Ids of every quest ever started."""
        return {q.id for q in self.active + self.completed + self.failed}


class EventLogEntry(BaseModel):
    """A narrative event kept in the bounded log."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)
    day: int = Field(default=1)
    act: int = Field(default=1)


class MetaInfo(BaseModel):
    """Technical metadata for the session."""

    version: str = Field(default=config.SAVE_VERSION)
    save_slot: str | None = Field(default=None)
    play_time: float = Field(default=0.0, ge=0.0, description="Accumulated seconds over all sessions")
    started_at: datetime = Field(default_factory=datetime.now, description="Start of this session")
    saved_at: datetime | None = Field(default=None)


class GameState(BaseModel):
    """Complete dynamic narrative state."""

    meta: MetaInfo = Field(default_factory=MetaInfo)
    time: TimeState = Field(default_factory=TimeState)
    narrative: NarrativeState = Field(default_factory=NarrativeState)
    player: PlayerState = Field(default_factory=PlayerState)
    npcs: dict[str, NpcState] = Field(default_factory=dict)
    curie: CurieState = Field(default_factory=CurieState)
    environment: EnvironmentState = Field(default_factory=EnvironmentState)
    flags: set[str] = Field(default_factory=set, description="Write-once narrative tokens")
    quests: QuestLog = Field(default_factory=QuestLog)
    event_log: list[EventLogEntry] = Field(default_factory=list)

    @classmethod
    def initialize_from_rules(cls, rules: NarrativeRules, started_at: datetime | None = None) -> "GameState":
        """Create the opening state from the rule tables."""
        npcs = {}
        resonance = {}
        for npc_id, npc_def in rules.npcs.items():
            npcs[npc_id] = NpcState(
                location=npc_def.location,
                relationship=npc_def.relationship,
                stress=npc_def.stress,
                met=npc_def.met,
                conversation_count=npc_def.conversation_count,
                identity_stability=npc_def.identity_stability,
            )
            resonance[npc_id] = npc_def.resonance

        meta = MetaInfo(started_at=started_at or datetime.now())

        return cls(
            meta=meta,
            player=PlayerState(
                location=rules.starting_location_id,
                visited_locations=[rules.starting_location_id],
            ),
            npcs=npcs,
            curie=CurieState(resonance=resonance),
        )

    def model_dump(self, **kwargs) -> dict:
        """Custom serialization to handle the flag set."""
        data = super().model_dump(**kwargs)
        if "flags" in data:
            data["flags"] = sorted(data["flags"])
        return data

    def log_event(self, event_type: str, data: dict[str, Any], timestamp: datetime) -> EventLogEntry:
        """Append to the event log, dropping the oldest entries past the cap."""
        entry = EventLogEntry(
            type=event_type,
            data=data,
            timestamp=timestamp,
            day=self.time.day,
            act=self.narrative.current_act,
        )
        self.event_log.append(entry)
        if len(self.event_log) > config.EVENT_LOG_CAP:
            del self.event_log[: len(self.event_log) - config.EVENT_LOG_CAP]
        return entry

    def get_recent_events(self, count: int = 20) -> list[EventLogEntry]:
        """Get the most recent log entries."""
        return self.event_log[-count:]
