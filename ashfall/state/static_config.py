"""Static rule tables: world layout, NPC arcs, quest triggers and choice pools."""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ..data_loader import DATA_DIR, load_json


class LocationDef(BaseModel):
    """A location in the settlement."""

    id: str = Field(description="Unique identifier")
    name: str = Field(description="Display name")
    proximity: float = Field(default=0.2, ge=0.0, le=1.0, description="Closeness to the sealed shaft")
    connections: list[str] = Field(default_factory=list, description="Adjacent location ids")
    first_visit_flags: list[str] = Field(default_factory=list, description="Flags set on the first visit")
    first_visit_activity: float = Field(default=0.0, description="Curie activity bump on the first visit")
    first_visit_resonance: dict[str, float] = Field(
        default_factory=dict, description="npc_id -> resonance bump on the first visit"
    )


class NpcDef(BaseModel):
    """Opening values for one NPC."""

    id: str = Field(description="Unique identifier")
    name: str = Field(description="Display name")
    role: str = Field(default="resident", description="Narrative role: leader, healer, threat, keeper, mirror")
    location: str = Field(description="Starting location id")
    relationship: int = Field(default=50)
    stress: int = Field(default=40)
    met: bool = Field(default=False)
    conversation_count: int = Field(default=0)
    resonance: float = Field(default=0.0, ge=0.0, le=1.0, description="Starting Curie resonance")
    identity_stability: int | None = Field(default=None)


class GateRequirement(BaseModel):
    """Minimums that must all hold before a gate can open."""

    relationship: int | None = None
    tension: int | None = None
    act: int | None = None
    flags: list[str] = Field(default_factory=list)
    curie_activity: float | None = None
    conversation_count: int | None = None
    voice_determined: bool = Field(default=False, description="Player must have a non-balanced dominant voice")


class GateDef(BaseModel):
    """One revelation gate in an NPC's arc."""

    gate: int = Field(ge=1, le=4)
    name: str
    description: str = Field(default="", description="What the NPC may reveal at this gate")
    requires: GateRequirement = Field(default_factory=GateRequirement)


class NpcArc(BaseModel):
    """The ordered gates of an NPC."""

    npc_id: str
    opening_name: str = Field(default="Guarded", description="Name of gate 0")
    opening_description: str = Field(default="Nothing personal")
    gates: list[GateDef] = Field(default_factory=list)

    def get_gate(self, gate: int) -> GateDef | None:
        """Get a gate definition by number."""
        for g in self.gates:
            if g.gate == gate:
                return g
        return None

    def gate_name(self, gate: int) -> str | None:
        """Name of a gate, including the opening gate 0."""
        if gate == 0:
            return self.opening_name
        gate_def = self.get_gate(gate)
        return gate_def.name if gate_def else None

    def gate_description(self, gate: int) -> str | None:
        if gate == 0:
            return self.opening_description
        gate_def = self.get_gate(gate)
        return gate_def.description if gate_def else None


class ResonanceCondition(BaseModel):
    """Minimum Curie resonance for a specific NPC."""

    npc: str
    min: float


class TriggerConditions(BaseModel):
    """Conjunction of typed predicates over the narrative state."""

    npc: str | None = None
    conversation_count_min: int | None = None
    stress_min: int | None = None
    relationship_min: int | None = None
    gate_min: int | None = None
    location: str | None = None
    day_min: int | None = None
    time_of_day: str | None = None
    tension_min: int | None = None
    act_min: int | None = None
    flags: list[str] = Field(default_factory=list)
    curie_activity_min: float | None = None
    curie_resonance: ResonanceCondition | None = None


class QuestTrigger(BaseModel):
    """Declarative rule that spawns a quest when its conditions hold."""

    id: str = Field(description="Unique trigger id, reused as the quest id")
    archetype: str = Field(description="Quest archetype to instantiate")
    conditions: TriggerConditions = Field(default_factory=TriggerConditions)
    context: dict[str, Any] = Field(default_factory=dict, description="Scenario handed to the quest")
    once: bool = Field(default=True)


class ChoiceDef(BaseModel):
    """A dialogue option and the effects of picking it."""

    id: str
    text: str
    category: str = Field(default="story", description="story, relationship, situational, voice, quest, leave")
    voice_tag: str | None = None
    priority: int | None = None

    # Eligibility
    require_gate: int | None = None
    require_flags: list[str] = Field(default_factory=list)
    exclude_flags: list[str] = Field(default_factory=list)
    min_relationship: int | None = None
    max_relationship: int | None = None
    min_tension: int | None = None
    max_tension: int | None = None
    time_of_day: str | None = None
    location: str | None = None
    npc: str | None = None
    stage: str | None = None

    # Effects
    set_flags: list[str] = Field(default_factory=list)
    relationship_change: int = 0
    tension_change: int = 0
    curie_activity_change: float = 0.0

    # Filled in by the selector
    quest_id: str | None = None
    is_dominant_voice: bool = False


class ChoicePool(BaseModel):
    """Per-NPC choices by category."""

    story: list[ChoiceDef] = Field(default_factory=list)
    relationship: list[ChoiceDef] = Field(default_factory=list)
    situational: list[ChoiceDef] = Field(default_factory=list)


class NarrativeRules(BaseModel):
    """Complete static rule configuration."""

    starting_location_id: str = Field(default="gate")
    locations: dict[str, LocationDef] = Field(default_factory=dict)
    npcs: dict[str, NpcDef] = Field(default_factory=dict)
    arcs: dict[str, NpcArc] = Field(default_factory=dict)
    quest_triggers: list[QuestTrigger] = Field(default_factory=list)
    choice_pools: dict[str, ChoicePool] = Field(default_factory=dict)
    voice_choices: dict[str, dict[str, ChoiceDef]] = Field(default_factory=dict)
    quest_choices: dict[str, list[ChoiceDef]] = Field(default_factory=dict)

    @classmethod
    def load_from_directory(cls, config_dir: str | Path) -> "NarrativeRules":
        """Load the rule tables from JSON files in a directory."""
        config_dir = Path(config_dir)

        data: dict[str, Any] = {}

        world_file = config_dir / "world.json"
        if world_file.exists():
            world = load_json(world_file)
            data["starting_location_id"] = world.get("starting_location_id", "gate")
            data["locations"] = {loc["id"]: loc for loc in world.get("locations", [])}
            data["npcs"] = {npc["id"]: npc for npc in world.get("npcs", [])}

        gates_file = config_dir / "gates.json"
        if gates_file.exists():
            data["arcs"] = {arc["npc_id"]: arc for arc in load_json(gates_file).get("arcs", [])}

        triggers_file = config_dir / "quest_triggers.json"
        if triggers_file.exists():
            data["quest_triggers"] = load_json(triggers_file).get("triggers", [])

        choices_file = config_dir / "choice_pools.json"
        if choices_file.exists():
            data["choice_pools"] = load_json(choices_file).get("pools", {})

        voice_file = config_dir / "voice_choices.json"
        if voice_file.exists():
            data["voice_choices"] = load_json(voice_file).get("voices", {})

        quest_choices_file = config_dir / "quest_choices.json"
        if quest_choices_file.exists():
            data["quest_choices"] = load_json(quest_choices_file).get("archetypes", {})

        return cls.model_validate(data)

    @classmethod
    def default(cls) -> "NarrativeRules":
        """Load the rule tables shipped with the package."""
        return cls.load_from_directory(DATA_DIR)

    def get_location(self, location_id: str) -> LocationDef | None:
        """Get a location by its ID."""
        return self.locations.get(location_id)

    def get_npc(self, npc_id: str) -> NpcDef | None:
        """Get an NPC definition by its ID."""
        return self.npcs.get(npc_id)

    def get_arc(self, npc_id: str) -> NpcArc | None:
        """Get the gate arc of an NPC."""
        return self.arcs.get(npc_id)

    def get_gate(self, npc_id: str, gate: int) -> GateDef | None:
        """Get one gate of an NPC's arc."""
        arc = self.get_arc(npc_id)
        return arc.get_gate(gate) if arc else None
