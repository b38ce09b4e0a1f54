"""Tests for dialogue choice selection and application."""

import pytest

from ashfall.dialogue import LEAVE_CHOICE, ChoiceSelector, apply_choice
from ashfall.events import Events
from ashfall.state import ChoiceDef, GameState, NarrativeRules
from ashfall.state.static_config import ChoicePool, NpcDef


@pytest.fixture
def selector(rules):
    return ChoiceSelector(rules)


def ids(choices):
    return [c.id for c in choices]


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

class TestSelect:
    def test_unknown_npc_gets_only_leave(self, selector, engine):
        assert selector.select("nobody", engine.state) == [LEAVE_CHOICE]

    def test_opening_choices_for_mara(self, selector, engine):
        choices = selector.select("mara", engine.state)
        assert ids(choices) == [
            "mara_settlement_intro",
            "mara_supplies_status",
            "mara_respect",
            "mara_help_offer",
            "leave",
        ]
        assert choices[0].category == "story"
        assert choices[0].priority == 10
        assert choices[2].category == "relationship"

    @pytest.mark.parametrize("npc_id", ["mara", "jonas", "rask", "edda", "kale"])
    def test_leave_always_last(self, selector, engine, npc_id):
        engine.adjust_voice_score("GHOST", 20)
        engine.set_flag("recent_tremor")
        engine.start_quest("q1", "intervention")

        choices = selector.select(npc_id, engine.state)

        assert choices[-1].id == "leave"
        assert 1 < len(choices) <= selector.max_choices + 1
        assert len(set(ids(choices))) == len(choices)

    def test_sorted_by_priority(self, selector, engine):
        engine.set_flag("recent_tremor")
        engine.adjust_voice_score("GHOST", 10)
        priorities = [c.priority for c in selector.select("mara", engine.state)[:-1]]
        assert priorities == sorted(priorities, reverse=True)

    def test_select_does_not_mutate_state(self, selector, engine):
        before = engine.export_state()
        selector.select("edda", engine.state)
        assert engine.export_state() == before

    def test_max_choices_configurable(self, rules, engine):
        choices = ChoiceSelector(rules, max_choices=2).select("mara", engine.state)
        assert ids(choices) == ["mara_settlement_intro", "mara_supplies_status", "leave"]

    def test_zero_max_choices_offers_only_leave(self, rules, engine):
        assert ChoiceSelector(rules, max_choices=0).select("mara", engine.state) == [LEAVE_CHOICE]

    def test_one_max_choice(self, rules, engine):
        assert ids(ChoiceSelector(rules, max_choices=1).select("mara", engine.state)) == [
            "mara_settlement_intro",
            "leave",
        ]


class TestPools:
    def test_exclude_flags(self, selector, engine):
        engine.set_flag("mara_explained_settlement")
        assert "mara_settlement_intro" not in ids(selector.story_choices("mara", engine.state))

    def test_gate_requirement(self, selector, engine):
        assert "mara_old_world" not in ids(selector.story_choices("mara", engine.state))

        engine.unlock_gate("mara")
        story = {c.id: c for c in selector.story_choices("mara", engine.state)}
        assert story["mara_old_world"].priority == 8

    def test_require_flags(self, selector, engine):
        for _ in range(2):
            engine.unlock_gate("mara")
        assert "mara_the_23" not in ids(selector.story_choices("mara", engine.state))

        engine.set_flag("23_mentioned")
        assert "mara_the_23" in ids(selector.story_choices("mara", engine.state))

    def test_relationship_bounds(self, selector, engine):
        assert "mara_burden" not in ids(selector.relationship_choices("mara", engine.state))
        engine.adjust_relationship("mara", 10)
        assert "mara_burden" in ids(selector.relationship_choices("mara", engine.state))

    def test_situational_flag(self, selector, engine):
        assert selector.situational_choices("mara", engine.state) == []
        engine.trigger_tremor("light")

        situational = selector.situational_choices("mara", engine.state)
        assert ids(situational) == ["mara_tremor_concern"]
        assert situational[0].priority == 7

    def test_situational_time_of_day(self, selector, engine):
        engine.advance_time(14)
        assert engine.state.time.time_of_day == "night"
        assert "mara_night_watch" in ids(selector.situational_choices("mara", engine.state))

    def test_situational_tension(self, selector, engine):
        engine.adjust_tension(50)
        assert "mara_high_tension" in ids(selector.situational_choices("mara", engine.state))

    def test_no_voice_choice_when_balanced(self, selector, engine):
        assert selector.voice_choices("mara", engine.state) == []

    def test_dominant_voice_choice(self, selector, engine):
        engine.adjust_voice_score("GHOST", 10)

        choices = selector.select("mara", engine.state)

        assert ids(choices) == [
            "mara_settlement_intro",
            "mara_supplies_status",
            "mara_voice_ghost",
            "mara_respect",
            "leave",
        ]
        voice = choices[2]
        assert voice.is_dominant_voice
        assert voice.voice_tag == "GHOST"
        assert voice.priority == 8

    def test_secondary_voice_choice(self, selector, engine):
        engine.adjust_voice_score("LOGIC", 12)
        engine.adjust_voice_score("EMPATHY", 4)

        choices = selector.voice_choices("mara", engine.state)

        assert ids(choices) == ["mara_voice_logic", "mara_voice_empathy"]
        assert [c.priority for c in choices] == [8, 2]
        assert [c.is_dominant_voice for c in choices] == [True, False]

    def test_secondary_voice_needs_score_above_three(self, selector, engine):
        engine.adjust_voice_score("LOGIC", 12)
        engine.adjust_voice_score("EMPATHY", 3)
        assert ids(selector.voice_choices("mara", engine.state)) == ["mara_voice_logic"]

    def test_quest_choices_follow_stage(self, selector, engine):
        engine.start_quest("jonas_intervention_1", "intervention")

        choices = selector.quest_choices("mara", engine.state)
        assert ids(choices) == ["intervention_ask", "intervention_help"]
        assert [c.priority for c in choices] == [8, 7]
        assert {c.quest_id for c in choices} == {"jonas_intervention_1"}
        assert {c.category for c in choices} == {"quest"}

        engine.advance_quest_stage("jonas_intervention_1", "investigating")
        assert ids(selector.quest_choices("mara", engine.state)) == ["intervention_why", "intervention_solve"]

    def test_quest_choice_npc_filter(self, selector, engine):
        engine.start_quest("small_mercy_jonas", "small_mercy")
        engine.advance_quest_stage("small_mercy_jonas", "ready")

        assert selector.quest_choices("kale", engine.state) == []
        assert ids(selector.quest_choices("jonas", engine.state)) == ["mercy_accept_help"]

    def test_finished_quests_offer_nothing(self, selector, engine):
        engine.start_quest("q1", "intervention")
        engine.complete_quest("q1")
        assert selector.quest_choices("mara", engine.state) == []


class TestCustomPools:
    @pytest.fixture
    def custom_rules(self):
        story = [ChoiceDef(id=f"s{i}", text=f"story {i}") for i in range(6)]
        return NarrativeRules(
            npcs={"x": NpcDef(id="x", name="X", location="gate")},
            choice_pools={
                "x": ChoicePool(
                    story=[ChoiceDef(id="dup", text="from story"), *story],
                    relationship=[
                        ChoiceDef(id="dup", text="from relationship"),
                        ChoiceDef(id="leave", text="sneaky leave", priority=50),
                    ],
                )
            },
        )

    def test_dedupe_truncate_and_single_leave(self, custom_rules):
        state = GameState.initialize_from_rules(custom_rules)

        choices = ChoiceSelector(custom_rules).select("x", state)

        assert ids(choices) == ["dup", "s0", "s1", "s2", "leave"]
        assert choices[0].text == "from story"
        assert choices[-1] is LEAVE_CHOICE


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

class TestApplyChoice:
    def test_voice_and_relationship(self, selector, engine, recorder):
        engine.start_dialogue("mara")
        choice = next(c for c in selector.select("mara", engine.state) if c.id == "mara_respect")

        apply_choice(engine, "mara", choice)

        assert engine.get_npc("mara").relationship == 53
        assert engine.state.player.voice_scores["LOGIC"] == 1
        assert recorder.of_type(Events.VOICE_CHOICE)[0].data == {"voice": "LOGIC", "npc": "mara"}
        picked = recorder.of_type(Events.DIALOGUE_CHOICE)[0]
        assert picked.data["choice_id"] == "mara_respect"
        assert picked.data["category"] == "relationship"
        assert engine.current_dialogue_npc == "mara"

    def test_sets_flags(self, selector, engine):
        choice = selector.select("mara", engine.state)[0]
        apply_choice(engine, "mara", choice)

        assert engine.has_flag("mara_explained_settlement")
        assert "mara_settlement_intro" not in ids(selector.select("mara", engine.state))

    def test_leave_ends_dialogue(self, selector, engine, recorder):
        engine.start_dialogue("rask")
        apply_choice(engine, "rask", selector.select("rask", engine.state)[-1])

        assert engine.current_dialogue_npc is None
        assert recorder.of_type(Events.DIALOGUE_END)[0].data == {"npc": "rask"}
        assert recorder.of_type(Events.DIALOGUE_CHOICE) == []

    def test_tension_and_curie_effects(self, engine, recorder):
        choice = ChoiceDef(id="c", text="t", tension_change=5, curie_activity_change=0.05)
        apply_choice(engine, "edda", choice)

        assert engine.state.narrative.tension == 25
        assert recorder.of_type(Events.TENSION_CHANGE)[0].data["source"] == "player_choice"
        assert engine.state.curie.activity == 0.25

    def test_choice_can_target_another_npc(self, engine):
        choice = ChoiceDef(id="c", text="t", npc="jonas", relationship_change=2)
        apply_choice(engine, "kale", choice)

        assert engine.get_npc("jonas").relationship == 52
        assert engine.get_npc("kale").relationship == 50

    def test_quest_choice_reports_quest(self, selector, engine, recorder):
        engine.start_quest("q1", "intervention")
        choice = selector.quest_choices("mara", engine.state)[0]

        apply_choice(engine, "mara", choice)

        assert recorder.of_type(Events.DIALOGUE_CHOICE)[0].data["quest_id"] == "q1"
        assert engine.state.player.voice_scores["EMPATHY"] == 1
