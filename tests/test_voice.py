"""Tests for dominant-voice ranking and ending paths."""

import pytest

from ashfall.engine import BALANCED, ending_path_for, get_dominant_voice


def scores(**kwargs):
    base = {"LOGIC": 0, "INSTINCT": 0, "EMPATHY": 0, "GHOST": 0}
    base.update(kwargs)
    return base


class TestDominantVoice:
    def test_all_zero_is_balanced(self):
        result = get_dominant_voice(scores())
        assert result.voice == BALANCED
        assert result.confidence == "low"
        assert result.is_balanced

    def test_gap_below_five_is_balanced(self):
        result = get_dominant_voice(scores(LOGIC=4))
        assert result.is_balanced
        assert result.gap == 4

    def test_gap_of_five_is_medium(self):
        result = get_dominant_voice(scores(LOGIC=5))
        assert result.voice == "LOGIC"
        assert result.confidence == "medium"

    def test_gap_of_fifteen_is_still_medium(self):
        assert get_dominant_voice(scores(GHOST=15)).confidence == "medium"

    def test_gap_above_fifteen_is_high(self):
        result = get_dominant_voice(scores(GHOST=16))
        assert result.voice == "GHOST"
        assert result.confidence == "high"
        assert result.score == 16

    def test_close_runner_up_is_balanced(self):
        assert get_dominant_voice(scores(LOGIC=10, INSTINCT=8)).is_balanced

    def test_clear_lead_is_high(self):
        result = get_dominant_voice(scores(LOGIC=20))
        assert (result.voice, result.confidence) == ("LOGIC", "high")

    def test_gap_measured_against_runner_up(self):
        result = get_dominant_voice(scores(EMPATHY=20, INSTINCT=17))
        assert result.is_balanced
        assert result.score == 20

    def test_tie_at_top_is_balanced(self):
        assert get_dominant_voice(scores(LOGIC=10, EMPATHY=10)).is_balanced

    def test_missing_voices_count_as_zero(self):
        assert get_dominant_voice({"INSTINCT": 7}).voice == "INSTINCT"

    def test_negative_scores(self):
        result = get_dominant_voice(scores(LOGIC=-10, INSTINCT=-10, EMPATHY=-10))
        assert result.voice == "GHOST"
        assert result.gap == 10


class TestEndingPath:
    @pytest.mark.parametrize(
        "voice,path",
        [
            ("LOGIC", "stability"),
            ("INSTINCT", "escalation"),
            ("EMPATHY", "humanized"),
            ("GHOST", "transcendence"),
            (BALANCED, "balanced"),
        ],
    )
    def test_mapping(self, voice, path):
        assert ending_path_for(voice) == path

    def test_unknown_voice_falls_back_to_balanced(self):
        assert ending_path_for("WHIMSY") == "balanced"
