"""Dominant-voice and ending-path rules.

Both the rule engine and the choice selector use these functions, so there
is a single set of thresholds (see ``config.BALANCED_GAP`` and
``config.HIGH_CONFIDENCE_GAP``).
"""

from typing import Literal, Mapping

from pydantic import BaseModel, Field

from .. import config

Confidence = Literal["low", "medium", "high"]

BALANCED = "BALANCED"


class DominantVoice(BaseModel):
    """Result of ranking the player's voice scores."""

    voice: str = Field(description="Leading voice, or BALANCED")
    confidence: Confidence
    score: int = Field(default=0, description="Score of the leading voice")
    gap: int = Field(default=0, description="Lead over the runner-up")

    @property
    def is_balanced(self) -> bool:
        return self.voice == BALANCED


def get_dominant_voice(voice_scores: Mapping[str, int]) -> DominantVoice:
    """Rank voice scores and classify the lead.

    A lead under ``BALANCED_GAP`` is BALANCED with low confidence, a lead
    above ``HIGH_CONFIDENCE_GAP`` is high confidence, anything else is
    medium. Ties keep the canonical voice order.
    """
    scores = {voice: int(voice_scores.get(voice, 0)) for voice in config.VOICES}
    ranked = sorted(scores.items(), key=lambda item: -item[1])

    top_voice, top_score = ranked[0]
    second_score = ranked[1][1]
    gap = top_score - second_score

    if gap < config.BALANCED_GAP:
        return DominantVoice(voice=BALANCED, confidence="low", score=top_score, gap=gap)

    confidence: Confidence = "high" if gap > config.HIGH_CONFIDENCE_GAP else "medium"
    return DominantVoice(voice=top_voice, confidence=confidence, score=top_score, gap=gap)


def ending_path_for(voice: str) -> str:
    """Map a dominant voice onto its ending path."""
    return config.ENDING_PATHS.get(voice, config.ENDING_PATHS[BALANCED])
