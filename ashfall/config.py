"""Central configuration for all narrative rule constants.

All thresholds, clamp bounds, caps and probabilities are defined here.
"""

# =============================================================================
# Scalar Bounds
# =============================================================================
RELATIONSHIP_MIN = 0
RELATIONSHIP_MAX = 100
STRESS_MIN = 0
STRESS_MAX = 100
TENSION_MIN = 0
TENSION_MAX = 100
MAX_GATE = 4

# =============================================================================
# Event Noise Thresholds
# =============================================================================
STRESS_EVENT_THRESHOLD = 5  # |delta| must exceed this to emit
TENSION_EVENT_THRESHOLD = 3
STRESS_CHECK_LEVEL = 80
STRESS_CRITICAL_LEVEL = 90

# =============================================================================
# Act Transitions
# =============================================================================
ACT1_TO_2_TENSION = 35
ACT2_TO_3_TENSION = 70
ACT2_ENTRY_TENSION_BONUS = 15
ACT3_ENTRY_TENSION_BONUS = 20
FINAL_ACT = 3

# =============================================================================
# Voices & Endings
# =============================================================================
VOICES = ("LOGIC", "INSTINCT", "EMPATHY", "GHOST")
BALANCED_GAP = 5  # top - second below this is BALANCED
HIGH_CONFIDENCE_GAP = 15  # top - second above this is high confidence
ENDING_PATHS = {
    "LOGIC": "stability",
    "INSTINCT": "escalation",
    "EMPATHY": "humanized",
    "GHOST": "transcendence",
    "BALANCED": "balanced",
}

# =============================================================================
# Curie & Environment
# =============================================================================
TREMOR_ACTIVITY = {"light": 0.05, "medium": 0.1, "heavy": 0.2}
TREMOR_TENSION = 5
MANIFESTATION_ACTIVITY = 0.7
MANIFESTATION_CHANCE = 0.3
MANIFESTATION_TENSION = 5
HUM_BASE = 0.1
HUM_ACTIVITY_WEIGHT = 0.5
HUM_PROXIMITY_WEIGHT = 0.3
DEFAULT_PROXIMITY = 0.2
WEATHER_TYPES = ("still", "wind", "fog", "ashfall_heavy")
WEATHER_CHANGE_CHANCE = 0.2

# =============================================================================
# Time
# =============================================================================
HOURS_PER_DAY = 24
DAILY_TENSION = 2
TIME_STRESS_RELIEF = -1

# =============================================================================
# Logs & History
# =============================================================================
EVENT_LOG_CAP = 500
EVENT_HISTORY_CAP = 100

# =============================================================================
# Choices
# =============================================================================
MAX_CHOICES = 4
SECONDARY_VOICE_MIN_SCORE = 3
STORY_PRIORITY = 10
RELATIONSHIP_PRIORITY = 5
SITUATIONAL_PRIORITY = 3
DOMINANT_VOICE_PRIORITY = 8
SECONDARY_VOICE_PRIORITY = 2
QUEST_PRIORITY = 7
LEAVE_PRIORITY = -1

# =============================================================================
# Save Files
# =============================================================================
SAVE_VERSION = "0.1.0"
SAVE_FILE_PREFIX = "ashfall_"
SAVE_SLOTS = ("autosave", "quicksave", "manual_1", "manual_2", "manual_3")
SAVES_DIR = "saves"
LOGS_DIR = "logs"
