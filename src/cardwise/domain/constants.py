"""Centralized constants for the cardwise application.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Difficulty Classifier ----------
HISTORY_WINDOW = 10  # Most recent attempts per card that count toward difficulty
SLOW_RESPONSE_MS = 10_000  # Answers at or above this are maximally slow
ACCURACY_WEIGHT = 0.9
SPEED_WEIGHT = 0.1
ACCURACY_FACTORS = {
    "incorrect": 1.0,
    "unsure": 0.5,
    "correct": 0.0,
}
NEW_CARD_DIFFICULTY = 1.0

# ---------- Labels ----------
PROFICIENT_MAX_DIFFICULTY = 0.1
FAMILIAR_MAX_DIFFICULTY = 0.3

# ---------- Selection Priority ----------
PRIORITY_DIFFICULTY_WEIGHT = 0.75
PRIORITY_RECENCY_WEIGHT = 0.25
PRIORITY_JITTER = 0.05
RECENCY_HORIZON = 20  # History entries after which recency saturates

# ---------- Chunking ----------
DEFAULT_CHUNK_SIZE = 7
MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 50
REVIEW_MISS_THRESHOLD = 1  # Review pool needs strictly more misses than this

# ---------- Rigor Presets ----------
# (mastery_target, difficulty_threshold, difficulty_weight, attempt_weight)
RIGOR_PRESETS = {
    "relaxed": (1, 0.2, 0.6, 0.4),
    "balanced": (2, 0.1, 0.7, 0.3),
    "intense": (3, 0.08, 0.8, 0.2),
}
DEFAULT_RIGOR = "balanced"

# ---------- Short Answer Matching ----------
EDIT_TOLERANCE_RATIO = 0.15
WORD_OVERLAP_RATIO = 0.7
GUESS_LENGTH_RATIO = 0.6
KEY_WORD_MIN_LENGTH = 4

# ---------- Multiple Choice ----------
MAX_CHOICES = 4
