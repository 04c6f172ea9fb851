"""Centralized constants for sectionsr.

All magic numbers and scheduling defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Ratings & phases ----------
REVIEW_RATINGS = ("again", "hard", "good", "easy")
RETIRE_RATING = "retire"
ALL_RATINGS = REVIEW_RATINGS + (RETIRE_RATING,)

PHASES = ("new", "learning", "review", "relearning", "suspended")

# ---------- Persistence ----------
SR_VERSION = 2

# "Never due" / infinite interval (largest integer a JSON number holds exactly)
NEVER_DUE = 2**53 - 1

MS_PER_MINUTE = 60 * 1000

# ---------- Review steps (minutes) ----------
DEFAULT_AGAIN = 10
DEFAULT_HARD = 60
DEFAULT_GOOD = 720
DEFAULT_EASY = 2160
DEFAULT_LEARNING_STEPS = (10, 60)
DEFAULT_RELEARNING_STEPS = (10,)
DEFAULT_GRADUATING_GOOD = 1440
DEFAULT_GRADUATING_EASY = 2880

# ---------- Ease & multipliers ----------
DEFAULT_STARTING_EASE = 2.5
DEFAULT_MINIMUM_EASE = 1.3
EASE_FLOOR = 0.5
DEFAULT_EASE_BONUS = 0.15
DEFAULT_EASE_PENALTY = 0.2
DEFAULT_HARD_EASE_PENALTY = 0.05
DEFAULT_HARD_INTERVAL_MULTIPLIER = 1.2
DEFAULT_EASY_INTERVAL_BONUS = 1.5
DEFAULT_INTERVAL_MODIFIER = 1.0
DEFAULT_LAPSE_INTERVAL_MULTIPLIER = 0.5

# ---------- Lecture scope ----------
UNASSIGNED_LECTURE_TOKEN = "__unassigned|__none"

# ---------- Queues ----------
DEFAULT_UPCOMING_LIMIT = 50
REVIEW_ORDER_CATEGORIES = ("review", "learning", "new")
