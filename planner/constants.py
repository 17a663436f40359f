"""Fixed option sets shared by validation, derivation and the CLI"""

# Python's date.weekday() order: Monday == 0
DAY_NAMES = (
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
)

# Relative-to-today offsets, then relative-to-exam offsets
WHEN_TO_START_OPTIONS = (
    "tomorrow",
    "in_2_days",
    "in_3_days",
    "next_week",
    "the_week_before",
    "2_weeks_before",
    "3_weeks_before",
    "4_weeks_before",
)

SESSION_LENGTH_OPTIONS = (30, 45, 60, 90, 120)

PLACEMENT_TIMEOUT_SECONDS = 30.0
