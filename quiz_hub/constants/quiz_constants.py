"""Quiz-related constants shared across the core and server layers."""

SESSION_TTL_SECONDS: int = 60 * 60
SWEEP_INTERVAL_SECONDS: int = 60 * 60
POINTS_PER_CORRECT_ANSWER: int = 10
TIME_BONUS_WINDOW_SECONDS: int = 300
PERCENTAGE_BONUS_WINDOW_SECONDS: int = 600
STORE_UPDATE_ATTEMPTS: int = 3
DEFAULT_QUESTION_COUNT: int = 5
MAX_QUESTION_COUNT: int = 50
