"""Quiz authoring limits shared across the core and API layers."""

MAX_ACTIVE_FIXED_QUESTIONS: int = 7
MAX_ACTIVE_CUSTOM_QUESTIONS: int = 10
RANKED_OPTION_COUNT: int = 4

LEADERBOARD_DEFAULT_LIMIT: int = 5
RECENT_ACTIVITY_WINDOW_HOURS: int = 24
SCRATCH_KEY_TEMPLATE: str = "quiz_answers_{quiz_id}"
