"""Point values and thresholds used when scoring responses."""

# 1-based priority position -> points. Positions past the table score zero.
RANK_POINTS: tuple[int, ...] = (10000, 6000, 3000)

NUMERIC_SCALE_MIN: float = 0.0
NUMERIC_SCALE_MAX: float = 5.0
NUMERIC_MAX_POINTS: int = 10000

# Best possible contribution of a single question of either type.
MAX_POINTS_PER_QUESTION: int = 10000
DEFAULT_MAX_POINTS: int = 10 * MAX_POINTS_PER_QUESTION

# Percent-of-maximum lower bounds (exclusive), best bucket first.
BUCKET_THRESHOLDS_PERCENT: tuple[int, ...] = (50, 40, 30, 20, 10)

CELEBRATION_THRESHOLD_POINTS: int = 75000
