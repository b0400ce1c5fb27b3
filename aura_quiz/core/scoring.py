"""Point rules for single answers and the aura bucket classifier."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

from aura_quiz.constants.scoring_constants import (
    BUCKET_THRESHOLDS_PERCENT,
    CELEBRATION_THRESHOLD_POINTS,
    DEFAULT_MAX_POINTS,
    MAX_POINTS_PER_QUESTION,
    NUMERIC_MAX_POINTS,
    NUMERIC_SCALE_MAX,
    NUMERIC_SCALE_MIN,
    RANK_POINTS,
)
from aura_quiz.core.models import ScoringKey


class AuraBucket(str, Enum):
    """Categorical aura labels, best first."""

    VISIONARY = "visionary"
    INNOVATOR = "innovator"
    ACHIEVER = "achiever"
    MOTIVATOR = "motivator"
    SUPPORTER = "supporter"
    GUARDIAN = "guardian"

    @property
    def color(self) -> str:
        return _BUCKET_COLORS[self]


_BUCKET_COLORS = {
    AuraBucket.VISIONARY: "#800080",
    AuraBucket.INNOVATOR: "#0000FF",
    AuraBucket.ACHIEVER: "#00FF00",
    AuraBucket.MOTIVATOR: "#FFFF00",
    AuraBucket.SUPPORTER: "#FFA500",
    AuraBucket.GUARDIAN: "#FF0000",
}

BUCKET_ORDER: tuple[AuraBucket, ...] = tuple(AuraBucket)


def points_for_rank(position: int) -> int:
    """Points for an answer at the given 1-based position of the creator's priority order."""
    if 1 <= position <= len(RANK_POINTS):
        return RANK_POINTS[position - 1]
    return 0


def points_for_numeric(answer: float, max_points: int = NUMERIC_MAX_POINTS) -> float:
    """Scale a 0-5 answer linearly onto ``[0, max_points]``. Out-of-range answers are clamped."""
    clamped = min(max(float(answer), NUMERIC_SCALE_MIN), NUMERIC_SCALE_MAX)
    return clamped * max_points / NUMERIC_SCALE_MAX


def max_points_for(keys: Iterable[ScoringKey]) -> int:
    """Highest total a respondent can reach on a quiz with these questions."""
    return sum(MAX_POINTS_PER_QUESTION for _ in keys)


def bucket_for(total_points: float, max_points: int = DEFAULT_MAX_POINTS) -> AuraBucket:
    """Classify a total by the share of ``max_points`` it reaches.

    Each threshold is an exclusive lower bound in percent, so a total of exactly
    half the maximum lands in the second bucket.
    """
    if max_points <= 0:
        return AuraBucket.GUARDIAN
    percent = 100 * total_points / max_points
    for bucket, threshold in zip(BUCKET_ORDER, BUCKET_THRESHOLDS_PERCENT):
        if percent > threshold:
            return bucket
    return AuraBucket.GUARDIAN


def is_celebration_score(total_points: int) -> bool:
    return total_points >= CELEBRATION_THRESHOLD_POINTS
