"""Turns one respondent's answers into an aura points total."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import math

from aura_quiz.core.models import QuestionType, ScoringKey
from aura_quiz.core.scoring import points_for_numeric, points_for_rank


def score_answers(keys: Sequence[ScoringKey], answers: Mapping[str, object]) -> int:
    """Sum every question's contribution and round the total half up to an integer.

    Missing or malformed answers contribute zero, so this is safe to call on a
    partially answered quiz.
    """
    if not isinstance(answers, Mapping):
        answers = {}
    total = sum(question_contribution(key, answers.get(key.question_id)) for key in keys)
    return math.floor(total + 0.5)


def question_contribution(key: ScoringKey, answer: object) -> float:
    """Points a single answer earns for its question."""
    if answer is None:
        return 0
    if key.question_type is QuestionType.RANKED:
        return _ranked_contribution(key.priority_order, answer)
    value = coerce_scale_answer(answer)
    if value is None:
        return 0
    return points_for_numeric(value)


def coerce_scale_answer(answer: object) -> float | None:
    """Return ``answer`` as a finite float, or None when it is not a usable number."""
    if isinstance(answer, bool):
        return None
    if isinstance(answer, (int, float)):
        value = float(answer)
    elif isinstance(answer, str):
        try:
            value = float(answer.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(value):
        return None
    return value


def _ranked_contribution(priority_order: Sequence[str], answer: object) -> int:
    if not isinstance(answer, str) or answer not in priority_order:
        return 0
    return points_for_rank(list(priority_order).index(answer) + 1)
