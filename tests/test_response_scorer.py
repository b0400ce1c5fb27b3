from __future__ import annotations

import itertools

import pytest

from aura_quiz.core.models import QuestionType, ScoringKey
from aura_quiz.core.response_scorer import (
    coerce_scale_answer,
    question_contribution,
    score_answers,
)

RANKED = ScoringKey("ranked", QuestionType.RANKED, ("X", "Y", "Z", "W"))
SCALE = ScoringKey("scale", QuestionType.SCALE)


def test_end_to_end_example_total():
    assert score_answers([RANKED, SCALE], {"ranked": "X", "scale": 4}) == 18000


@pytest.mark.parametrize(("label", "points"), [("X", 10000), ("Y", 6000), ("Z", 3000), ("W", 0)])
def test_ranked_answer_uses_priority_position(label, points):
    assert score_answers([RANKED], {"ranked": label}) == points


def test_missing_and_unknown_answers_score_zero():
    assert score_answers([RANKED, SCALE], {}) == 0
    assert score_answers([RANKED], {"ranked": "not-an-option"}) == 0
    assert score_answers([RANKED], {"ranked": 3}) == 0
    assert score_answers([SCALE], {"scale": "lots"}) == 0
    assert score_answers([SCALE], {"scale": True}) == 0
    assert score_answers([SCALE], {"scale": float("nan")}) == 0


def test_non_mapping_answers_are_treated_as_empty():
    assert score_answers([RANKED, SCALE], ["X", 4]) == 0


def test_numeric_strings_are_accepted_for_scale_questions():
    assert score_answers([SCALE], {"scale": "2.5"}) == 5000


def test_ranked_question_without_priority_order_scores_zero():
    key = ScoringKey("ranked", QuestionType.RANKED, ())
    assert score_answers([key], {"ranked": "X"}) == 0


def test_total_is_rounded_once_not_per_question():
    # Each answer is worth half a point; rounding each would give 2, not 1.
    first = ScoringKey("a", QuestionType.SCALE)
    second = ScoringKey("b", QuestionType.SCALE)
    answers = {"a": 0.00025, "b": 0.00025}
    assert question_contribution(first, 0.00025) == pytest.approx(0.5)
    assert score_answers([first, second], answers) == 1


def test_total_equals_sum_of_independent_contributions():
    keys = [RANKED, SCALE, ScoringKey("other", QuestionType.RANKED, ("A", "B", "C", "D"))]
    for ranked, scale, other in itertools.product(["X", "Y", "W", None], [0, 3, 5, None], ["A", "D"]):
        answers = {"ranked": ranked, "scale": scale, "other": other}
        expected = sum(question_contribution(key, answers[key.question_id]) for key in keys)
        total = score_answers(keys, answers)
        assert total == int(expected)
        assert total >= 0


def test_scoring_is_repeatable():
    answers = {"ranked": "Y", "scale": 3}
    assert score_answers([RANKED, SCALE], answers) == score_answers([RANKED, SCALE], answers)


def test_coerce_scale_answer():
    assert coerce_scale_answer(3) == 3.0
    assert coerce_scale_answer(" 4 ") == 4.0
    assert coerce_scale_answer(None) is None
    assert coerce_scale_answer(False) is None
    assert coerce_scale_answer(float("inf")) is None
    assert coerce_scale_answer({"value": 3}) is None
