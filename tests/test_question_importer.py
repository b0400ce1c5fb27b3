from __future__ import annotations

import pytest

from aura_quiz.core.models import QuestionType
from aura_quiz.core.question_importer import (
    QuestionImportError,
    load_question_drafts,
    parse_question_text,
)
from aura_quiz.utils.settings import DEFAULT_SEED_FILE

SAMPLE = """
Q: Pick your ideal weekend
FIXED: YES
A: Hiking
B: Gaming
C: Brunch
D: Sleeping
   in

---
Q: How spontaneous are you?
   Answer from 0 to 5.
TYPE: scale
"""


def test_parse_question_text():
    ranked, scale = parse_question_text(SAMPLE)
    assert ranked.text == "Pick your ideal weekend"
    assert ranked.question_type is QuestionType.RANKED
    assert ranked.is_fixed is True
    assert ranked.options == ("Hiking", "Gaming", "Brunch", "Sleeping in")
    assert scale.text == "How spontaneous are you?\nAnswer from 0 to 5."
    assert scale.question_type is QuestionType.SCALE
    assert scale.is_fixed is False
    assert scale.options == ()


@pytest.mark.parametrize(
    "text",
    [
        "Q: Missing options\nA: One\nB: Two",
        "Q: Scale with options\nTYPE: SCALE\nA: One",
        "Q: Bad type\nTYPE: SLIDER",
        "Q: Bad flag\nFIXED: MAYBE",
        "stray text",
    ],
)
def test_parse_errors(text):
    with pytest.raises(QuestionImportError):
        parse_question_text(text)


def test_load_question_drafts_rejects_empty_files(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("\n\n", encoding="utf-8")
    with pytest.raises(QuestionImportError):
        load_question_drafts(path)


def test_bundled_seed_file_parses():
    drafts = load_question_drafts(DEFAULT_SEED_FILE)
    assert any(d.is_fixed for d in drafts)
    assert any(not d.is_fixed for d in drafts)
    assert {d.question_type for d in drafts} == {QuestionType.RANKED, QuestionType.SCALE}
