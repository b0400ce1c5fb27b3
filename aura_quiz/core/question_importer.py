"""Utilities for seeding the question bank from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown). Additional lines until the
       next marker are treated as part of the question.
    TYPE: RANKED|SCALE   (optional, defaults to RANKED)
    FIXED: YES|NO        (optional, defaults to NO)
    A: First option text
    B: Second option text
    C: Third option text
    D: Fourth option text

Ranked questions need all four options; scale questions take none.

Example:

    Q: Pick your ideal weekend
    FIXED: YES
    A: Hiking
    B: Gaming
    C: Brunch
    D: Sleeping in

    Q: How spontaneous are you, from 0 to 5?
    TYPE: SCALE
    FIXED: YES
"""

from __future__ import annotations

from pathlib import Path

from aura_quiz.core.models import QuestionType
from aura_quiz.core.services.question_bank import QuestionDraft


class QuestionImportError(Exception):
    """Raised when a question bank file cannot be parsed."""


_OPTION_ORDER = ["A", "B", "C", "D"]
_TYPE_NAMES = {"RANKED": QuestionType.RANKED, "SCALE": QuestionType.SCALE}
_FLAG_VALUES = {"YES": True, "TRUE": True, "NO": False, "FALSE": False}


def load_question_drafts(file_path: Path) -> list[QuestionDraft]:
    text = file_path.read_text(encoding="utf-8")
    drafts = parse_question_text(text)
    if not drafts:
        raise QuestionImportError("Question file did not contain any questions.")
    return drafts


def parse_question_text(text: str) -> list[QuestionDraft]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [_parse_block(block) for block in blocks if block]


def _parse_block(block: str) -> QuestionDraft:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    question_type = QuestionType.RANKED
    is_fixed = False
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("TYPE:"):
            value = line.split(":", 1)[1].strip().upper()
            if value not in _TYPE_NAMES:
                raise QuestionImportError("TYPE must be RANKED or SCALE.")
            question_type = _TYPE_NAMES[value]
            current_section = None
            continue

        if upper.startswith("FIXED:"):
            value = line.split(":", 1)[1].strip().upper()
            if value not in _FLAG_VALUES:
                raise QuestionImportError("FIXED must be YES or NO.")
            is_fixed = _FLAG_VALUES[value]
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in _OPTION_ORDER:
            options[current_section] = options[current_section] + f" {line}"
        else:
            raise QuestionImportError(f"Encountered text outside of a known section: '{line}'.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuestionImportError("Question text missing (Q: ...)")

    if question_type is QuestionType.SCALE:
        if options:
            raise QuestionImportError("SCALE questions cannot define options.")
        return QuestionDraft(text=question_text, question_type=question_type, is_fixed=is_fixed)

    if len(options) != len(_OPTION_ORDER):
        raise QuestionImportError("Each ranked question must define exactly four options (A-D).")
    option_list = tuple(options[letter].strip() for letter in _OPTION_ORDER)
    if any(not option for option in option_list):
        raise QuestionImportError("Option text cannot be empty.")

    return QuestionDraft(
        text=question_text,
        question_type=question_type,
        options=option_list,
        is_fixed=is_fixed,
    )
