"""Service for managing the bank of fixed and custom questions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging

from aura_quiz.constants.quiz_constants import (
    MAX_ACTIVE_CUSTOM_QUESTIONS,
    MAX_ACTIVE_FIXED_QUESTIONS,
    RANKED_OPTION_COUNT,
)
from aura_quiz.core.errors import QuestionLimitError, QuestionValidationError
from aura_quiz.core.models import Question, QuestionType
from aura_quiz.core.services.quiz_store import QuizStore

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class QuestionDraft:
    """Question content submitted by an admin, before it gets an id."""

    text: str
    question_type: QuestionType
    options: tuple[str, ...] = ()
    is_fixed: bool = False


class QuestionBank:
    """Validates and versions questions on top of a ``QuizStore``.

    Questions are never edited in place. An edit retires the current version and
    inserts a new one, so quizzes created earlier keep showing what their
    respondents saw.
    """

    def __init__(self, store: QuizStore) -> None:
        self._store = store

    def list_active(self, is_fixed: bool) -> list[Question]:
        return self._store.list_questions(is_fixed=is_fixed, active=True)

    def list_questions(
        self, is_fixed: bool | None = None, active: bool | None = None
    ) -> list[Question]:
        return self._store.list_questions(is_fixed=is_fixed, active=active)

    def get_question(self, question_id: str) -> Question | None:
        return self._store.get_question(question_id)

    def add_question(self, draft: QuestionDraft) -> Question:
        prepared = self._prepare_draft(draft)
        self._ensure_capacity(prepared.is_fixed)
        question = self._store.insert_question(
            prepared.text, prepared.question_type, prepared.options, prepared.is_fixed
        )
        logger.info("Added %s question %s", _kind(question.is_fixed), question.id)
        return question

    def edit_question(self, question_id: str, draft: QuestionDraft) -> Question:
        """Replace an active question with a new version and return the new version.

        The question stays in its fixed/custom group; ``draft.is_fixed`` is ignored.
        """
        current = self._require_question(question_id)
        if not current.active:
            raise QuestionValidationError("Only active questions can be edited.")
        prepared = self._prepare_draft(draft)
        self._store.set_question_active(current.id, False)
        replacement = self._store.insert_question(
            prepared.text,
            prepared.question_type,
            prepared.options,
            current.is_fixed,
            replaces_id=current.id,
        )
        logger.info("Question %s replaced by version %s", current.id, replacement.id)
        return replacement

    def deactivate_question(self, question_id: str) -> None:
        self._require_question(question_id)
        self._store.set_question_active(question_id, False)

    def reactivate_question(self, question_id: str) -> Question:
        question = self._require_question(question_id)
        if question.active:
            return question
        self._ensure_capacity(question.is_fixed)
        self._store.set_question_active(question_id, True)
        return self._require_question(question_id)

    def _ensure_capacity(self, is_fixed: bool) -> None:
        limit = MAX_ACTIVE_FIXED_QUESTIONS if is_fixed else MAX_ACTIVE_CUSTOM_QUESTIONS
        active_count = len(self.list_active(is_fixed))
        if active_count >= limit:
            raise QuestionLimitError(
                f"You already have {limit} active {_kind(is_fixed)} questions. "
                "Deactivate one before adding another."
            )

    def _require_question(self, question_id: str) -> Question:
        question = self._store.get_question(question_id)
        if question is None:
            raise KeyError(question_id)
        return question

    def _prepare_draft(self, draft: QuestionDraft) -> QuestionDraft:
        """Validate and normalize a draft before storage."""
        cleaned_text = draft.text.strip()
        if not cleaned_text:
            raise QuestionValidationError("Question text must not be empty.")
        question_type = QuestionType(draft.question_type)
        if question_type is QuestionType.RANKED:
            options = self._validate_options(draft.options)
        elif draft.options:
            raise QuestionValidationError("Scale questions do not take options.")
        else:
            options = ()
        return QuestionDraft(
            text=cleaned_text,
            question_type=question_type,
            options=options,
            is_fixed=draft.is_fixed,
        )

    @staticmethod
    def _validate_options(options: Sequence[str]) -> tuple[str, ...]:
        if len(options) != RANKED_OPTION_COUNT:
            raise QuestionValidationError(
                f"Each ranked question must have exactly {RANKED_OPTION_COUNT} options."
            )
        cleaned = tuple(option.strip() for option in options)
        if any(not option for option in cleaned):
            raise QuestionValidationError("Option text cannot be empty.")
        if len(set(cleaned)) != len(cleaned):
            raise QuestionValidationError("Options must be distinct.")
        return cleaned


def _kind(is_fixed: bool) -> str:
    return "fixed" if is_fixed else "custom"
