"""Assembles a quiz with its questions and priority orders from the store."""

from __future__ import annotations

import logging

from aura_quiz.core.models import DefinedQuestion, Quiz, QuizDefinition
from aura_quiz.core.services.quiz_store import QuizStore

logger = logging.getLogger(__name__)


def load_quiz_definition(store: QuizStore, quiz: Quiz) -> QuizDefinition:
    """Load the questions bound to ``quiz`` in their quiz order.

    Retired question versions are still loaded so older quizzes keep their
    original wording. A binding whose question row no longer exists is skipped.
    """
    defined: list[DefinedQuestion] = []
    for binding in store.list_quiz_questions(quiz.id):
        question = store.get_question(binding.question_id)
        if question is None:
            logger.warning(
                "Quiz %s references missing question %s; skipping it",
                quiz.id,
                binding.question_id,
            )
            continue
        defined.append(DefinedQuestion(question=question, binding=binding))
    return QuizDefinition(quiz=quiz, questions=tuple(defined))
