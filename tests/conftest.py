from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from aura_quiz.core.models import QuestionType
from aura_quiz.core.quiz_manager import QuizManager
from aura_quiz.core.services.question_bank import QuestionDraft
from aura_quiz.core.services.quiz_store import InMemoryQuizStore
from aura_quiz.core.services.scratch_store import InMemoryScratchStore


class FakeClock:
    """Deterministic clock that advances one minute per reading."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def clock() -> FakeClock:
    # 2024-01-01 is a Monday.
    return FakeClock(datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock: FakeClock) -> InMemoryQuizStore:
    return InMemoryQuizStore(clock=clock)


@pytest.fixture
def scratch() -> InMemoryScratchStore:
    return InMemoryScratchStore()


@pytest.fixture
def manager(store: InMemoryQuizStore, clock: FakeClock) -> QuizManager:
    return QuizManager(store=store, clock=clock)


def ranked_draft(text: str = "Pick one", options=("X", "Y", "Z", "W"), is_fixed: bool = True) -> QuestionDraft:
    return QuestionDraft(
        text=text,
        question_type=QuestionType.RANKED,
        options=tuple(options),
        is_fixed=is_fixed,
    )


def scale_draft(text: str = "Rate it", is_fixed: bool = True) -> QuestionDraft:
    return QuestionDraft(text=text, question_type=QuestionType.SCALE, is_fixed=is_fixed)
