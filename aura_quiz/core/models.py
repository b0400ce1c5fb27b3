"""Domain models for the aura quiz."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class QuestionType(str, Enum):
    """The two kinds of question a quiz can contain."""

    RANKED = "ranked"
    SCALE = "scale"


@dataclass(slots=True, frozen=True)
class Question:
    """A question from the bank. Edits create a new record instead of mutating this one."""

    id: str
    text: str
    question_type: QuestionType
    options: tuple[str, ...] = ()
    is_fixed: bool = False
    active: bool = True
    created_at: datetime | None = None
    replaces_id: str | None = None  # Previous version retired by this one

    @property
    def is_ranked(self) -> bool:
        return self.question_type is QuestionType.RANKED


@dataclass(slots=True, frozen=True)
class Quiz:
    """A quiz created by one user and shared through its short code."""

    id: str
    name: str
    creator_id: str
    share_code: str
    created_at: datetime


@dataclass(slots=True, frozen=True)
class QuizQuestion:
    """Binds a question to a quiz together with the creator's ranking of its options."""

    id: str
    quiz_id: str
    question_id: str
    position: int
    priority_order: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class Response:
    """One respondent's submitted answers and their cached score."""

    id: str
    quiz_id: str
    respondent_id: str
    answers: dict[str, object]
    aura_points: int
    created_at: datetime


@dataclass(slots=True, frozen=True)
class ScoringKey:
    """What the scorer needs to know about one question of a quiz."""

    question_id: str
    question_type: QuestionType
    priority_order: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class DefinedQuestion:
    """A question as it appears inside a specific quiz."""

    question: Question
    binding: QuizQuestion

    @property
    def question_id(self) -> str:
        return self.question.id

    def scoring_key(self) -> ScoringKey:
        priority = self.binding.priority_order if self.question.is_ranked else ()
        return ScoringKey(
            question_id=self.question.id,
            question_type=self.question.question_type,
            priority_order=priority,
        )


@dataclass(slots=True, frozen=True)
class QuizDefinition:
    """A quiz with its questions in presentation order."""

    quiz: Quiz
    questions: tuple[DefinedQuestion, ...] = field(default_factory=tuple)

    def scoring_keys(self) -> list[ScoringKey]:
        return [item.scoring_key() for item in self.questions]

    def question_ids(self) -> list[str]:
        return [item.question_id for item in self.questions]


@dataclass(slots=True, frozen=True)
class RespondentIdentity:
    """The signed-in user driving a session, passed in explicitly."""

    user_id: str
    display_name: str | None = None
