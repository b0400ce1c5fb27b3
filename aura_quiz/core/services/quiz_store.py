"""Persistence contract for quizzes, questions and responses.

``QuizStore`` is the narrow set of filtered reads and inserts the core needs
from a relational store. ``InMemoryQuizStore`` implements it with row dicts
the way a managed database would hand them back: list-valued columns are kept
as JSON text and decoded on every read.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from threading import Lock
from typing import Protocol
from uuid import uuid4

from aura_quiz.core.errors import IntegrityError
from aura_quiz.core.models import Question, QuestionType, Quiz, QuizQuestion, Response
from aura_quiz.core.payloads import decode_answers, decode_label_list, encode_blob


class QuizStore(Protocol):
    """Filtered reads and inserts over quizzes, questions and responses."""

    def get_quiz(self, id_or_code: str) -> Quiz | None: ...

    def list_quizzes_by_creator(self, creator_id: str) -> list[Quiz]: ...

    def insert_quiz(self, name: str, creator_id: str, share_code: str) -> Quiz: ...

    def update_quiz_name(self, quiz_id: str, name: str) -> Quiz | None: ...

    def delete_quiz(self, quiz_id: str) -> bool: ...

    def get_question(self, question_id: str) -> Question | None: ...

    def list_questions(
        self, is_fixed: bool | None = None, active: bool | None = None
    ) -> list[Question]: ...

    def insert_question(
        self,
        text: str,
        question_type: QuestionType,
        options: Sequence[str],
        is_fixed: bool,
        replaces_id: str | None = None,
    ) -> Question: ...

    def set_question_active(self, question_id: str, active: bool) -> None: ...

    def list_quiz_questions(self, quiz_id: str) -> list[QuizQuestion]: ...

    def insert_quiz_questions(
        self, quiz_id: str, bindings: Sequence[tuple[str, Sequence[str]]]
    ) -> list[QuizQuestion]: ...

    def list_responses(self, quiz_id: str) -> list[Response]: ...

    def get_response(self, quiz_id: str, respondent_id: str) -> Response | None: ...

    def list_responses_by_respondent(self, respondent_id: str) -> list[Response]: ...

    def insert_response(
        self,
        quiz_id: str,
        respondent_id: str,
        answers: Mapping[str, object],
        aura_points: int,
    ) -> Response: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryQuizStore:
    """Thread-safe in-process store with the same constraints as the production schema.

    ``share_code`` is unique across quizzes and a respondent can hold at most one
    response per quiz; violations raise ``IntegrityError``.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._lock = Lock()
        self._clock = clock
        self._quizzes: list[dict[str, object]] = []
        self._questions: list[dict[str, object]] = []
        self._quiz_questions: list[dict[str, object]] = []
        self._responses: list[dict[str, object]] = []

    # --- Quizzes ---

    def get_quiz(self, id_or_code: str) -> Quiz | None:
        with self._lock:
            row = next(
                (r for r in self._quizzes if id_or_code in (r["id"], r["share_code"])),
                None,
            )
        return _quiz_from_row(row) if row else None

    def list_quizzes_by_creator(self, creator_id: str) -> list[Quiz]:
        with self._lock:
            rows = [r for r in self._quizzes if r["creator_id"] == creator_id]
        return [_quiz_from_row(r) for r in rows]

    def insert_quiz(self, name: str, creator_id: str, share_code: str) -> Quiz:
        with self._lock:
            if any(r["share_code"] == share_code for r in self._quizzes):
                raise IntegrityError(f"Share code '{share_code}' is already taken.")
            row = {
                "id": uuid4().hex,
                "name": name,
                "creator_id": creator_id,
                "share_code": share_code,
                "created_at": self._clock(),
            }
            self._quizzes.append(row)
        return _quiz_from_row(row)

    def update_quiz_name(self, quiz_id: str, name: str) -> Quiz | None:
        with self._lock:
            row = next((r for r in self._quizzes if r["id"] == quiz_id), None)
            if row is None:
                return None
            row["name"] = name
            return _quiz_from_row(row)

    def delete_quiz(self, quiz_id: str) -> bool:
        """Delete a quiz together with its question bindings and responses."""
        with self._lock:
            before = len(self._quizzes)
            self._quizzes = [r for r in self._quizzes if r["id"] != quiz_id]
            if len(self._quizzes) == before:
                return False
            self._quiz_questions = [r for r in self._quiz_questions if r["quiz_id"] != quiz_id]
            self._responses = [r for r in self._responses if r["quiz_id"] != quiz_id]
        return True

    # --- Questions ---

    def get_question(self, question_id: str) -> Question | None:
        with self._lock:
            row = next((r for r in self._questions if r["id"] == question_id), None)
        return _question_from_row(row) if row else None

    def list_questions(
        self, is_fixed: bool | None = None, active: bool | None = None
    ) -> list[Question]:
        with self._lock:
            rows = [
                r
                for r in self._questions
                if (is_fixed is None or r["is_fixed"] == is_fixed)
                and (active is None or r["active"] == active)
            ]
        return [_question_from_row(r) for r in rows]

    def insert_question(
        self,
        text: str,
        question_type: QuestionType,
        options: Sequence[str],
        is_fixed: bool,
        replaces_id: str | None = None,
    ) -> Question:
        row = {
            "id": uuid4().hex,
            "text": text,
            "type": QuestionType(question_type).value,
            "options": encode_blob(list(options)) if options else None,
            "is_fixed": is_fixed,
            "active": True,
            "created_at": self._clock(),
            "replaces_id": replaces_id,
        }
        with self._lock:
            self._questions.append(row)
        return _question_from_row(row)

    def set_question_active(self, question_id: str, active: bool) -> None:
        with self._lock:
            for row in self._questions:
                if row["id"] == question_id:
                    row["active"] = active

    # --- Quiz questions ---

    def list_quiz_questions(self, quiz_id: str) -> list[QuizQuestion]:
        with self._lock:
            rows = [r for r in self._quiz_questions if r["quiz_id"] == quiz_id]
        rows.sort(key=lambda r: r["position"])
        return [_quiz_question_from_row(r) for r in rows]

    def insert_quiz_questions(
        self, quiz_id: str, bindings: Sequence[tuple[str, Sequence[str]]]
    ) -> list[QuizQuestion]:
        rows = [
            {
                "id": uuid4().hex,
                "quiz_id": quiz_id,
                "question_id": question_id,
                "position": position,
                "priority_order": encode_blob(list(priority_order)),
            }
            for position, (question_id, priority_order) in enumerate(bindings)
        ]
        with self._lock:
            self._quiz_questions.extend(rows)
        return [_quiz_question_from_row(r) for r in rows]

    # --- Responses ---

    def list_responses(self, quiz_id: str) -> list[Response]:
        with self._lock:
            rows = [r for r in self._responses if r["quiz_id"] == quiz_id]
        return [_response_from_row(r) for r in rows]

    def get_response(self, quiz_id: str, respondent_id: str) -> Response | None:
        with self._lock:
            row = self._find_response(quiz_id, respondent_id)
        return _response_from_row(row) if row else None

    def list_responses_by_respondent(self, respondent_id: str) -> list[Response]:
        with self._lock:
            rows = [r for r in self._responses if r["respondent_id"] == respondent_id]
        return [_response_from_row(r) for r in rows]

    def insert_response(
        self,
        quiz_id: str,
        respondent_id: str,
        answers: Mapping[str, object],
        aura_points: int,
    ) -> Response:
        with self._lock:
            if self._find_response(quiz_id, respondent_id) is not None:
                raise IntegrityError("Respondent already has a response for this quiz.")
            row = {
                "id": uuid4().hex,
                "quiz_id": quiz_id,
                "respondent_id": respondent_id,
                "answers": encode_blob(dict(answers)),
                "aura_points": aura_points,
                "created_at": self._clock(),
            }
            self._responses.append(row)
        return _response_from_row(row)

    def load_raw_responses(self, rows: Iterable[Mapping[str, object]]) -> None:
        """Append pre-existing response rows as they came from an export."""
        with self._lock:
            self._responses.extend(dict(r) for r in rows)

    def _find_response(self, quiz_id: str, respondent_id: str) -> dict[str, object] | None:
        return next(
            (
                r
                for r in self._responses
                if r["quiz_id"] == quiz_id and r["respondent_id"] == respondent_id
            ),
            None,
        )


def _quiz_from_row(row: Mapping[str, object]) -> Quiz:
    return Quiz(
        id=row["id"],
        name=row["name"],
        creator_id=row["creator_id"],
        share_code=row["share_code"],
        created_at=row["created_at"],
    )


def _question_from_row(row: Mapping[str, object]) -> Question:
    return Question(
        id=row["id"],
        text=row["text"],
        question_type=QuestionType(row["type"]),
        options=decode_label_list(row.get("options"), field_name="options"),
        is_fixed=bool(row["is_fixed"]),
        active=bool(row["active"]),
        created_at=row.get("created_at"),
        replaces_id=row.get("replaces_id"),
    )


def _quiz_question_from_row(row: Mapping[str, object]) -> QuizQuestion:
    return QuizQuestion(
        id=row["id"],
        quiz_id=row["quiz_id"],
        question_id=row["question_id"],
        position=int(row["position"]),
        priority_order=decode_label_list(row.get("priority_order")),
    )


def _response_from_row(row: Mapping[str, object]) -> Response:
    return Response(
        id=row["id"],
        quiz_id=row["quiz_id"],
        respondent_id=row["respondent_id"],
        answers=decode_answers(row.get("answers")),
        aura_points=int(row.get("aura_points") or 0),
        created_at=row["created_at"],
    )
