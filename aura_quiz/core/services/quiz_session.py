"""State machine for one respondent taking one quiz."""

from __future__ import annotations

from enum import Enum, auto
from typing import NoReturn
import logging

from aura_quiz.constants.scoring_constants import NUMERIC_SCALE_MAX, NUMERIC_SCALE_MIN
from aura_quiz.core.errors import (
    AnswerRequiredError,
    IntegrityError,
    InvalidAnswerError,
    PersistenceError,
    SessionStateError,
    SubmissionFailedError,
)
from aura_quiz.core.models import (
    DefinedQuestion,
    Quiz,
    QuizDefinition,
    RespondentIdentity,
    Response,
)
from aura_quiz.core.response_scorer import coerce_scale_answer, score_answers
from aura_quiz.core.services.quiz_definitions import load_quiz_definition
from aura_quiz.core.services.quiz_store import QuizStore
from aura_quiz.core.services.scratch_store import ScratchStore
from aura_quiz.utils.deadline import call_with_deadline

logger = logging.getLogger(__name__)


class SessionState(Enum):
    WELCOME = auto()
    ANSWERING = auto()
    SUBMITTING = auto()
    COMPLETED = auto()
    FAILED = auto()


class QuizSession:
    """Walks a respondent from the welcome screen to a stored response.

    Every answer is mirrored into scratch storage so a reload can resume where
    the respondent left off; the scratch entry is removed only once the
    response has been stored. The session does not guard against a second
    submission for the same respondent; ``QuizManager`` checks the store
    before creating one.
    """

    def __init__(
        self,
        quiz: Quiz,
        respondent: RespondentIdentity,
        store: QuizStore,
        scratch: ScratchStore,
        store_timeout_seconds: float | None = None,
    ) -> None:
        self._quiz = quiz
        self._respondent = respondent
        self._store = store
        self._scratch = scratch
        self._timeout = store_timeout_seconds

        self._state = SessionState.WELCOME
        self._definition: QuizDefinition | None = None
        self._index: int = 0
        self._answers: dict[str, object] = {}
        self._response: Response | None = None
        self._failure_reason: str | None = None
        self._last_error: Exception | None = None

    @classmethod
    def already_completed(
        cls,
        quiz: Quiz,
        respondent: RespondentIdentity,
        response: Response,
        store: QuizStore,
        scratch: ScratchStore,
    ) -> "QuizSession":
        """Session for a respondent who has already submitted this quiz."""
        session = cls(quiz, respondent, store, scratch)
        session._state = SessionState.COMPLETED
        session._response = response
        session._answers = dict(response.answers)
        return session

    # --- Introspection ---

    def get_state(self) -> SessionState:
        return self._state

    def get_quiz(self) -> Quiz:
        return self._quiz

    def get_respondent(self) -> RespondentIdentity:
        return self._respondent

    def get_question_index(self) -> int:
        return self._index

    def get_question_count(self) -> int:
        return len(self._definition.questions) if self._definition else 0

    def get_current_question(self) -> DefinedQuestion | None:
        if self._state is not SessionState.ANSWERING or self._definition is None:
            return None
        return self._definition.questions[self._index]

    def get_answers(self) -> dict[str, object]:
        return dict(self._answers)

    def get_response(self) -> Response | None:
        return self._response

    def get_failure_reason(self) -> str | None:
        return self._failure_reason

    def get_last_error(self) -> Exception | None:
        return self._last_error

    def is_last_question(self) -> bool:
        return self._definition is not None and self._index == len(self._definition.questions) - 1

    def missing_question_ids(self) -> list[str]:
        if self._definition is None:
            return []
        return [qid for qid in self._definition.question_ids() if qid not in self._answers]

    # --- Transitions ---

    def begin(self) -> None:
        """Leave the welcome screen and show the first question."""
        self._require(SessionState.WELCOME)
        try:
            definition = call_with_deadline(
                lambda: load_quiz_definition(self._store, self._quiz),
                self._timeout,
                f"Loading questions for quiz {self._quiz.id}",
            )
        except PersistenceError as exc:
            logger.error("Could not load quiz %s: %s", self._quiz.id, exc)
            self._last_error = exc
            self.fail(str(exc))
            return
        if not definition.questions:
            self.fail("This quiz has no questions.")
            return

        self._definition = definition
        known_ids = set(definition.question_ids())
        restored = self._scratch.get(self._quiz.id)
        self._answers = {qid: value for qid, value in restored.items() if qid in known_ids}
        self._index = 0
        self._state = SessionState.ANSWERING

    def answer(self, value: object) -> None:
        """Record the answer for the current question and mirror it to scratch storage."""
        self._require(SessionState.ANSWERING)
        current = self.get_current_question()
        self._answers[current.question_id] = _validate_answer(current, value)
        self._scratch.put(self._quiz.id, self._answers)

    def next(self) -> None:
        self._require(SessionState.ANSWERING)
        current = self.get_current_question()
        if current.question_id not in self._answers:
            raise AnswerRequiredError([current.question_id])
        if self.is_last_question():
            raise SessionStateError("Already at the last question; submit instead.")
        self._index += 1

    def previous(self) -> None:
        self._require(SessionState.ANSWERING)
        if self._index > 0:
            self._index -= 1

    def go_to(self, index: int) -> None:
        """Jump to a question. Moving forward needs every question before it answered."""
        self._require(SessionState.ANSWERING)
        if not 0 <= index < self.get_question_count():
            raise IndexError(f"Question index {index} out of range")
        if index > self._index:
            skipped = [
                item.question_id
                for item in self._definition.questions[:index]
                if item.question_id not in self._answers
            ]
            if skipped:
                raise AnswerRequiredError(skipped)
        self._index = index

    def submit(self) -> Response:
        """Score the answers, store one response and finish the session.

        If the store fails the session goes back to the last question with all
        answers kept, and ``SubmissionFailedError`` is raised so the caller can
        offer a retry. A uniqueness conflict means an earlier attempt was stored
        even though it looked failed (lost acknowledgement, timed-out wait), so
        the stored response is picked up and the session completes with it.
        """
        self._require(SessionState.ANSWERING)
        if not self.is_last_question():
            raise SessionStateError("Submit is only available on the last question.")
        missing = self.missing_question_ids()
        if missing:
            raise AnswerRequiredError(missing)

        self._state = SessionState.SUBMITTING
        answers = dict(self._answers)
        points = score_answers(self._definition.scoring_keys(), answers)
        try:
            response = call_with_deadline(
                lambda: self._store.insert_response(
                    self._quiz.id, self._respondent.user_id, answers, points
                ),
                self._timeout,
                f"Saving response for quiz {self._quiz.id}",
            )
        except IntegrityError as exc:
            try:
                response = self._load_stored_response()
            except Exception as lookup_exc:
                self._roll_back(lookup_exc)
            if response is None:
                self._roll_back(exc)
            logger.info(
                "Quiz %s already had a response from %s; using the stored one",
                self._quiz.id,
                self._respondent.user_id,
            )
        except Exception as exc:
            self._roll_back(exc)

        self._scratch.delete(self._quiz.id)
        self._response = response
        self._last_error = None
        self._state = SessionState.COMPLETED
        logger.info(
            "Quiz %s completed by %s with %d aura points",
            self._quiz.id,
            self._respondent.user_id,
            response.aura_points,
        )
        return response

    def fail(self, reason: str) -> None:
        """Move to the terminal error state. Scratch answers are left untouched."""
        if self._state is SessionState.COMPLETED:
            raise SessionStateError("A completed session cannot fail.")
        self._failure_reason = reason
        self._state = SessionState.FAILED

    def _load_stored_response(self) -> Response | None:
        return call_with_deadline(
            lambda: self._store.get_response(self._quiz.id, self._respondent.user_id),
            self._timeout,
            f"Checking for a stored response to quiz {self._quiz.id}",
        )

    def _roll_back(self, exc: Exception) -> NoReturn:
        """Return to the last question with answers kept and raise ``SubmissionFailedError``.

        Must be called from an ``except`` block. Errors that are not
        ``PersistenceError`` (driver bugs, unexpected responses) are logged with
        their traceback and treated as retryable.
        """
        if isinstance(exc, PersistenceError):
            logger.warning(
                "Submission for quiz %s by %s failed: %s",
                self._quiz.id,
                self._respondent.user_id,
                exc,
            )
        else:
            logger.exception(
                "Unexpected error saving quiz %s for %s", self._quiz.id, self._respondent.user_id
            )
        self._last_error = exc
        self._state = SessionState.ANSWERING
        self._index = len(self._definition.questions) - 1
        error = SubmissionFailedError("Your answers could not be saved. Please try again.")
        error.retryable = getattr(exc, "retryable", True)
        raise error from exc

    def _require(self, expected: SessionState) -> None:
        if self._state is not expected:
            raise SessionStateError(
                f"Action requires state {expected.name}, session is {self._state.name}."
            )


def _validate_answer(item: DefinedQuestion, value: object) -> object:
    question = item.question
    if question.is_ranked:
        if not isinstance(value, str) or value not in question.options:
            raise InvalidAnswerError(f"'{value}' is not an option of this question.")
        return value
    number = coerce_scale_answer(value)
    if number is None or not NUMERIC_SCALE_MIN <= number <= NUMERIC_SCALE_MAX:
        raise InvalidAnswerError(
            f"Answer must be a number between {NUMERIC_SCALE_MIN:g} and {NUMERIC_SCALE_MAX:g}."
        )
    return int(number) if number.is_integer() else number

