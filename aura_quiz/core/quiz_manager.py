"""Business logic for quizzes shared by the API and the command line entry point."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
import logging
from threading import Lock
from uuid import uuid4

from aura_quiz.core.errors import (
    IntegrityError,
    QuestionLimitError,
    QuestionValidationError,
)
from aura_quiz.core.link_issuer import issue_share_code
from aura_quiz.core.models import (
    DefinedQuestion,
    Question,
    Quiz,
    QuizDefinition,
    RespondentIdentity,
    Response,
)
from aura_quiz.core.services.analytics import (
    QuizAnalytics,
    ResponseDetail,
    build_quiz_analytics,
    describe_responses,
)
from aura_quiz.core.services.question_bank import QuestionBank, QuestionDraft
from aura_quiz.core.services.quiz_definitions import load_quiz_definition
from aura_quiz.core.services.quiz_session import QuizSession, SessionState
from aura_quiz.core.services.quiz_store import InMemoryQuizStore, QuizStore, utc_now
from aura_quiz.core.services.scratch_store import InMemoryScratchStore, ScratchStore
from aura_quiz.utils.deadline import call_with_deadline

logger = logging.getLogger(__name__)

_SHARE_CODE_ATTEMPTS = 3


class QuizManager:
    """Facade over the store, question bank, sessions and analytics."""

    def __init__(
        self,
        store: QuizStore | None = None,
        store_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
        scratch_factory: Callable[[], ScratchStore] = InMemoryScratchStore,
    ) -> None:
        self._lock = Lock()
        self._store = store if store is not None else InMemoryQuizStore(clock=clock)
        self._timeout = store_timeout_seconds
        self._clock = clock
        self._scratch_factory = scratch_factory
        self._bank = QuestionBank(self._store)

        # Keyed by respondent id; each respondent gets their own scratch area.
        self._scratch: dict[str, ScratchStore] = {}
        self._sessions: dict[tuple[str, str], QuizSession] = {}

    # --- Question bank ---

    def get_question_bank(self) -> QuestionBank:
        return self._bank

    def seed_questions(self, drafts: Iterable[QuestionDraft]) -> list[Question]:
        """Add drafts to the bank, skipping any that would exceed the active limits."""
        added: list[Question] = []
        for draft in drafts:
            try:
                added.append(self._bank.add_question(draft))
            except QuestionLimitError as exc:
                logger.warning("Skipping seed question %r: %s", draft.text, exc)
        return added

    # --- Quizzes ---

    def create_quiz(
        self,
        creator_id: str,
        name: str,
        custom_question_ids: Sequence[str] = (),
        priority_orders: Mapping[str, Sequence[str]] | None = None,
    ) -> QuizDefinition:
        """Create a quiz from every active fixed question plus the chosen custom ones.

        ``priority_orders`` maps a ranked question id to the creator's ordering of
        its options. Questions without an entry keep the bank's option order.
        """
        cleaned_name = name.strip()
        if not cleaned_name:
            raise QuestionValidationError("Please enter a name for your quiz.")
        priority_orders = priority_orders or {}

        questions = self._bank.list_active(is_fixed=True) + self._selected_custom(custom_question_ids)
        if not questions:
            raise QuestionValidationError("A quiz needs at least one question.")

        bindings = [
            (question.id, _priority_for(question, priority_orders.get(question.id)))
            for question in questions
        ]
        quiz = self._insert_quiz_with_unique_code(cleaned_name, creator_id)
        quiz_questions = self._store.insert_quiz_questions(quiz.id, bindings)
        logger.info("Quiz %s (%s) created with %d questions", quiz.id, quiz.share_code, len(bindings))
        return QuizDefinition(
            quiz=quiz,
            questions=tuple(
                DefinedQuestion(question=question, binding=binding)
                for question, binding in zip(questions, quiz_questions)
            ),
        )

    def find_quiz(self, id_or_code: str) -> Quiz | None:
        return call_with_deadline(
            lambda: self._store.get_quiz(id_or_code), self._timeout, f"Looking up quiz {id_or_code}"
        )

    def load_definition(self, quiz: Quiz) -> QuizDefinition:
        return call_with_deadline(
            lambda: load_quiz_definition(self._store, quiz),
            self._timeout,
            f"Loading questions for quiz {quiz.id}",
        )

    def rename_quiz(self, quiz: Quiz, name: str) -> Quiz:
        cleaned_name = name.strip()
        if not cleaned_name:
            raise QuestionValidationError("Please enter a name for your quiz.")
        updated = call_with_deadline(
            lambda: self._store.update_quiz_name(quiz.id, cleaned_name),
            self._timeout,
            f"Renaming quiz {quiz.id}",
        )
        if updated is None:
            raise KeyError(quiz.id)
        logger.info("Quiz %s renamed to %r", quiz.id, cleaned_name)
        return updated

    def delete_quiz(self, quiz: Quiz) -> bool:
        """Delete a quiz with its responses and drop any sessions still open on it."""
        deleted = call_with_deadline(
            lambda: self._store.delete_quiz(quiz.id), self._timeout, f"Deleting quiz {quiz.id}"
        )
        with self._lock:
            self._sessions = {
                key: session for key, session in self._sessions.items() if key[0] != quiz.id
            }
        if deleted:
            logger.info("Quiz %s deleted", quiz.id)
        return deleted

    def list_created_quizzes(self, creator_id: str) -> list[Quiz]:
        return self._store.list_quizzes_by_creator(creator_id)

    def list_taken_quizzes(self, respondent_id: str) -> list[Quiz]:
        taken: list[Quiz] = []
        for response in self._store.list_responses_by_respondent(respondent_id):
            quiz = self._store.get_quiz(response.quiz_id)
            if quiz is not None:
                taken.append(quiz)
        return taken

    # --- Sessions ---

    def open_session(self, id_or_code: str, respondent: RespondentIdentity) -> QuizSession | None:
        """Return the respondent's session for a quiz, or None when the quiz does not exist.

        A respondent who already submitted gets a completed session carrying their
        stored response instead of a fresh run through the quiz. Completed
        sessions are not kept in memory; the stored response stands in for them.
        """
        quiz = self.find_quiz(id_or_code)
        if quiz is None:
            return None
        self._evict_completed()
        key = (quiz.id, respondent.user_id)
        with self._lock:
            session = self._sessions.get(key)
        if session is not None and session.get_state() is not SessionState.FAILED:
            return session

        existing = self._stored_response(quiz, respondent.user_id)
        if existing is not None:
            with self._lock:
                self._sessions.pop(key, None)
            return self._completed_session(quiz, respondent, existing)
        session = QuizSession(
            quiz, respondent, self._store, self.scratch_for(respondent.user_id), self._timeout
        )
        with self._lock:
            self._sessions[key] = session
        return session

    def get_session(self, quiz: Quiz, respondent: RespondentIdentity) -> QuizSession | None:
        """The respondent's live session, or a completed one rebuilt from the store."""
        with self._lock:
            session = self._sessions.get((quiz.id, respondent.user_id))
        if session is not None:
            return session
        existing = self._stored_response(quiz, respondent.user_id)
        if existing is None:
            return None
        return self._completed_session(quiz, respondent, existing)

    def scratch_for(self, respondent_id: str) -> ScratchStore:
        with self._lock:
            scratch = self._scratch.get(respondent_id)
            if scratch is None:
                scratch = self._scratch_factory()
                self._scratch[respondent_id] = scratch
            return scratch

    def get_live_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    # --- Analytics ---

    def build_analytics(
        self,
        id_or_code: str,
        now: datetime | None = None,
        leaderboard_limit: int | None = None,
    ) -> QuizAnalytics | None:
        quiz = self.find_quiz(id_or_code)
        if quiz is None:
            return None
        return build_quiz_analytics(
            self.load_definition(quiz),
            self._load_responses(quiz),
            now if now is not None else self._clock(),
            leaderboard_limit=leaderboard_limit,
        )

    def list_response_details(self, quiz: Quiz) -> list[ResponseDetail]:
        """Every stored response to ``quiz`` with its individual answers."""
        return describe_responses(self.load_definition(quiz), self._load_responses(quiz))

    # --- Internals ---

    def _load_responses(self, quiz: Quiz) -> list[Response]:
        return call_with_deadline(
            lambda: self._store.list_responses(quiz.id),
            self._timeout,
            f"Loading responses for quiz {quiz.id}",
        )

    def _stored_response(self, quiz: Quiz, respondent_id: str) -> Response | None:
        return call_with_deadline(
            lambda: self._store.get_response(quiz.id, respondent_id),
            self._timeout,
            f"Checking for an earlier response to quiz {quiz.id}",
        )

    def _completed_session(
        self, quiz: Quiz, respondent: RespondentIdentity, response: Response
    ) -> QuizSession:
        # A finished session never touches scratch, so it gets a throwaway area.
        return QuizSession.already_completed(
            quiz, respondent, response, self._store, self._scratch_factory()
        )

    def _evict_completed(self) -> None:
        """Forget finished sessions and the scratch areas of respondents with none left."""
        with self._lock:
            self._sessions = {
                key: session
                for key, session in self._sessions.items()
                if session.get_state() is not SessionState.COMPLETED
            }
            live_respondents = {respondent_id for _, respondent_id in self._sessions}
            self._scratch = {
                respondent_id: scratch
                for respondent_id, scratch in self._scratch.items()
                if respondent_id in live_respondents
            }

    def _selected_custom(self, question_ids: Sequence[str]) -> list[Question]:
        selected: list[Question] = []
        seen: set[str] = set()
        for question_id in question_ids:
            if question_id in seen:
                continue
            seen.add(question_id)
            question = self._store.get_question(question_id)
            if question is None or not question.active or question.is_fixed:
                raise QuestionValidationError(
                    f"Question {question_id} is not an active custom question."
                )
            selected.append(question)
        return selected

    def _insert_quiz_with_unique_code(self, name: str, creator_id: str) -> Quiz:
        share_code = issue_share_code()
        for attempt in range(_SHARE_CODE_ATTEMPTS):
            try:
                return self._store.insert_quiz(name, creator_id, share_code)
            except IntegrityError:
                logger.info("Share code %s already taken (attempt %d)", share_code, attempt + 1)
                share_code = f"{issue_share_code()}{uuid4().hex[:6]}"
        raise IntegrityError("Could not issue a unique share code.")


def _priority_for(question: Question, requested: Sequence[str] | None) -> tuple[str, ...]:
    if not question.is_ranked:
        return ()
    if requested is None:
        return tuple(question.options)
    order = tuple(requested)
    if len(order) != len(question.options) or set(order) != set(question.options):
        raise QuestionValidationError(
            f"Priority order for question {question.id} must rank each of its options once."
        )
    return order
