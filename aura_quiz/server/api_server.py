"""FastAPI server exposing quiz authoring, quiz taking and analytics endpoints."""

from __future__ import annotations

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from aura_quiz.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from aura_quiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from aura_quiz.constants.quiz_constants import LEADERBOARD_DEFAULT_LIMIT
from aura_quiz.core.errors import (
    PersistenceError,
    QuestionLimitError,
    SessionStateError,
    SubmissionFailedError,
)
from aura_quiz.core.markdown_renderer import renderer
from aura_quiz.core.models import Question, QuestionType, Quiz, RespondentIdentity
from aura_quiz.core.quiz_manager import QuizManager
from aura_quiz.core.scoring import is_celebration_score
from aura_quiz.core.services.analytics import QuizAnalytics, ResponseDetail
from aura_quiz.core.services.question_bank import QuestionDraft
from aura_quiz.core.services.quiz_session import QuizSession, SessionState


class QuestionPayload(BaseModel):
    """Payload schema for adding or editing a bank question."""

    text: str
    question_type: QuestionType = QuestionType.RANKED
    options: list[str] = Field(default_factory=list)
    is_fixed: bool = False


class CreateQuizPayload(BaseModel):
    """Payload schema for creating a quiz."""

    name: str
    custom_question_ids: list[str] = Field(default_factory=list)
    priority_orders: dict[str, list[str]] = Field(default_factory=dict)


class RenameQuizPayload(BaseModel):
    """Payload schema for renaming a quiz."""

    name: str


class AnswerPayload(BaseModel):
    """Payload schema for answering the current question."""

    value: str | float


def _get_quiz_manager_dependency(quiz_manager: QuizManager):
    def dependency() -> QuizManager:
        return quiz_manager

    return dependency


def get_identity(
    x_user_id: str | None = Header(default=None),
    x_display_name: str | None = Header(default=None),
) -> RespondentIdentity:
    """Identity handed over by the authentication layer in front of this API."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Sign in to continue.")
    return RespondentIdentity(user_id=x_user_id.strip(), display_name=x_display_name)


def create_api_app(quiz_manager: QuizManager) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz manager."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    quiz_manager_dep = _get_quiz_manager_dependency(quiz_manager)

    @app.exception_handler(PersistenceError)
    def handle_persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": exc.retryable})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # --- Question bank ---

    @app.get("/questions")
    def list_questions(
        fixed: bool | None = None,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        bank = manager.get_question_bank()
        questions = bank.list_questions(is_fixed=fixed, active=True)
        return [_question_payload(question) for question in questions]

    @app.post("/admin/questions", status_code=201, dependencies=[Depends(get_identity)])
    def add_question(
        payload: QuestionPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            question = manager.get_question_bank().add_question(_draft_from(payload))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except QuestionLimitError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _question_payload(question)

    @app.put("/admin/questions/{question_id}", dependencies=[Depends(get_identity)])
    def edit_question(
        question_id: str,
        payload: QuestionPayload,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            question = manager.get_question_bank().edit_question(question_id, _draft_from(payload))
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Question not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _question_payload(question)

    @app.post("/admin/questions/{question_id}/deactivate", dependencies=[Depends(get_identity)])
    def deactivate_question(
        question_id: str,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        bank = manager.get_question_bank()
        try:
            bank.deactivate_question(question_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Question not found") from exc
        return _question_payload(bank.get_question(question_id))

    @app.post("/admin/questions/{question_id}/reactivate", dependencies=[Depends(get_identity)])
    def reactivate_question(
        question_id: str,
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            question = manager.get_question_bank().reactivate_question(question_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Question not found") from exc
        except QuestionLimitError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return _question_payload(question)

    # --- Quizzes ---

    @app.post("/quizzes", status_code=201)
    def create_quiz(
        payload: CreateQuizPayload,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        try:
            definition = manager.create_quiz(
                identity.user_id,
                payload.name,
                payload.custom_question_ids,
                payload.priority_orders,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        summary = _quiz_payload(definition.quiz)
        summary["question_ids"] = definition.question_ids()
        return summary

    @app.get("/quizzes/{code}")
    def get_quiz(code: str, manager: QuizManager = Depends(quiz_manager_dep)) -> dict[str, object]:
        return _quiz_payload(_require_quiz(manager, code))

    @app.get("/me/quizzes")
    def my_quizzes(
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        return {
            "created": [_quiz_payload(q) for q in manager.list_created_quizzes(identity.user_id)],
            "taken": [_quiz_payload(q) for q in manager.list_taken_quizzes(identity.user_id)],
        }

    # --- Quiz taking ---

    @app.post("/quizzes/{code}/session")
    def open_session(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = manager.open_session(code, identity)
        if session is None:
            raise HTTPException(status_code=404, detail="Quiz not found")
        return _session_payload(session)

    @app.post("/quizzes/{code}/session/begin")
    def begin_session(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, code, identity)
        _run_session_action(session.begin)
        return _session_payload(session)

    @app.post("/quizzes/{code}/session/answer")
    def answer_question(
        code: str,
        payload: AnswerPayload,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, code, identity)
        _run_session_action(lambda: session.answer(payload.value))
        return _session_payload(session)

    @app.post("/quizzes/{code}/session/next")
    def next_question(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, code, identity)
        _run_session_action(session.next)
        return _session_payload(session)

    @app.post("/quizzes/{code}/session/previous")
    def previous_question(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, code, identity)
        _run_session_action(session.previous)
        return _session_payload(session)

    @app.post("/quizzes/{code}/session/submit")
    def submit_session(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        session = _require_session(manager, code, identity)
        _run_session_action(session.submit)
        return _session_payload(session)

    # --- Analytics ---

    @app.get("/quizzes/{code}/analytics")
    def quiz_analytics(
        code: str,
        limit: int = Query(default=LEADERBOARD_DEFAULT_LIMIT, ge=1),
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        quiz = _require_creator(manager, code, identity)
        analytics = manager.build_analytics(quiz.id, leaderboard_limit=limit)
        if analytics is None:
            raise HTTPException(status_code=404, detail="Quiz not found")
        return _analytics_payload(analytics)

    @app.get("/quizzes/{code}/responses")
    def quiz_responses(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> list[dict[str, object]]:
        quiz = _require_creator(manager, code, identity)
        return [_response_detail_payload(detail) for detail in manager.list_response_details(quiz)]

    # --- Quiz settings ---

    @app.patch("/quizzes/{code}")
    def rename_quiz(
        code: str,
        payload: RenameQuizPayload,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> dict[str, object]:
        quiz = _require_creator(manager, code, identity)
        try:
            renamed = manager.rename_quiz(quiz, payload.name)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Quiz not found") from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _quiz_payload(renamed)

    @app.delete("/quizzes/{code}", status_code=204)
    def delete_quiz(
        code: str,
        identity: RespondentIdentity = Depends(get_identity),
        manager: QuizManager = Depends(quiz_manager_dep),
    ) -> Response:
        quiz = _require_creator(manager, code, identity)
        manager.delete_quiz(quiz)
        return Response(status_code=204)

    return app


def _require_quiz(manager: QuizManager, code: str) -> Quiz:
    quiz = manager.find_quiz(code)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


def _require_creator(manager: QuizManager, code: str, identity: RespondentIdentity) -> Quiz:
    quiz = _require_quiz(manager, code)
    if quiz.creator_id != identity.user_id:
        raise HTTPException(status_code=403, detail="Only the quiz creator can manage this quiz.")
    return quiz


def _require_session(manager: QuizManager, code: str, identity: RespondentIdentity) -> QuizSession:
    quiz = _require_quiz(manager, code)
    session = manager.get_session(quiz, identity)
    if session is None:
        raise HTTPException(status_code=404, detail="Open the quiz before answering it.")
    return session


def _run_session_action(action) -> None:
    try:
        action()
    except SubmissionFailedError as exc:
        status = 503 if exc.retryable else 409
        raise HTTPException(status_code=status, detail=str(exc)) from exc
    except SessionStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _draft_from(payload: QuestionPayload) -> QuestionDraft:
    return QuestionDraft(
        text=payload.text,
        question_type=payload.question_type,
        options=tuple(payload.options),
        is_fixed=payload.is_fixed,
    )


def _question_payload(question: Question) -> dict[str, object]:
    return {
        "id": question.id,
        "text": question.text,
        "question_type": question.question_type.value,
        "options": list(question.options),
        "is_fixed": question.is_fixed,
        "active": question.active,
        "replaces_id": question.replaces_id,
    }


def _quiz_payload(quiz: Quiz) -> dict[str, object]:
    return {
        "id": quiz.id,
        "name": quiz.name,
        "creator_id": quiz.creator_id,
        "share_code": quiz.share_code,
        "created_at": quiz.created_at.isoformat(),
    }


def _session_payload(session: QuizSession) -> dict[str, object]:
    state = session.get_state()
    payload: dict[str, object] = {
        "state": state.name.lower(),
        "quiz": _quiz_payload(session.get_quiz()),
        "question_index": session.get_question_index(),
        "question_count": session.get_question_count(),
        "question": None,
        "answers": session.get_answers(),
        "failure_reason": session.get_failure_reason(),
    }
    current = session.get_current_question()
    if current is not None:
        question = current.question
        payload["question"] = {
            "id": question.id,
            "question_type": question.question_type.value,
            "question_html": renderer.render_fragment(question.text),
            "options": list(question.options),
            "options_html": [renderer.render_inline(option) for option in question.options],
            "answer": session.get_answers().get(question.id),
            "is_last": session.is_last_question(),
        }
    response = session.get_response()
    if state is SessionState.COMPLETED and response is not None:
        payload["aura_points"] = response.aura_points
        payload["celebrate"] = is_celebration_score(response.aura_points)
        payload["submitted_at"] = response.created_at.isoformat()
    return payload


def _analytics_payload(analytics: QuizAnalytics) -> dict[str, object]:
    return {
        "quiz_id": analytics.quiz_id,
        "max_points": analytics.max_points,
        "stats": {
            "total_responses": analytics.stats.total_responses,
            "average_aura_points": analytics.stats.average_aura_points,
            "recent_responses": analytics.stats.recent_responses,
        },
        "leaderboard": [
            {
                "rank": row.rank,
                "response_id": row.response_id,
                "respondent_id": row.respondent_id,
                "aura_points": row.aura_points,
                "bucket": row.bucket.value,
            }
            for row in analytics.leaderboard
        ],
        "breakdowns": {
            question_id: [
                {"label": share.label, "count": share.count, "percentage": share.percentage}
                for share in shares
            ]
            for question_id, shares in analytics.breakdowns.items()
        },
        "buckets": [
            {"bucket": item.bucket.value, "color": item.bucket.color, "count": item.count}
            for item in analytics.buckets
        ],
        "timeline": [{"date": item.day.isoformat(), "count": item.count} for item in analytics.timeline],
        "weekdays": [{"weekday": item.weekday, "count": item.count} for item in analytics.weekdays],
    }


def _response_detail_payload(detail: ResponseDetail) -> dict[str, object]:
    return {
        "response_id": detail.response_id,
        "respondent_id": detail.respondent_id,
        "aura_points": detail.aura_points,
        "bucket": detail.bucket.value,
        "submitted_at": detail.created_at.isoformat(),
        "answers": [
            {
                "question_id": item.question_id,
                "question_text": item.question_text,
                "answer": item.answer,
                "points": item.points,
            }
            for item in detail.answers
        ],
    }


def run_api_server(
    quiz_manager: QuizManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the API in the current thread until interrupted."""
    app = create_api_app(quiz_manager)
    uvicorn.run(app, host=host, port=port, log_level=log_level)

