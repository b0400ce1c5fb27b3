from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from aura_quiz.core.errors import PersistenceError
from aura_quiz.core.quiz_manager import QuizManager
from aura_quiz.core.services.quiz_store import InMemoryQuizStore
from aura_quiz.server.api_server import create_api_app
from tests.conftest import ranked_draft, scale_draft

CREATOR = {"X-User-Id": "creator-1", "X-Display-Name": "Casey"}
PLAYER = {"X-User-Id": "user-1"}


class UnavailableStore(InMemoryQuizStore):
    def get_quiz(self, id_or_code):
        raise PersistenceError("store offline")


@pytest.fixture
def client(manager):
    bank = manager.get_question_bank()
    bank.add_question(ranked_draft("Pick **one**"))
    bank.add_question(scale_draft("Rate it"))
    return TestClient(create_api_app(manager))


def _create_quiz(client) -> dict:
    response = client.post("/quizzes", json={"name": "Team vibes"}, headers=CREATOR)
    assert response.status_code == 201
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_identity_is_required(client):
    assert client.post("/quizzes", json={"name": "Quiz"}).status_code == 401
    assert client.post("/admin/questions", json={"text": "Rate it", "question_type": "scale"}).status_code == 401


def test_question_bank_endpoints(client):
    created = client.post(
        "/admin/questions",
        json={"text": "Custom", "options": ["A", "B", "C", "D"]},
        headers=CREATOR,
    )
    assert created.status_code == 201
    question = created.json()
    assert question["is_fixed"] is False

    invalid = client.post("/admin/questions", json={"text": "Bad", "options": ["A"]}, headers=CREATOR)
    assert invalid.status_code == 422

    edited = client.put(
        f"/admin/questions/{question['id']}",
        json={"text": "Custom v2", "options": ["A", "B", "C", "D"]},
        headers=CREATOR,
    ).json()
    assert edited["replaces_id"] == question["id"]

    deactivated = client.post(f"/admin/questions/{edited['id']}/deactivate", headers=CREATOR)
    assert deactivated.json()["active"] is False
    assert client.get("/questions", params={"fixed": False}).json() == []

    reactivated = client.post(f"/admin/questions/{edited['id']}/reactivate", headers=CREATOR)
    assert reactivated.json()["active"] is True
    assert client.post("/admin/questions/missing/deactivate", headers=CREATOR).status_code == 404


def test_fixed_question_limit_is_a_conflict(client):
    for index in range(5):
        response = client.post(
            "/admin/questions",
            json={"text": f"Fixed {index}", "question_type": "scale", "is_fixed": True},
            headers=CREATOR,
        )
        assert response.status_code == 201
    response = client.post(
        "/admin/questions",
        json={"text": "Eighth", "question_type": "scale", "is_fixed": True},
        headers=CREATOR,
    )
    assert response.status_code == 409


def test_take_quiz_end_to_end(client):
    quiz = _create_quiz(client)
    code = quiz["share_code"]
    assert client.get(f"/quizzes/{code}").json()["id"] == quiz["id"]

    opened = client.post(f"/quizzes/{code}/session", headers=PLAYER).json()
    assert opened["state"] == "welcome"

    started = client.post(f"/quizzes/{code}/session/begin", headers=PLAYER).json()
    assert started["state"] == "answering"
    assert "<strong>one</strong>" in started["question"]["question_html"]
    assert started["question"]["options"] == ["X", "Y", "Z", "W"]

    assert client.post(f"/quizzes/{code}/session/next", headers=PLAYER).status_code == 422
    assert client.post(f"/quizzes/{code}/session/answer", json={"value": "nope"}, headers=PLAYER).status_code == 422

    client.post(f"/quizzes/{code}/session/answer", json={"value": "X"}, headers=PLAYER)
    second = client.post(f"/quizzes/{code}/session/next", headers=PLAYER).json()
    assert second["question"]["is_last"] is True

    client.post(f"/quizzes/{code}/session/answer", json={"value": 4}, headers=PLAYER)
    done = client.post(f"/quizzes/{code}/session/submit", headers=PLAYER).json()
    assert done["state"] == "completed"
    assert done["aura_points"] == 18000
    assert done["celebrate"] is False

    # Reopening shows the stored result instead of a new run.
    reopened = client.post(f"/quizzes/{code}/session", headers=PLAYER).json()
    assert reopened["state"] == "completed"
    assert client.post(f"/quizzes/{code}/session/begin", headers=PLAYER).status_code == 409

    mine = client.get("/me/quizzes", headers=PLAYER).json()
    assert [q["id"] for q in mine["taken"]] == [quiz["id"]]


def test_session_actions_need_an_open_session(client):
    quiz = _create_quiz(client)
    response = client.post(f"/quizzes/{quiz['share_code']}/session/begin", headers=PLAYER)
    assert response.status_code == 404
    assert client.post("/quizzes/unknown/session", headers=PLAYER).status_code == 404


def test_analytics_are_for_the_creator_only(client):
    quiz = _create_quiz(client)
    code = quiz["share_code"]
    client.post(f"/quizzes/{code}/session", headers=PLAYER)
    client.post(f"/quizzes/{code}/session/begin", headers=PLAYER)
    client.post(f"/quizzes/{code}/session/answer", json={"value": "Y"}, headers=PLAYER)
    client.post(f"/quizzes/{code}/session/next", headers=PLAYER)
    client.post(f"/quizzes/{code}/session/answer", json={"value": 5}, headers=PLAYER)
    client.post(f"/quizzes/{code}/session/submit", headers=PLAYER)

    assert client.get(f"/quizzes/{code}/analytics", headers=PLAYER).status_code == 403

    analytics = client.get(f"/quizzes/{code}/analytics", headers=CREATOR).json()
    assert analytics["stats"]["total_responses"] == 1
    assert analytics["leaderboard"][0]["aura_points"] == 16000
    assert analytics["leaderboard"][0]["bucket"] == "visionary"
    assert len(analytics["weekdays"]) == 7
    assert analytics["buckets"] == [{"bucket": "visionary", "color": analytics["buckets"][0]["color"], "count": 1}]


def _take_quiz(client, code, headers, answers):
    client.post(f"/quizzes/{code}/session", headers=headers)
    client.post(f"/quizzes/{code}/session/begin", headers=headers)
    for index, value in enumerate(answers):
        client.post(f"/quizzes/{code}/session/answer", json={"value": value}, headers=headers)
        if index < len(answers) - 1:
            client.post(f"/quizzes/{code}/session/next", headers=headers)
    return client.post(f"/quizzes/{code}/session/submit", headers=headers).json()


@pytest.mark.parametrize("limit", [0, -1])
def test_leaderboard_limit_must_be_positive(client, limit):
    code = _create_quiz(client)["share_code"]
    response = client.get(f"/quizzes/{code}/analytics", params={"limit": limit}, headers=CREATOR)
    assert response.status_code == 422


def test_leaderboard_limit_and_response_ids(client):
    code = _create_quiz(client)["share_code"]
    _take_quiz(client, code, PLAYER, ["X", 4])
    _take_quiz(client, code, {"X-User-Id": "user-2"}, ["Z", 1])

    rows = client.get(f"/quizzes/{code}/analytics", params={"limit": 1}, headers=CREATOR).json()["leaderboard"]
    assert len(rows) == 1
    assert rows[0]["respondent_id"] == "user-1"
    assert rows[0]["response_id"]


def test_responses_listing_includes_answers(client):
    quiz = _create_quiz(client)
    code = quiz["share_code"]
    _take_quiz(client, code, PLAYER, ["Y", 5])

    assert client.get(f"/quizzes/{code}/responses", headers=PLAYER).status_code == 403
    listing = client.get(f"/quizzes/{code}/responses", headers=CREATOR).json()
    assert len(listing) == 1
    entry = listing[0]
    assert entry["respondent_id"] == "user-1"
    assert entry["aura_points"] == 16000
    assert entry["bucket"] == "visionary"
    assert [(a["question_id"], a["answer"], a["points"]) for a in entry["answers"]] == [
        (quiz["question_ids"][0], "Y", 6000),
        (quiz["question_ids"][1], 5, 10000),
    ]
    assert entry["answers"][0]["question_text"] == "Pick **one**"


def test_rename_quiz(client):
    code = _create_quiz(client)["share_code"]
    assert client.patch(f"/quizzes/{code}", json={"name": "Hijacked"}, headers=PLAYER).status_code == 403
    assert client.patch(f"/quizzes/{code}", json={"name": "  "}, headers=CREATOR).status_code == 422

    renamed = client.patch(f"/quizzes/{code}", json={"name": "Friday vibes"}, headers=CREATOR)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Friday vibes"
    assert client.get(f"/quizzes/{code}").json()["name"] == "Friday vibes"


def test_delete_quiz(client):
    code = _create_quiz(client)["share_code"]
    _take_quiz(client, code, PLAYER, ["X", 4])

    assert client.delete(f"/quizzes/{code}", headers=PLAYER).status_code == 403
    deleted = client.delete(f"/quizzes/{code}", headers=CREATOR)
    assert deleted.status_code == 204
    assert client.get(f"/quizzes/{code}").status_code == 404
    assert client.delete(f"/quizzes/{code}", headers=CREATOR).status_code == 404
    assert client.get("/me/quizzes", headers=PLAYER).json()["taken"] == []


def test_store_outage_is_reported_as_retryable(clock):
    manager = QuizManager(store=UnavailableStore(clock=clock), clock=clock)
    client = TestClient(create_api_app(manager))
    response = client.get("/quizzes/abc")
    assert response.status_code == 503
    assert response.json()["retryable"] is True
