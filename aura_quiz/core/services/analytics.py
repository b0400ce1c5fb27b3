"""Aggregations over stored responses for the creator's analytics view."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import math

from aura_quiz.constants.quiz_constants import RECENT_ACTIVITY_WINDOW_HOURS
from aura_quiz.constants.scoring_constants import DEFAULT_MAX_POINTS
from aura_quiz.core.models import Question, QuizDefinition, Response
from aura_quiz.core.response_scorer import coerce_scale_answer, question_contribution
from aura_quiz.core.scoring import BUCKET_ORDER, AuraBucket, bucket_for, max_points_for

WEEKDAY_NAMES: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(slots=True, frozen=True)
class LeaderboardRow:
    """One respondent's place on the leaderboard."""

    rank: int
    response_id: str
    respondent_id: str
    aura_points: int
    bucket: AuraBucket


@dataclass(slots=True, frozen=True)
class AnswerShare:
    label: str
    count: int
    percentage: int


@dataclass(slots=True, frozen=True)
class BucketCount:
    bucket: AuraBucket
    count: int


@dataclass(slots=True, frozen=True)
class DailyCount:
    day: date
    count: int


@dataclass(slots=True, frozen=True)
class WeekdayCount:
    weekday: str
    count: int


@dataclass(slots=True, frozen=True)
class SummaryStats:
    total_responses: int
    average_aura_points: int
    recent_responses: int


@dataclass(slots=True, frozen=True)
class QuizAnalytics:
    """Everything the analytics page shows for one quiz."""

    quiz_id: str
    max_points: int
    stats: SummaryStats
    leaderboard: list[LeaderboardRow] = field(default_factory=list)
    breakdowns: dict[str, list[AnswerShare]] = field(default_factory=dict)
    buckets: list[BucketCount] = field(default_factory=list)
    timeline: list[DailyCount] = field(default_factory=list)
    weekdays: list[WeekdayCount] = field(default_factory=list)


def build_leaderboard(
    responses: Sequence[Response],
    max_points: int = DEFAULT_MAX_POINTS,
    limit: int | None = None,
) -> list[LeaderboardRow]:
    """Rank responses by aura points, highest first.

    ``sorted`` is stable, so among equal scores the response that came first in
    ``responses`` (store order, i.e. submission order) ranks higher.
    """
    ordered = sorted(responses, key=lambda r: -r.aura_points)
    if limit is not None:
        ordered = ordered[:limit]
    return [
        LeaderboardRow(
            rank=position,
            response_id=response.id,
            respondent_id=response.respondent_id,
            aura_points=response.aura_points,
            bucket=bucket_for(response.aura_points, max_points),
        )
        for position, response in enumerate(ordered, start=1)
    ]


def question_breakdown(question: Question, responses: Iterable[Response]) -> list[AnswerShare]:
    """Count how often each answer was given to ``question``.

    Only answers that were actually chosen are listed. Percentages are of the
    responses that answered this question and are rounded half up.
    """
    counts: Counter[str] = Counter()
    numeric_values: dict[str, float] = {}
    for response in responses:
        answers = response.answers if isinstance(response.answers, dict) else {}
        if question.id not in answers or answers[question.id] is None:
            continue
        raw = answers[question.id]
        label = answer_label(raw)
        counts[label] += 1
        if not question.is_ranked:
            value = coerce_scale_answer(raw)
            numeric_values[label] = value if value is not None else math.inf

    answered = sum(counts.values())
    if not answered:
        return []

    if question.is_ranked:
        known = [option for option in question.options if option in counts]
        unknown = [label for label in counts if label not in question.options]
        labels = known + unknown
    else:
        labels = sorted(counts, key=lambda label: numeric_values[label])

    return [
        AnswerShare(label=label, count=counts[label], percentage=_percent(counts[label], answered))
        for label in labels
    ]


def bucket_distribution(
    responses: Iterable[Response], max_points: int = DEFAULT_MAX_POINTS
) -> list[BucketCount]:
    """Responses per aura bucket, best bucket first, without empty buckets."""
    counts = Counter(bucket_for(response.aura_points, max_points) for response in responses)
    return [BucketCount(bucket=b, count=counts[b]) for b in BUCKET_ORDER if counts[b] > 0]


def participation_timeline(responses: Iterable[Response]) -> list[DailyCount]:
    counts = Counter(response.created_at.date() for response in responses)
    return [DailyCount(day=day, count=counts[day]) for day in sorted(counts)]


def weekday_pattern(responses: Iterable[Response]) -> list[WeekdayCount]:
    """Responses per day of week, Monday first. All seven days are always present."""
    counts = Counter(response.created_at.weekday() for response in responses)
    return [WeekdayCount(weekday=name, count=counts[i]) for i, name in enumerate(WEEKDAY_NAMES)]


def summary_stats(responses: Sequence[Response], now: datetime) -> SummaryStats:
    total = len(responses)
    average = _round_half_up(sum(r.aura_points for r in responses) / total) if total else 0
    window_start = now - timedelta(hours=RECENT_ACTIVITY_WINDOW_HOURS)
    recent = sum(1 for r in responses if window_start <= r.created_at <= now)
    return SummaryStats(total_responses=total, average_aura_points=average, recent_responses=recent)


def build_quiz_analytics(
    definition: QuizDefinition,
    responses: Sequence[Response],
    now: datetime,
    leaderboard_limit: int | None = None,
) -> QuizAnalytics:
    max_points = max_points_for(definition.scoring_keys()) or DEFAULT_MAX_POINTS
    return QuizAnalytics(
        quiz_id=definition.quiz.id,
        max_points=max_points,
        stats=summary_stats(responses, now),
        leaderboard=build_leaderboard(responses, max_points, leaderboard_limit),
        breakdowns={
            item.question_id: question_breakdown(item.question, responses)
            for item in definition.questions
        },
        buckets=bucket_distribution(responses, max_points),
        timeline=participation_timeline(responses),
        weekdays=weekday_pattern(responses),
    )


@dataclass(slots=True, frozen=True)
class AnswerDetail:
    """One answer inside a respondent's response, with the points it earned."""

    question_id: str
    question_text: str
    answer: object
    points: int


@dataclass(slots=True, frozen=True)
class ResponseDetail:
    """A respondent's full response as the creator sees it."""

    response_id: str
    respondent_id: str
    aura_points: int
    bucket: AuraBucket
    created_at: datetime
    answers: list[AnswerDetail] = field(default_factory=list)


def describe_responses(
    definition: QuizDefinition, responses: Sequence[Response]
) -> list[ResponseDetail]:
    """Each response in store order, with its answers in quiz order.

    Unanswered questions are listed with ``answer=None`` and zero points.
    """
    max_points = max_points_for(definition.scoring_keys()) or DEFAULT_MAX_POINTS
    details: list[ResponseDetail] = []
    for response in responses:
        answers = response.answers if isinstance(response.answers, dict) else {}
        details.append(
            ResponseDetail(
                response_id=response.id,
                respondent_id=response.respondent_id,
                aura_points=response.aura_points,
                bucket=bucket_for(response.aura_points, max_points),
                created_at=response.created_at,
                answers=[
                    AnswerDetail(
                        question_id=item.question_id,
                        question_text=item.question.text,
                        answer=answers.get(item.question_id),
                        points=_round_half_up(
                            question_contribution(item.scoring_key(), answers.get(item.question_id))
                        ),
                    )
                    for item in definition.questions
                ],
            )
        )
    return details


def answer_label(raw: object) -> str:
    """Display label for a raw answer; whole numbers drop their ``.0``."""
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw)


def _percent(count: int, total: int) -> int:
    return _round_half_up(100 * count / total)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
