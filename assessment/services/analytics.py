"""
Learner-facing performance numbers: the breakdown shown after an attempt
and per-test analytics / history across attempts.

Everything is derived from attempts and responses on read; nothing here
writes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from assessment.models import Attempt, AttemptStatus, Response, TestDefinition
from assessment.services.attempt_store import SCORED_STATUSES

EXCELLENT_PERCENTAGE = 90.0
UNCATEGORIZED = "Uncategorized"


@dataclass
class GroupPerformance:
    name: str
    questions: int
    correct_answers: int
    percentage: float


@dataclass
class ResultBreakdown:
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    skipped_questions: int
    percentage: float
    time_taken_seconds: Optional[int]
    category_performance: list[GroupPerformance] = field(default_factory=list)
    difficulty_performance: list[GroupPerformance] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class TestAnalytics:
    __test__ = False  # not a pytest class

    test_definition_id: str
    title: str
    kind: str
    total_attempts: int
    best_score: float
    average_score: float
    last_attempted_at: Optional[datetime]
    first_passed_at: Optional[datetime]


def _group(responses: Iterable[Response], key: Callable[[Response], str]) -> list[GroupPerformance]:
    totals: dict[str, list[int]] = {}
    for r in responses:
        counts = totals.setdefault(key(r), [0, 0])
        counts[0] += 1
        if r.is_correct:
            counts[1] += 1
    return [
        GroupPerformance(name=name, questions=n, correct_answers=c, percentage=round(c / n * 100, 2))
        for name, (n, c) in sorted(totals.items())
    ]


def recommendations(percentage: float, passing_percentage: float, categories: list[GroupPerformance]) -> list[str]:
    out: list[str] = []
    if percentage < passing_percentage:
        out.append("Review the course material before retaking the test")
    weak = [c.name for c in categories if c.percentage < passing_percentage]
    if weak:
        out.append(f"Focus on improving knowledge in: {', '.join(weak)}")
    if percentage >= EXCELLENT_PERCENTAGE:
        out.append("Excellent performance! You are ready for more advanced topics")
    return out


def build_breakdown(attempt: Attempt, responses: list[Response]) -> ResultBreakdown:
    """Counts, per-category and per-difficulty scores and advice for a finished attempt."""
    answered = [r for r in responses if r.is_answered]
    correct = sum(1 for r in answered if r.is_correct)
    percentage = float(attempt.percentage or 0.0)
    categories = _group(responses, lambda r: r.question.category or UNCATEGORIZED)
    time_taken = None
    if attempt.completed_at is not None:
        time_taken = int((attempt.completed_at - attempt.started_at).total_seconds())
    return ResultBreakdown(
        total_questions=len(responses),
        correct_answers=correct,
        incorrect_answers=len(answered) - correct,
        skipped_questions=len(responses) - len(answered),
        percentage=percentage,
        time_taken_seconds=time_taken,
        category_performance=categories,
        difficulty_performance=_group(responses, lambda r: r.question.difficulty.value),
        recommendations=recommendations(percentage, attempt.passing_score_percentage, categories),
    )


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def test_history(self, owner_id: int, test_definition_id: Optional[str] = None) -> list[Attempt]:
        """Every attempt of the learner, newest first, optionally for one test."""
        q = self.db.query(Attempt).filter(Attempt.owner_id == owner_id)
        if test_definition_id is not None:
            q = q.filter(Attempt.test_definition_id == test_definition_id)
        return q.order_by(Attempt.started_at.desc(), Attempt.attempt_number.desc()).all()

    def test_analytics(self, owner_id: int, test_definition_id: Optional[str] = None) -> list[TestAnalytics]:
        """One row per test with at least one scored attempt, most recently attempted first."""
        scored: dict[str, list[Attempt]] = {}
        for a in reversed(self.test_history(owner_id, test_definition_id)):
            if AttemptStatus(a.status) in SCORED_STATUSES:
                scored.setdefault(a.test_definition_id, []).append(a)
        if not scored:
            return []

        definitions = {
            d.id: d
            for d in self.db.query(TestDefinition).filter(TestDefinition.id.in_(list(scored))).all()
        }
        out: list[TestAnalytics] = []
        for definition_id, attempts in scored.items():
            scores = [float(a.percentage or 0.0) for a in attempts]
            passed = [a for a in attempts if a.passed]
            definition = definitions.get(definition_id)
            out.append(
                TestAnalytics(
                    test_definition_id=definition_id,
                    title=definition.title if definition else definition_id,
                    kind=attempts[0].kind.value,
                    total_attempts=len(attempts),
                    best_score=max(scores),
                    average_score=round(sum(scores) / len(scores), 2),
                    last_attempted_at=attempts[-1].started_at,
                    first_passed_at=(passed[0].completed_at or passed[0].started_at) if passed else None,
                )
            )
        out.sort(key=lambda t: t.last_attempted_at or datetime.min, reverse=True)
        return out
