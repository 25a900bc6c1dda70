"""
Grandtest start gate.

A learner may start the grandtest only once the course is complete, while
not yet passed, and no sooner than the cooldown after the previous attempt.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from assessment.config import settings
from assessment.errors import AlreadyPassed, CooldownActive, NotCompleted, NotEligible, PolicyError
from assessment.models import Attempt, AttemptStatus, Course, TestKind
from assessment.services.attempt_store import SCORED_STATUSES
from assessment.services.completion_tracker import CompletionTracker
from assessment.utils.common import utcnow
from assessment.utils.logger import get_logger

logger = get_logger(__name__)

_ERRORS = {
    "NOT_COMPLETED": NotCompleted,
    "NOT_ELIGIBLE": NotEligible,
    "ALREADY_PASSED": AlreadyPassed,
    "COOLDOWN_ACTIVE": CooldownActive,
}


@dataclass
class EligibilityResult:
    ok: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    retry_at: Optional[datetime] = None

    def to_error(self) -> PolicyError:
        details = {"retry_at": self.retry_at} if self.retry_at else {}
        return _ERRORS[self.reason](self.message, **details)


@dataclass
class GrandtestStats:
    total_attempts: int
    passed_attempts: int
    average_score: float
    pass_rate: float
    last_attempt_at: Optional[datetime]
    can_retake: bool
    next_available_at: Optional[datetime]


class EligibilityGuard:
    def __init__(
        self,
        db: Session,
        tracker: Optional[CompletionTracker] = None,
        cooldown_hours: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.tracker = tracker or CompletionTracker(db)
        self.cooldown = timedelta(hours=settings.grandtest_cooldown_hours if cooldown_hours is None else cooldown_hours)
        self.clock = clock

    def _grandtest_attempts(self, user_id: int, course_id: str) -> list[Attempt]:
        return (
            self.db.query(Attempt)
            .filter(
                Attempt.owner_id == user_id,
                Attempt.course_id == course_id,
                Attempt.kind == TestKind.GRANDTEST,
            )
            .order_by(Attempt.started_at.desc())
            .all()
        )

    def can_start_grandtest(self, user_id: int, course_id: str, enrollment_id: str) -> EligibilityResult:
        status = self.tracker.get_status(user_id, course_id, enrollment_id)
        if status is None or not status.is_course_completed:
            return EligibilityResult(
                False, "NOT_COMPLETED", "Complete all lessons and quizzes before taking the grandtest"
            )
        if not status.grandtest_eligible:
            return EligibilityResult(False, "NOT_ELIGIBLE", "You are not eligible for the grandtest yet")
        if status.grandtest_passed:
            return EligibilityResult(False, "ALREADY_PASSED", "You have already passed the grandtest")

        attempts = self._grandtest_attempts(user_id, course_id)
        if attempts:
            retry_at = attempts[0].started_at + self.cooldown
            if self.clock() < retry_at:
                hours = int(self.cooldown.total_seconds() // 3600)
                return EligibilityResult(
                    False,
                    "COOLDOWN_ACTIVE",
                    f"You can retake the grandtest {hours} hours after your last attempt",
                    retry_at,
                )
        return EligibilityResult(True)

    def ensure(self, user_id: int, course_id: str, enrollment_id: str) -> None:
        result = self.can_start_grandtest(user_id, course_id, enrollment_id)
        if not result.ok:
            logger.warning("grandtest blocked user=%s course=%s reason=%s", user_id, course_id, result.reason)
            raise result.to_error()

    def grandtest_stats(self, user_id: int, course_id: str, enrollment_id: str) -> GrandtestStats:
        attempts = self._grandtest_attempts(user_id, course_id)
        scored = [a for a in attempts if AttemptStatus(a.status) in SCORED_STATUSES]
        passed = [a for a in scored if a.passed]
        average = sum(float(a.percentage or 0.0) for a in scored) / len(scored) if scored else 0.0

        result = self.can_start_grandtest(user_id, course_id, enrollment_id)
        next_available_at = None
        if attempts and not passed:
            next_available_at = attempts[0].started_at + self.cooldown

        return GrandtestStats(
            total_attempts=len(scored),
            passed_attempts=len(passed),
            average_score=round(average, 2),
            pass_rate=round(len(passed) / len(scored) * 100, 2) if scored else 0.0,
            last_attempt_at=attempts[0].started_at if attempts else None,
            can_retake=result.ok,
            next_available_at=next_available_at,
        )

    def grandtest_history(self, user_id: int) -> list[dict]:
        """Scored grandtest attempts of a learner grouped per course, newest first."""
        rows = (
            self.db.query(Attempt, Course.title)
            .join(Course, Course.id == Attempt.course_id)
            .filter(
                Attempt.owner_id == user_id,
                Attempt.kind == TestKind.GRANDTEST,
                Attempt.status.in_(SCORED_STATUSES),
            )
            .order_by(Attempt.started_at.desc())
            .all()
        )
        grouped: dict[str, dict] = {}
        for attempt, title in rows:
            entry = grouped.setdefault(
                attempt.course_id,
                {"course_id": attempt.course_id, "course_title": title, "attempts": []},
            )
            entry["attempts"].append(attempt)
        return list(grouped.values())
