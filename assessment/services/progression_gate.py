"""
Sequential unlock of daily tests.

Day 1 is always open. Day d+1 opens once day d has a scored attempt at or
above the unlock percentage; the scan stops at the first day that does not.
Nothing here is cached: every call reflects the latest attempts.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from assessment.config import settings
from assessment.errors import DayLocked
from assessment.models import Attempt, AttemptStatus, TestDefinition, TestKind
from assessment.services.attempt_store import SCORED_STATUSES

DAYS_PER_WEEK = 7


@dataclass
class DayState:
    day_number: int
    test_definition_id: str
    title: str
    status: str  # locked | unlocked | in_progress | passed | failed
    best_score: Optional[float]
    attempts: int
    last_attempt_at: Optional[datetime]


@dataclass
class DailyTestStats:
    total_tests: int
    completed_tests: int
    passed_tests: int
    failed_tests: int
    average_score: float
    current_streak: int
    longest_streak: int
    total_time_minutes: int


@dataclass
class WeeklyStats:
    week_number: int
    tests_available: int
    tests_completed: int
    tests_passed: int
    average_score: float
    longest_streak: int


class ProgressionGate:
    def __init__(self, db: Session, unlock_percentage: Optional[float] = None):
        self.db = db
        self.unlock_percentage = (
            settings.daily_test_unlock_percentage if unlock_percentage is None else unlock_percentage
        )

    def _daily_definitions(self, course_id: str) -> list[TestDefinition]:
        return (
            self.db.query(TestDefinition)
            .filter(
                TestDefinition.course_id == course_id,
                TestDefinition.kind == TestKind.DAILY_TEST,
                TestDefinition.is_active.is_(True),
            )
            .order_by(TestDefinition.day_number.asc())
            .all()
        )

    def _attempts_by_definition(self, owner_id: int, course_id: str) -> dict[str, list[Attempt]]:
        rows = (
            self.db.query(Attempt)
            .filter(
                Attempt.owner_id == owner_id,
                Attempt.course_id == course_id,
                Attempt.kind == TestKind.DAILY_TEST,
            )
            .order_by(Attempt.started_at.asc())
            .all()
        )
        grouped: dict[str, list[Attempt]] = {}
        for a in rows:
            grouped.setdefault(a.test_definition_id, []).append(a)
        return grouped

    @staticmethod
    def _best_score(attempts: list[Attempt]) -> Optional[float]:
        scores = [float(a.percentage or 0.0) for a in attempts if AttemptStatus(a.status) in SCORED_STATUSES]
        return max(scores) if scores else None

    def _passed_day(self, attempts: list[Attempt]) -> bool:
        best = self._best_score(attempts)
        return best is not None and best >= self.unlock_percentage

    def next_available_day(self, owner_id: int, course_id: str) -> int:
        by_day = {d.day_number: d for d in self._daily_definitions(course_id)}
        attempts = self._attempts_by_definition(owner_id, course_id)
        day = 1
        while day in by_day and self._passed_day(attempts.get(by_day[day].id, [])):
            day += 1
        return day

    def ensure_unlocked(self, owner_id: int, course_id: str, day_number: int) -> None:
        next_day = self.next_available_day(owner_id, course_id)
        if day_number > next_day:
            raise DayLocked(
                f"You must pass Day {day_number - 1} with {self.unlock_percentage:g}% or higher "
                f"to unlock Day {day_number}",
                requested_day=day_number,
                next_available_day=next_day,
                required_day=day_number - 1,
                required_percentage=self.unlock_percentage,
            )

    def daily_test_overview(self, owner_id: int, course_id: str) -> list[DayState]:
        definitions = self._daily_definitions(course_id)
        attempts = self._attempts_by_definition(owner_id, course_id)
        next_day = self.next_available_day(owner_id, course_id)
        out: list[DayState] = []
        for d in definitions:
            day_attempts = attempts.get(d.id, [])
            best = self._best_score(day_attempts)
            if any(AttemptStatus(a.status) is AttemptStatus.IN_PROGRESS for a in day_attempts):
                status = "in_progress"
            elif best is not None and best >= self.unlock_percentage:
                status = "passed"
            elif best is not None:
                status = "failed"
            elif d.day_number <= next_day:
                status = "unlocked"
            else:
                status = "locked"
            out.append(
                DayState(
                    day_number=d.day_number,
                    test_definition_id=d.id,
                    title=d.title,
                    status=status,
                    best_score=best,
                    attempts=len(day_attempts),
                    last_attempt_at=day_attempts[-1].started_at if day_attempts else None,
                )
            )
        return out

    def daily_test_stats(self, owner_id: int, course_id: str) -> DailyTestStats:
        overview = self.daily_test_overview(owner_id, course_id)
        attempts = self._attempts_by_definition(owner_id, course_id)

        completed = [d for d in overview if d.status in ("passed", "failed")]
        passed = [d for d in completed if d.status == "passed"]
        average = sum(d.best_score or 0.0 for d in completed) / len(completed) if completed else 0.0

        current_streak = 0
        for d in overview:
            if d.status != "passed":
                break
            current_streak += 1

        longest_streak = run = 0
        for d in overview:
            run = run + 1 if d.status == "passed" else 0
            longest_streak = max(longest_streak, run)

        total_seconds = 0.0
        for day_attempts in attempts.values():
            for a in day_attempts:
                if a.completed_at is not None and AttemptStatus(a.status) in SCORED_STATUSES:
                    total_seconds += (a.completed_at - a.started_at).total_seconds()

        return DailyTestStats(
            total_tests=len(overview),
            completed_tests=len(completed),
            passed_tests=len(passed),
            failed_tests=len(completed) - len(passed),
            average_score=round(average, 2),
            current_streak=current_streak,
            longest_streak=longest_streak,
            total_time_minutes=int(round(total_seconds / 60)),
        )

    def weekly_stats(self, owner_id: int, course_id: str, weeks: Optional[int] = None) -> list[WeeklyStats]:
        """
        Daily tests grouped into weeks of seven days (days 1-7 are week 1).
        Covers every week that has a daily test unless `weeks` is given.
        """
        overview = self.daily_test_overview(owner_id, course_id)
        if weeks is None:
            last_day = max((d.day_number for d in overview), default=0)
            weeks = math.ceil(last_day / DAYS_PER_WEEK)

        out: list[WeeklyStats] = []
        for week in range(1, weeks + 1):
            first, last = (week - 1) * DAYS_PER_WEEK + 1, week * DAYS_PER_WEEK
            days = [d for d in overview if first <= d.day_number <= last]
            completed = [d for d in days if d.status in ("passed", "failed")]
            average = sum(d.best_score or 0.0 for d in completed) / len(completed) if completed else 0.0

            longest = run = 0
            for d in days:
                run = run + 1 if d.status == "passed" else 0
                longest = max(longest, run)

            out.append(
                WeeklyStats(
                    week_number=week,
                    tests_available=len(days),
                    tests_completed=len(completed),
                    tests_passed=sum(1 for d in completed if d.status == "passed"),
                    average_score=round(average, 2),
                    longest_streak=longest,
                )
            )
        return out
