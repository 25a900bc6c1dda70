"""
Progress endpoints: daily-test unlocks, course completion, grandtest
eligibility and per-test analytics.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from assessment.bootstrap import get_engine
from assessment.config import get_db
from assessment.models import AttemptStatus, User
from assessment.schemas.progress_schemas import (
    CompletionProgressResponse,
    CompletionStatusResponse,
    DailyTestDay,
    DailyTestOverviewResponse,
    DailyTestStatsResponse,
    EligibilityResponse,
    GrandtestAttemptItem,
    GrandtestCourseHistory,
    GrandtestHistoryResponse,
    GrandtestStatsResponse,
    NextDayResponse,
    TestAnalyticsItem,
    TestAnalyticsResponse,
    TestHistoryItem,
    TestHistoryResponse,
    WeeklyStatsItem,
    WeeklyStatsResponse,
)
from assessment.services.analytics import AnalyticsService
from assessment.services.attempt_engine import AttemptEngine
from assessment.utils.auth import get_current_user
from assessment.utils.common import get_enrollment, iso_format, transaction

progress_routes = APIRouter()


def _completion_response(course_id: str, status) -> CompletionStatusResponse:
    return CompletionStatusResponse(
        course_id=course_id,
        lessons_completed=status.lessons_completed,
        total_lessons=status.total_lessons,
        quizzes_completed=status.quizzes_completed,
        total_quizzes=status.total_quizzes,
        is_course_completed=bool(status.is_course_completed),
        grandtest_eligible=bool(status.grandtest_eligible),
        grandtest_passed=bool(status.grandtest_passed),
        certificate_issued=bool(status.certificate_issued),
        last_updated=iso_format(status.last_updated),
    )


# ----- daily tests -----

@progress_routes.get("/courses/{course_id}/daily-tests/next-day", response_model=NextDayResponse)
async def next_available_day(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> NextDayResponse:
    get_enrollment(current_user.id, course_id, engine.db)
    return NextDayResponse(
        course_id=course_id,
        next_available_day=engine.gate.next_available_day(current_user.id, course_id),
        unlock_percentage=engine.gate.unlock_percentage,
    )


@progress_routes.get("/courses/{course_id}/daily-tests", response_model=DailyTestOverviewResponse)
async def daily_test_overview(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> DailyTestOverviewResponse:
    get_enrollment(current_user.id, course_id, engine.db)
    days = engine.gate.daily_test_overview(current_user.id, course_id)
    return DailyTestOverviewResponse(
        course_id=course_id,
        next_available_day=engine.gate.next_available_day(current_user.id, course_id),
        days=[
            DailyTestDay(
                day_number=d.day_number,
                test_definition_id=d.test_definition_id,
                title=d.title,
                status=d.status,
                best_score=d.best_score,
                attempts=d.attempts,
                last_attempt_at=iso_format(d.last_attempt_at),
            )
            for d in days
        ],
    )


@progress_routes.get("/courses/{course_id}/daily-tests/stats", response_model=DailyTestStatsResponse)
async def daily_test_stats(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> DailyTestStatsResponse:
    get_enrollment(current_user.id, course_id, engine.db)
    stats = engine.gate.daily_test_stats(current_user.id, course_id)
    return DailyTestStatsResponse(**vars(stats))


@progress_routes.get("/courses/{course_id}/daily-tests/weekly", response_model=WeeklyStatsResponse)
async def daily_test_weekly_stats(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> WeeklyStatsResponse:
    get_enrollment(current_user.id, course_id, engine.db)
    weeks = engine.gate.weekly_stats(current_user.id, course_id)
    return WeeklyStatsResponse(course_id=course_id, weeks=[WeeklyStatsItem(**vars(w)) for w in weeks])


# ----- completion -----

@progress_routes.post("/courses/{course_id}/lessons/{lesson_id}/complete", response_model=CompletionStatusResponse)
async def complete_lesson(
    course_id: str,
    lesson_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: AttemptEngine = Depends(get_engine),
) -> CompletionStatusResponse:
    enrollment = get_enrollment(current_user.id, course_id, db)
    with transaction(db):
        status = engine.tracker.mark_lesson_completed(current_user.id, course_id, enrollment.id, lesson_id)
    return _completion_response(course_id, status)


@progress_routes.get("/courses/{course_id}/completion", response_model=CompletionStatusResponse)
async def check_completion(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: AttemptEngine = Depends(get_engine),
) -> CompletionStatusResponse:
    """Recompute and return the completion snapshot."""
    enrollment = get_enrollment(current_user.id, course_id, db)
    with transaction(db):
        status = engine.tracker.check_completion(current_user.id, course_id, enrollment.id)
    return _completion_response(course_id, status)


@progress_routes.get("/courses/{course_id}/completion/progress", response_model=CompletionProgressResponse)
async def completion_progress(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> CompletionProgressResponse:
    enrollment = get_enrollment(current_user.id, course_id, engine.db)
    progress = engine.tracker.completion_progress(current_user.id, course_id, enrollment.id)
    return CompletionProgressResponse(course_id=course_id, **vars(progress))


# ----- grandtest -----

@progress_routes.get("/courses/{course_id}/grandtest/eligibility", response_model=EligibilityResponse)
async def grandtest_eligibility(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> EligibilityResponse:
    enrollment = get_enrollment(current_user.id, course_id, engine.db)
    result = engine.guard.can_start_grandtest(current_user.id, course_id, enrollment.id)
    return EligibilityResponse(
        ok=result.ok,
        reason=result.reason,
        message=result.message,
        retry_at=iso_format(result.retry_at),
    )


@progress_routes.get("/courses/{course_id}/grandtest/stats", response_model=GrandtestStatsResponse)
async def grandtest_stats(
    course_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> GrandtestStatsResponse:
    enrollment = get_enrollment(current_user.id, course_id, engine.db)
    stats = engine.guard.grandtest_stats(current_user.id, course_id, enrollment.id)
    return GrandtestStatsResponse(
        total_attempts=stats.total_attempts,
        passed_attempts=stats.passed_attempts,
        average_score=stats.average_score,
        pass_rate=stats.pass_rate,
        last_attempt_at=iso_format(stats.last_attempt_at),
        can_retake=stats.can_retake,
        next_available_at=iso_format(stats.next_available_at),
    )


@progress_routes.get("/grandtest/history", response_model=GrandtestHistoryResponse)
async def grandtest_history(
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> GrandtestHistoryResponse:
    history = engine.guard.grandtest_history(current_user.id)
    return GrandtestHistoryResponse(
        courses=[
            GrandtestCourseHistory(
                course_id=entry["course_id"],
                course_title=entry["course_title"],
                attempts=[
                    GrandtestAttemptItem(
                        attempt_id=a.id,
                        attempt_number=a.attempt_number,
                        status=AttemptStatus(a.status).value,
                        percentage=a.percentage,
                        passed=bool(a.passed),
                        started_at=iso_format(a.started_at),
                        completed_at=iso_format(a.completed_at),
                    )
                    for a in entry["attempts"]
                ],
            )
            for entry in history
        ]
    )


# ----- analytics -----

@progress_routes.get("/analytics/tests", response_model=TestAnalyticsResponse)
async def get_test_analytics(
    test_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TestAnalyticsResponse:
    rows = AnalyticsService(db).test_analytics(current_user.id, test_id)
    return TestAnalyticsResponse(
        tests=[
            TestAnalyticsItem(
                test_definition_id=t.test_definition_id,
                title=t.title,
                kind=t.kind,
                total_attempts=t.total_attempts,
                best_score=t.best_score,
                average_score=t.average_score,
                last_attempted_at=iso_format(t.last_attempted_at),
                first_passed_at=iso_format(t.first_passed_at),
            )
            for t in rows
        ]
    )


@progress_routes.get("/analytics/history", response_model=TestHistoryResponse)
async def get_test_history(
    test_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TestHistoryResponse:
    attempts = AnalyticsService(db).test_history(current_user.id, test_id)
    return TestHistoryResponse(
        attempts=[
            TestHistoryItem(
                attempt_id=a.id,
                test_definition_id=a.test_definition_id,
                course_id=a.course_id,
                kind=a.kind.value,
                attempt_number=a.attempt_number,
                status=AttemptStatus(a.status).value,
                percentage=a.percentage,
                passed=bool(a.passed),
                started_at=iso_format(a.started_at),
                completed_at=iso_format(a.completed_at),
            )
            for a in attempts
        ]
    )
