"""
Test-taking endpoints shared by quizzes, daily tests and the grandtest.
"""

from fastapi import APIRouter, Depends

from assessment.bootstrap import get_engine
from assessment.models import Attempt, AttemptStatus, User
from assessment.schemas.attempt_schemas import (
    AnswerRequest,
    AnswerResponse,
    AttemptResponse,
    AttemptResultResponse,
    PerformanceGroup,
    QuestionResult,
    QuestionView,
    ReviewRequest,
    ReviewResponse,
    ResultBreakdownResponse,
)
from assessment.services.analytics import ResultBreakdown
from assessment.services.attempt_engine import AttemptEngine
from assessment.utils.auth import get_current_user
from assessment.utils.common import iso_format

attempt_routes = APIRouter()


def _attempt_response(engine: AttemptEngine, attempt: Attempt) -> AttemptResponse:
    questions = []
    for r in engine.store.responses(attempt.id):
        q = r.question
        questions.append(
            QuestionView(
                question_id=q.id,
                order_index=r.order_index,
                text=q.text,
                question_type=q.question_type.value,
                options=q.options,
                points=r.points_possible,
                answered=r.is_answered,
                user_answer=r.user_answer,
            )
        )
    return AttemptResponse(
        id=attempt.id,
        test_definition_id=attempt.test_definition_id,
        course_id=attempt.course_id,
        kind=attempt.kind.value,
        day_number=attempt.day_number,
        attempt_number=attempt.attempt_number,
        status=AttemptStatus(attempt.status).value,
        started_at=iso_format(attempt.started_at),
        completed_at=iso_format(attempt.completed_at),
        time_limit_minutes=attempt.time_limit_minutes,
        remaining_seconds=engine.remaining_seconds(attempt),
        passing_score_percentage=attempt.passing_score_percentage,
        total_questions=attempt.total_questions,
        questions=questions,
    )


def _breakdown_response(breakdown: ResultBreakdown) -> ResultBreakdownResponse:
    data = vars(breakdown).copy()
    data["category_performance"] = [PerformanceGroup(**vars(g)) for g in breakdown.category_performance]
    data["difficulty_performance"] = [PerformanceGroup(**vars(g)) for g in breakdown.difficulty_performance]
    return ResultBreakdownResponse(**data)


def _result_response(engine: AttemptEngine, attempt: Attempt) -> AttemptResultResponse:
    certificate = engine.issuer.get_for_attempt(attempt.id)
    breakdown = engine.result_breakdown(attempt.id, owner_id=attempt.owner_id)
    return AttemptResultResponse(
        attempt_id=attempt.id,
        status=AttemptStatus(attempt.status).value,
        score=attempt.score or 0,
        max_score=attempt.max_score or 0,
        percentage=attempt.percentage or 0.0,
        passed=bool(attempt.passed),
        passing_score_percentage=attempt.passing_score_percentage,
        completed_at=iso_format(attempt.completed_at),
        certificate_number=certificate.certificate_number if certificate else None,
        breakdown=_breakdown_response(breakdown),
        results=[
            QuestionResult(
                question_id=r.question_id,
                user_answer=r.user_answer,
                correct_answer=r.question.correct_answer,
                is_correct=bool(r.is_correct),
                points_earned=r.points_earned,
                points_possible=r.points_possible,
                explanation=r.question.explanation,
            )
            for r in engine.store.responses(attempt.id)
        ],
    )


@attempt_routes.post("/tests/{test_id}/attempts", response_model=AttemptResponse)
async def start_attempt(
    test_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> AttemptResponse:
    """Start an attempt, or resume the one already in progress for this test."""
    attempt = engine.start_attempt(current_user.id, test_id)
    return _attempt_response(engine, attempt)


@attempt_routes.get("/attempts/{attempt_id}", response_model=AttemptResponse)
async def get_attempt(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> AttemptResponse:
    attempt = engine.get_attempt(attempt_id, owner_id=current_user.id)
    return _attempt_response(engine, attempt)


@attempt_routes.post("/attempts/{attempt_id}/answers", response_model=AnswerResponse)
async def record_answer(
    attempt_id: str,
    req: AnswerRequest,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> AnswerResponse:
    result = engine.record_answer(
        attempt_id,
        req.question_id,
        req.answer,
        req.time_spent_seconds,
        owner_id=current_user.id,
        skipped=req.skipped,
    )
    return AnswerResponse(
        attempt_id=attempt_id,
        question_id=req.question_id,
        recorded=True,
        answered_at=iso_format(result.response.answered_at),
        skipped=result.skipped,
    )


@attempt_routes.post("/attempts/{attempt_id}/review", response_model=ReviewResponse)
async def review_attempt(
    attempt_id: str,
    req: ReviewRequest,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> ReviewResponse:
    summary = engine.review(attempt_id, req.skipped, owner_id=current_user.id)
    return ReviewResponse(
        attempt_id=summary.attempt_id,
        total_questions=summary.total_questions,
        answered=summary.answered,
        skipped=summary.skipped,
        unanswered=summary.unanswered,
        remaining_seconds=summary.remaining_seconds,
    )


@attempt_routes.post("/attempts/{attempt_id}/finalize", response_model=AttemptResultResponse)
async def finalize_attempt(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> AttemptResultResponse:
    attempt = engine.finalize(attempt_id, owner_id=current_user.id)
    return _result_response(engine, attempt)


@attempt_routes.get("/attempts/{attempt_id}/result", response_model=AttemptResultResponse)
async def attempt_result(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> AttemptResultResponse:
    """Score, per-question results and breakdown of a finished attempt."""
    attempt = engine.get_attempt(attempt_id, owner_id=current_user.id)
    return _result_response(engine, attempt)


@attempt_routes.post("/attempts/{attempt_id}/abandon", response_model=AttemptResponse)
async def abandon_attempt(
    attempt_id: str,
    current_user: User = Depends(get_current_user),
    engine: AttemptEngine = Depends(get_engine),
) -> AttemptResponse:
    attempt = engine.abandon(attempt_id, owner_id=current_user.id)
    return _attempt_response(engine, attempt)
