"""
Daily-test progression, course completion, grandtest eligibility and
per-test analytics schemas.
"""

from pydantic import BaseModel
from typing import Optional


class NextDayResponse(BaseModel):
    course_id: str
    next_available_day: int
    unlock_percentage: float


class DailyTestDay(BaseModel):
    day_number: int
    test_definition_id: str
    title: str
    status: str  # locked | unlocked | in_progress | passed | failed
    best_score: Optional[float] = None
    attempts: int
    last_attempt_at: Optional[str] = None


class DailyTestOverviewResponse(BaseModel):
    course_id: str
    next_available_day: int
    days: list[DailyTestDay]


class DailyTestStatsResponse(BaseModel):
    total_tests: int
    completed_tests: int
    passed_tests: int
    failed_tests: int
    average_score: float
    current_streak: int
    longest_streak: int
    total_time_minutes: int


class CompletionStatusResponse(BaseModel):
    course_id: str
    lessons_completed: int
    total_lessons: int
    quizzes_completed: int
    total_quizzes: int
    is_course_completed: bool
    grandtest_eligible: bool
    grandtest_passed: bool
    certificate_issued: bool
    last_updated: str


class CompletionProgressResponse(BaseModel):
    course_id: str
    lessons_progress: float
    quizzes_progress: float
    overall_progress: float
    is_completed: bool
    grandtest_eligible: bool


class EligibilityResponse(BaseModel):
    ok: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    retry_at: Optional[str] = None


class GrandtestStatsResponse(BaseModel):
    total_attempts: int
    passed_attempts: int
    average_score: float
    pass_rate: float
    last_attempt_at: Optional[str] = None
    can_retake: bool
    next_available_at: Optional[str] = None


class GrandtestAttemptItem(BaseModel):
    attempt_id: str
    attempt_number: int
    status: str
    percentage: Optional[float] = None
    passed: bool
    started_at: str
    completed_at: Optional[str] = None


class GrandtestCourseHistory(BaseModel):
    course_id: str
    course_title: str
    attempts: list[GrandtestAttemptItem]


class GrandtestHistoryResponse(BaseModel):
    courses: list[GrandtestCourseHistory]


class WeeklyStatsItem(BaseModel):
    week_number: int
    tests_available: int
    tests_completed: int
    tests_passed: int
    average_score: float
    longest_streak: int


class WeeklyStatsResponse(BaseModel):
    course_id: str
    weeks: list[WeeklyStatsItem]


class TestAnalyticsItem(BaseModel):
    test_definition_id: str
    title: str
    kind: str
    total_attempts: int
    best_score: float
    average_score: float
    last_attempted_at: Optional[str] = None
    first_passed_at: Optional[str] = None


class TestAnalyticsResponse(BaseModel):
    tests: list[TestAnalyticsItem]


class TestHistoryItem(BaseModel):
    attempt_id: str
    test_definition_id: str
    course_id: str
    kind: str
    attempt_number: int
    status: str
    percentage: Optional[float] = None
    passed: bool
    started_at: str
    completed_at: Optional[str] = None


class TestHistoryResponse(BaseModel):
    attempts: list[TestHistoryItem]
