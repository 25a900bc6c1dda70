"""
Assessment API schemas. Import from submodules or from this package.

Example:
    from assessment.schemas import AttemptResponse, VerifyCertificateRequest
    from assessment.schemas.attempt_schemas import AttemptResponse
"""

from assessment.schemas.auth_schemas import AuthTokenPayload
from assessment.schemas.attempt_schemas import (
    Answer,
    QuestionView,
    AttemptResponse,
    AnswerRequest,
    AnswerResponse,
    ReviewRequest,
    ReviewResponse,
    QuestionResult,
    PerformanceGroup,
    ResultBreakdownResponse,
    AttemptResultResponse,
)
from assessment.schemas.progress_schemas import (
    NextDayResponse,
    DailyTestDay,
    DailyTestOverviewResponse,
    DailyTestStatsResponse,
    CompletionStatusResponse,
    CompletionProgressResponse,
    EligibilityResponse,
    GrandtestStatsResponse,
    GrandtestAttemptItem,
    GrandtestCourseHistory,
    GrandtestHistoryResponse,
    WeeklyStatsItem,
    WeeklyStatsResponse,
    TestAnalyticsItem,
    TestAnalyticsResponse,
    TestHistoryItem,
    TestHistoryResponse,
)
from assessment.schemas.certificate_schemas import (
    CertificateResponse,
    CertificateListResponse,
    VerifyCertificateRequest,
    VerifyCertificateResponse,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    # attempts
    "Answer",
    "QuestionView",
    "AttemptResponse",
    "AnswerRequest",
    "AnswerResponse",
    "ReviewRequest",
    "ReviewResponse",
    "QuestionResult",
    "PerformanceGroup",
    "ResultBreakdownResponse",
    "AttemptResultResponse",
    # progress
    "NextDayResponse",
    "DailyTestDay",
    "DailyTestOverviewResponse",
    "DailyTestStatsResponse",
    "CompletionStatusResponse",
    "CompletionProgressResponse",
    "EligibilityResponse",
    "GrandtestStatsResponse",
    "GrandtestAttemptItem",
    "GrandtestCourseHistory",
    "GrandtestHistoryResponse",
    "WeeklyStatsItem",
    "WeeklyStatsResponse",
    "TestAnalyticsItem",
    "TestAnalyticsResponse",
    "TestHistoryItem",
    "TestHistoryResponse",
    # certificates
    "CertificateResponse",
    "CertificateListResponse",
    "VerifyCertificateRequest",
    "VerifyCertificateResponse",
]
