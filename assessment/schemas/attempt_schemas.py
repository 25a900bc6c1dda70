"""
Attempt lifecycle schemas: start, answer, review, finalize.

Correct answers are only included in the result of a finished attempt.
"""

from pydantic import BaseModel, Field
from typing import Optional, Union

Answer = Union[str, bool, list[str]]


class QuestionView(BaseModel):
    question_id: str
    order_index: int
    text: str
    question_type: str
    options: Optional[list[dict]] = None
    points: int
    answered: bool
    user_answer: Optional[Answer] = None


class AttemptResponse(BaseModel):
    id: str
    test_definition_id: str
    course_id: str
    kind: str
    day_number: Optional[int] = None
    attempt_number: int
    status: str
    started_at: str
    completed_at: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    remaining_seconds: Optional[int] = None  # None = untimed
    passing_score_percentage: float
    total_questions: int
    questions: list[QuestionView]


class AnswerRequest(BaseModel):
    question_id: str
    answer: Optional[Answer] = None
    time_spent_seconds: int = 0
    skipped: list[str] = Field(default_factory=list)  # client-side skip set, echoed back


class AnswerResponse(BaseModel):
    attempt_id: str
    question_id: str
    recorded: bool
    answered_at: Optional[str] = None
    skipped: list[str]


class ReviewRequest(BaseModel):
    skipped: list[str] = Field(default_factory=list)


class ReviewResponse(BaseModel):
    attempt_id: str
    total_questions: int
    answered: list[str]
    skipped: list[str]
    unanswered: list[str]
    remaining_seconds: Optional[int] = None


class QuestionResult(BaseModel):
    question_id: str
    user_answer: Optional[Answer] = None
    correct_answer: Optional[Answer] = None
    is_correct: bool
    points_earned: int
    points_possible: int
    explanation: Optional[str] = None


class PerformanceGroup(BaseModel):
    name: str
    questions: int
    correct_answers: int
    percentage: float


class ResultBreakdownResponse(BaseModel):
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    skipped_questions: int
    percentage: float
    time_taken_seconds: Optional[int] = None
    category_performance: list[PerformanceGroup]
    difficulty_performance: list[PerformanceGroup]
    recommendations: list[str]


class AttemptResultResponse(BaseModel):
    attempt_id: str
    status: str
    score: int
    max_score: int
    percentage: float
    passed: bool
    passing_score_percentage: float
    completed_at: Optional[str] = None
    certificate_number: Optional[str] = None
    breakdown: ResultBreakdownResponse
    results: list[QuestionResult]
