"""
Assessment data models. Single import surface for DB entities and enums.

Catalog (assessment.models.models):
- User, Course, Module, Lesson, Enrollment, LessonProgress, Question,
  TestDefinition, TestQuestion; QuestionType, Difficulty, TestKind

Attempts (assessment.models.attempt):
- Attempt, Response, AttemptStatus

Outcomes (assessment.models.certificate):
- CourseCompletionStatus, Certificate
"""

from assessment.models.models import (
    User,
    Course,
    Module,
    Lesson,
    Enrollment,
    LessonProgress,
    Question,
    TestDefinition,
    TestQuestion,
    QuestionType,
    Difficulty,
    TestKind,
)
from assessment.models.attempt import Attempt, Response, AttemptStatus
from assessment.models.certificate import CourseCompletionStatus, Certificate

__all__ = [
    "User",
    "Course",
    "Module",
    "Lesson",
    "Enrollment",
    "LessonProgress",
    "Question",
    "TestDefinition",
    "TestQuestion",
    "QuestionType",
    "Difficulty",
    "TestKind",
    "Attempt",
    "Response",
    "AttemptStatus",
    "CourseCompletionStatus",
    "Certificate",
]
