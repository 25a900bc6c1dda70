"""
Course completion snapshot.

The snapshot is rewritten every time a lesson is completed or a quiz /
grandtest attempt is finalized, so it is never more than one event stale.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from assessment.errors import NotFoundError
from assessment.models import (
    Attempt,
    Certificate,
    Course,
    CourseCompletionStatus,
    Lesson,
    LessonProgress,
    Module,
    TestDefinition,
    TestKind,
)
from assessment.utils.common import new_id, utcnow
from assessment.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CompletionProgress:
    lessons_progress: float
    quizzes_progress: float
    overall_progress: float
    is_completed: bool
    grandtest_eligible: bool


class CompletionTracker:
    def __init__(self, db: Session):
        self.db = db

    def get_status(self, user_id: int, course_id: str, enrollment_id: str) -> Optional[CourseCompletionStatus]:
        return (
            self.db.query(CourseCompletionStatus)
            .filter(
                CourseCompletionStatus.user_id == user_id,
                CourseCompletionStatus.course_id == course_id,
                CourseCompletionStatus.enrollment_id == enrollment_id,
            )
            .first()
        )

    def check_completion(self, user_id: int, course_id: str, enrollment_id: str) -> CourseCompletionStatus:
        """Recount lessons and quizzes and upsert the snapshot. Flushes; the caller commits."""
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFoundError("Course not found", code="COURSE_NOT_FOUND", course_id=course_id)

        lesson_ids = [
            lid
            for (lid,) in self.db.query(Lesson.id)
            .join(Module, Module.id == Lesson.module_id)
            .filter(Module.course_id == course_id, Lesson.is_active.is_(True))
            .all()
        ]
        completed_lessons = 0
        if lesson_ids:
            completed_lessons = (
                self.db.query(LessonProgress)
                .filter(
                    LessonProgress.user_id == user_id,
                    LessonProgress.lesson_id.in_(lesson_ids),
                    LessonProgress.is_completed.is_(True),
                )
                .count()
            )

        quiz_ids = [
            qid
            for (qid,) in self.db.query(TestDefinition.id)
            .join(Module, Module.id == TestDefinition.module_id)
            .filter(
                Module.course_id == course_id,
                TestDefinition.kind == TestKind.QUIZ,
                TestDefinition.is_active.is_(True),
            )
            .all()
        ]
        passed_quizzes = 0
        if quiz_ids:
            passed_quizzes = (
                self.db.query(Attempt.test_definition_id)
                .filter(
                    Attempt.owner_id == user_id,
                    Attempt.test_definition_id.in_(quiz_ids),
                    Attempt.passed.is_(True),
                )
                .distinct()
                .count()
            )

        total_lessons = len(lesson_ids)
        total_quizzes = len(quiz_ids)
        is_completed = (
            total_lessons > 0
            and total_quizzes > 0
            and completed_lessons == total_lessons
            and passed_quizzes == total_quizzes
        )

        grandtest_passed = (
            self.db.query(Attempt.id)
            .filter(
                Attempt.owner_id == user_id,
                Attempt.course_id == course_id,
                Attempt.kind == TestKind.GRANDTEST,
                Attempt.passed.is_(True),
            )
            .first()
            is not None
        )
        certificate_issued = (
            self.db.query(Certificate.id)
            .filter(
                Certificate.user_id == user_id,
                Certificate.course_id == course_id,
                Certificate.is_valid.is_(True),
            )
            .first()
            is not None
        )

        status = self.get_status(user_id, course_id, enrollment_id)
        if status is None:
            status = CourseCompletionStatus(
                id=new_id(),
                user_id=user_id,
                course_id=course_id,
                enrollment_id=enrollment_id,
            )
        status.lessons_completed = completed_lessons
        status.total_lessons = total_lessons
        status.quizzes_completed = passed_quizzes
        status.total_quizzes = total_quizzes
        status.is_course_completed = is_completed
        status.grandtest_eligible = is_completed
        status.grandtest_passed = grandtest_passed
        status.certificate_issued = certificate_issued
        status.last_updated = utcnow()
        self.db.add(status)
        self.db.flush()

        logger.info(
            "completion user=%s course=%s lessons=%s/%s quizzes=%s/%s completed=%s",
            user_id, course_id, completed_lessons, total_lessons, passed_quizzes, total_quizzes, is_completed,
        )
        return status

    def mark_lesson_completed(self, user_id: int, course_id: str, enrollment_id: str, lesson_id: str) -> CourseCompletionStatus:
        lesson = (
            self.db.query(Lesson)
            .join(Module, Module.id == Lesson.module_id)
            .filter(Lesson.id == lesson_id, Module.course_id == course_id)
            .first()
        )
        if lesson is None:
            raise NotFoundError("Lesson not found", code="LESSON_NOT_FOUND", lesson_id=lesson_id)

        progress = (
            self.db.query(LessonProgress)
            .filter(LessonProgress.user_id == user_id, LessonProgress.lesson_id == lesson_id)
            .first()
        )
        if progress is None:
            progress = LessonProgress(id=new_id(), user_id=user_id, lesson_id=lesson_id)
        if not progress.is_completed:
            progress.is_completed = True
            progress.completed_at = utcnow()
        self.db.add(progress)
        self.db.flush()
        return self.check_completion(user_id, course_id, enrollment_id)

    def completion_progress(self, user_id: int, course_id: str, enrollment_id: str) -> CompletionProgress:
        status = self.get_status(user_id, course_id, enrollment_id)
        if status is None:
            return CompletionProgress(0.0, 0.0, 0.0, False, False)
        lessons = status.lessons_completed / status.total_lessons * 100 if status.total_lessons else 0.0
        quizzes = status.quizzes_completed / status.total_quizzes * 100 if status.total_quizzes else 0.0
        return CompletionProgress(
            lessons_progress=round(lessons, 2),
            quizzes_progress=round(quizzes, 2),
            overall_progress=round((lessons + quizzes) / 2, 2),
            is_completed=bool(status.is_course_completed),
            grandtest_eligible=bool(status.grandtest_eligible),
        )
