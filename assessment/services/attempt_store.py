"""
Persistence of attempts and their responses.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from assessment.errors import NotFoundError, PersistenceError
from assessment.models import Attempt, AttemptStatus, Question, Response, TestDefinition
from assessment.utils.common import new_id
from assessment.utils.logger import get_logger

logger = get_logger(__name__)

TERMINAL_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.COMPLETED, AttemptStatus.ABANDONED)
SCORED_STATUSES = (AttemptStatus.SUBMITTED, AttemptStatus.COMPLETED)


class AttemptStore:
    def __init__(self, db: Session):
        self.db = db

    # ----- reads -----

    def get(self, attempt_id: str, owner_id: Optional[int] = None, *, for_update: bool = False) -> Attempt:
        q = self.db.query(Attempt).filter(Attempt.id == attempt_id)
        if owner_id is not None:
            q = q.filter(Attempt.owner_id == owner_id)
        if for_update:
            q = q.with_for_update()
        attempt = q.first()
        if attempt is None:
            raise NotFoundError("Attempt not found", code="ATTEMPT_NOT_FOUND", attempt_id=attempt_id)
        return attempt

    def find_in_progress(self, owner_id: int, test_definition_id: str) -> Optional[Attempt]:
        return (
            self.db.query(Attempt)
            .filter(
                Attempt.owner_id == owner_id,
                Attempt.test_definition_id == test_definition_id,
                Attempt.status == AttemptStatus.IN_PROGRESS,
            )
            .first()
        )

    def next_attempt_number(self, owner_id: int, test_definition_id: str) -> int:
        current = (
            self.db.query(func.max(Attempt.attempt_number))
            .filter(Attempt.owner_id == owner_id, Attempt.test_definition_id == test_definition_id)
            .scalar()
        )
        return int(current or 0) + 1

    def count_terminal(self, owner_id: int, test_definition_id: str) -> int:
        return (
            self.db.query(func.count(Attempt.id))
            .filter(
                Attempt.owner_id == owner_id,
                Attempt.test_definition_id == test_definition_id,
                Attempt.status.in_(TERMINAL_STATUSES),
            )
            .scalar()
        ) or 0

    def list_for_owner(self, owner_id: int, *, course_id: Optional[str] = None, kind=None) -> list[Attempt]:
        q = self.db.query(Attempt).filter(Attempt.owner_id == owner_id)
        if course_id is not None:
            q = q.filter(Attempt.course_id == course_id)
        if kind is not None:
            q = q.filter(Attempt.kind == kind)
        return q.order_by(Attempt.started_at.desc()).all()

    def get_response(self, attempt_id: str, question_id: str) -> Response:
        response = (
            self.db.query(Response)
            .filter(Response.attempt_id == attempt_id, Response.question_id == question_id)
            .first()
        )
        if response is None:
            raise NotFoundError(
                "Question is not part of this attempt",
                code="QUESTION_NOT_IN_ATTEMPT",
                attempt_id=attempt_id,
                question_id=question_id,
            )
        return response

    def responses(self, attempt_id: str) -> list[Response]:
        return (
            self.db.query(Response)
            .filter(Response.attempt_id == attempt_id)
            .order_by(Response.order_index.asc())
            .all()
        )

    # ----- writes -----

    def create(
        self,
        *,
        owner_id: int,
        enrollment_id: str,
        definition: TestDefinition,
        questions: list[Question],
        started_at: datetime,
    ) -> Optional[Attempt]:
        """
        Insert the attempt and one placeholder response per question atomically.
        Returns None when another in_progress attempt won the race for
        (owner, definition); the caller should then resume that one.
        """
        attempt = Attempt(
            id=new_id(),
            owner_id=owner_id,
            enrollment_id=enrollment_id,
            course_id=definition.course_id,
            test_definition_id=definition.id,
            kind=definition.kind,
            day_number=definition.day_number,
            attempt_number=self.next_attempt_number(owner_id, definition.id),
            status=AttemptStatus.IN_PROGRESS,
            started_at=started_at,
            time_limit_minutes=definition.time_limit_minutes,
            passing_score_percentage=float(definition.passing_score_percentage),
            total_questions=len(questions),
            passed=False,
        )
        self.db.add(attempt)
        for idx, question in enumerate(questions):
            self.db.add(
                Response(
                    id=new_id(),
                    attempt_id=attempt.id,
                    question_id=question.id,
                    order_index=idx,
                    user_answer=None,
                    is_correct=False,
                    points_earned=0,
                    points_possible=int(question.points),
                    time_spent_seconds=0,
                )
            )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("start race lost owner=%s test=%s", owner_id, definition.id)
            return None
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Failed to create attempt", cause=type(e).__name__) from e
        self.db.refresh(attempt)
        return attempt

    def upsert_response(
        self,
        response: Response,
        *,
        answer: Any,
        is_correct: bool,
        points_earned: int,
        time_spent_seconds: int,
        answered_at: datetime,
    ) -> Response:
        """Overwrite the single row for (attempt, question); never adds a second one."""
        response.user_answer = answer
        response.is_correct = is_correct
        response.points_earned = points_earned
        response.time_spent_seconds = time_spent_seconds
        response.answered_at = answered_at
        self.db.add(response)
        return response
