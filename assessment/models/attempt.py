"""
Attempt and response tables.

An attempt is created on start, mutated only by response upserts and a single
finalize/abandon transition, and never deleted.
"""

from assessment.config import Base
from assessment.models.models import TestKind, _enum_values
from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Boolean,
    JSON,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"  # auto-submitted when the time limit ran out
    COMPLETED = "completed"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptStatus.IN_PROGRESS

    @property
    def is_scored(self) -> bool:
        return self in (AttemptStatus.SUBMITTED, AttemptStatus.COMPLETED)


class Attempt(Base):
    __tablename__ = "attempts"
    __table_args__ = (
        UniqueConstraint("owner_id", "test_definition_id", "attempt_number", name="uq_attempts_number"),
        # At most one in_progress attempt per (owner, test definition).
        Index(
            "uq_attempts_owner_test_in_progress",
            "owner_id",
            "test_definition_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

    id = Column(String, primary_key=True, index=True)  # uuid
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    enrollment_id = Column(String, ForeignKey("enrollments.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    test_definition_id = Column(String, ForeignKey("test_definitions.id"), index=True, nullable=False)
    kind = Column(SQLEnum(TestKind, values_callable=_enum_values), nullable=False, index=True)
    day_number = Column(Integer, nullable=True)
    attempt_number = Column(Integer, nullable=False)

    status = Column(
        SQLEnum(AttemptStatus, values_callable=_enum_values, native_enum=False, length=16),
        default=AttemptStatus.IN_PROGRESS,
        nullable=False,
        index=True,
    )
    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    submitted_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Snapshots taken at start so later catalog edits do not change this attempt.
    time_limit_minutes = Column(Integer, nullable=True)
    passing_score_percentage = Column(Float, nullable=False)
    total_questions = Column(Integer, nullable=False)

    score = Column(Integer, nullable=True)
    max_score = Column(Integer, nullable=True)
    percentage = Column(Float, nullable=True)
    passed = Column(Boolean, default=False, nullable=False)

    responses = relationship(
        "Response",
        backref="attempt",
        cascade="all, delete-orphan",
        order_by="Response.order_index",
    )
    test_definition = relationship("TestDefinition", foreign_keys=[test_definition_id])


class Response(Base):
    __tablename__ = "responses"
    __table_args__ = (UniqueConstraint("attempt_id", "question_id", name="uq_responses_attempt_question"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    attempt_id = Column(String, ForeignKey("attempts.id"), index=True, nullable=False)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False)
    order_index = Column(Integer, nullable=False)

    user_answer = Column(JSON, nullable=True)  # None = placeholder, not answered yet
    is_correct = Column(Boolean, default=False, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    points_possible = Column(Integer, nullable=False)
    time_spent_seconds = Column(Integer, default=0, nullable=False)
    answered_at = Column(DateTime, nullable=True)

    question = relationship("Question", foreign_keys=[question_id])

    @property
    def is_answered(self) -> bool:
        return self.user_answer not in (None, "", [])
