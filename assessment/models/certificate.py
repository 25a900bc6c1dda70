from assessment.config import Base
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime


class CourseCompletionStatus(Base):
    """Cached completion snapshot. Written only by CompletionTracker."""
    __tablename__ = "course_completion_status"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "enrollment_id", name="uq_completion_user_course_enrollment"),
    )

    id = Column(String, primary_key=True, index=True)  # uuid
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    enrollment_id = Column(String, ForeignKey("enrollments.id"), index=True, nullable=False)
    lessons_completed = Column(Integer, default=0, nullable=False)
    total_lessons = Column(Integer, default=0, nullable=False)
    quizzes_completed = Column(Integer, default=0, nullable=False)
    total_quizzes = Column(Integer, default=0, nullable=False)
    is_course_completed = Column(Boolean, default=False, nullable=False)
    grandtest_eligible = Column(Boolean, default=False, nullable=False)
    grandtest_passed = Column(Boolean, default=False, nullable=False)
    certificate_issued = Column(Boolean, default=False, nullable=False)
    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)


class Certificate(Base):
    """Append-only; the only mutation allowed is invalidation."""
    __tablename__ = "certificates"

    id = Column(String, primary_key=True, index=True)  # uuid
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    enrollment_id = Column(String, ForeignKey("enrollments.id"), nullable=False)
    grandtest_attempt_id = Column(String, ForeignKey("attempts.id"), unique=True, nullable=False)
    certificate_number = Column(String, unique=True, index=True, nullable=False)
    verification_code = Column(String, nullable=False)
    issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    is_valid = Column(Boolean, default=True, nullable=False)
    invalidated_at = Column(DateTime, nullable=True)
    invalidated_reason = Column(Text, nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    course = relationship("Course", foreign_keys=[course_id])
