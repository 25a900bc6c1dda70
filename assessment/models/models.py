from assessment.config import Base
from sqlalchemy import (
    Column,
    Integer,
    String,
    JSON,
    DateTime,
    ForeignKey,
    Text,
    Boolean,
    Float,
    CheckConstraint,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class QuestionType(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    ESSAY = "essay"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class TestKind(str, Enum):
    QUIZ = "quiz"
    DAILY_TEST = "daily_test"
    GRANDTEST = "grandtest"

    __test__ = False  # not a pytest class


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    preferences = Column(JSON)


class Course(Base):
    __tablename__ = "courses"
    id = Column(String, primary_key=True, index=True)  # uuid
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    modules = relationship("Module", backref="course", cascade="all, delete-orphan", order_by="Module.order_index")


class Module(Base):
    __tablename__ = "modules"
    id = Column(String, primary_key=True, index=True)  # uuid
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    order_index = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    lessons = relationship("Lesson", backref="module", cascade="all, delete-orphan", order_by="Lesson.order_index")


class Lesson(Base):
    __tablename__ = "lessons"
    id = Column(String, primary_key=True, index=True)  # uuid
    module_id = Column(String, ForeignKey("modules.id"), index=True, nullable=False)
    title = Column(String, nullable=False)
    order_index = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    enrolled_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", backref="enrollments", foreign_keys=[user_id])
    course = relationship("Course", foreign_keys=[course_id])


class LessonProgress(Base):
    __tablename__ = "lesson_progress"
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    lesson_id = Column(String, ForeignKey("lessons.id"), index=True, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)


class Question(Base):
    """Catalog question. Never edited in place once an attempt has referenced it."""
    __tablename__ = "questions"
    __table_args__ = (CheckConstraint("points >= 1", name="ck_questions_points_positive"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    text = Column(Text, nullable=False)
    question_type = Column(SQLEnum(QuestionType, values_callable=_enum_values), nullable=False)
    options = Column(JSON, nullable=True)  # ordered [{"id": "a", "text": "..."}]
    correct_answer = Column(JSON, nullable=True)  # str, or list[str] for multi_choice
    explanation = Column(Text, nullable=True)
    points = Column(Integer, default=1, nullable=False)
    difficulty = Column(SQLEnum(Difficulty, values_callable=_enum_values), default=Difficulty.MEDIUM, nullable=False)
    category = Column(String, nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TestDefinition(Base):
    """Shared configuration for lesson quizzes, daily tests and the grandtest."""
    __test__ = False
    __tablename__ = "test_definitions"
    __table_args__ = (
        UniqueConstraint("course_id", "kind", "day_number", name="uq_test_definitions_course_day"),
        CheckConstraint("question_count >= 1", name="ck_test_definitions_question_count"),
        CheckConstraint(
            "passing_score_percentage >= 0 AND passing_score_percentage <= 100",
            name="ck_test_definitions_passing_score",
        ),
    )

    id = Column(String, primary_key=True, index=True)  # uuid
    course_id = Column(String, ForeignKey("courses.id"), index=True, nullable=False)
    kind = Column(SQLEnum(TestKind, values_callable=_enum_values), nullable=False, index=True)
    title = Column(String, nullable=False)
    module_id = Column(String, ForeignKey("modules.id"), nullable=True)  # quizzes only
    day_number = Column(Integer, nullable=True)  # daily tests only, 1..N
    question_count = Column(Integer, nullable=False)
    time_limit_minutes = Column(Integer, nullable=True)
    passing_score_percentage = Column(Float, default=70.0, nullable=False)
    max_attempts = Column(Integer, nullable=True)  # None = unlimited
    category = Column(String, nullable=True)  # restricts the random pool
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    module = relationship("Module", backref="quizzes", foreign_keys=[module_id])
    assigned = relationship(
        "TestQuestion",
        backref="test_definition",
        cascade="all, delete-orphan",
        order_by="TestQuestion.order_index",
    )


class TestQuestion(Base):
    """Admin-curated, ordered question assignment for a test definition."""
    __test__ = False
    __tablename__ = "test_questions"
    __table_args__ = (UniqueConstraint("test_definition_id", "question_id", name="uq_test_questions_pair"),)

    id = Column(String, primary_key=True, index=True)  # uuid
    test_definition_id = Column(String, ForeignKey("test_definitions.id"), index=True, nullable=False)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False)
    order_index = Column(Integer, nullable=False)

    question = relationship("Question", foreign_keys=[question_id])
