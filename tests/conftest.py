"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides an in-memory database, a controllable
clock and catalog factories for unit and integration tests.
"""
import itertools
import os
import random
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# Keep test runs away from the working-directory database and log folder.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_DIR", str(Path(tempfile.gettempdir()) / "assessment-test-logs"))


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class CatalogFactory:
    """Builds catalog rows (users, courses, questions, tests) and raw attempts."""

    def __init__(self, db, clock: FakeClock):
        self.db = db
        self.clock = clock
        self._seq = itertools.count(1)

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def _id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._seq)}"

    def user(self, email=None, full_name=None, preferences=None):
        from assessment.models import User
        return self._save(
            User(
                email=email or f"learner{next(self._seq)}@example.com",
                full_name=full_name,
                preferences=preferences,
            )
        )

    def course(self, title="Python Foundations"):
        from assessment.models import Course
        return self._save(Course(id=self._id("course"), title=title))

    def module(self, course, order_index=0, title=None):
        from assessment.models import Module
        return self._save(
            Module(id=self._id("module"), course_id=course.id, title=title or f"Module {order_index + 1}", order_index=order_index)
        )

    def lesson(self, module, order_index=0, is_active=True):
        from assessment.models import Lesson
        return self._save(
            Lesson(
                id=self._id("lesson"),
                module_id=module.id,
                title=f"Lesson {order_index + 1}",
                order_index=order_index,
                is_active=is_active,
            )
        )

    def enroll(self, user, course):
        from assessment.models import Enrollment
        return self._save(Enrollment(id=self._id("enrollment"), user_id=user.id, course_id=course.id))

    def question(self, course, *, question_type=None, correct_answer="a", points=1, category=None, is_active=True, options=None):
        from assessment.models import Question, QuestionType
        qtype = question_type or QuestionType.SINGLE_CHOICE
        if options is None and qtype in (QuestionType.SINGLE_CHOICE, QuestionType.MULTI_CHOICE):
            options = [{"id": k, "text": f"Option {k.upper()}"} for k in ("a", "b", "c", "d")]
        return self._save(
            Question(
                id=self._id("question"),
                course_id=course.id,
                text=f"Question {next(self._seq)}?",
                question_type=qtype,
                options=options,
                correct_answer=correct_answer,
                explanation="Because a.",
                points=points,
                category=category,
                is_active=is_active,
            )
        )

    def questions(self, course, count, **kwargs):
        return [self.question(course, **kwargs) for _ in range(count)]

    def definition(
        self,
        course,
        kind=None,
        *,
        question_count=5,
        module=None,
        day_number=None,
        time_limit_minutes=None,
        passing_score_percentage=70.0,
        max_attempts=None,
        category=None,
        questions=None,
        is_active=True,
        title=None,
    ):
        from assessment.models import TestDefinition, TestKind, TestQuestion
        kind = kind or TestKind.QUIZ
        definition = TestDefinition(
            id=self._id(kind.value),
            course_id=course.id,
            kind=kind,
            title=title or kind.value.replace("_", " ").title(),
            module_id=module.id if module is not None else None,
            day_number=day_number,
            question_count=question_count,
            time_limit_minutes=time_limit_minutes,
            passing_score_percentage=passing_score_percentage,
            max_attempts=max_attempts,
            category=category,
            is_active=is_active,
        )
        self.db.add(definition)
        for idx, q in enumerate(questions or []):
            self.db.add(
                TestQuestion(id=self._id("tq"), test_definition_id=definition.id, question_id=q.id, order_index=idx)
            )
        return self._save(definition)

    def attempt(self, user, enrollment, definition, *, percentage, status=None, started_at=None, minutes=10):
        """A finished attempt inserted directly, bypassing the engine."""
        from assessment.models import Attempt, AttemptStatus
        status = status or AttemptStatus.COMPLETED
        started = started_at or self.clock()
        number = self.db.query(Attempt).filter(
            Attempt.owner_id == user.id, Attempt.test_definition_id == definition.id
        ).count() + 1
        finished = status is not AttemptStatus.IN_PROGRESS
        return self._save(
            Attempt(
                id=self._id("attempt"),
                owner_id=user.id,
                enrollment_id=enrollment.id,
                course_id=definition.course_id,
                test_definition_id=definition.id,
                kind=definition.kind,
                day_number=definition.day_number,
                attempt_number=number,
                status=status,
                started_at=started,
                completed_at=started + timedelta(minutes=minutes) if finished else None,
                time_limit_minutes=definition.time_limit_minutes,
                passing_score_percentage=definition.passing_score_percentage,
                total_questions=definition.question_count,
                score=int(percentage) if finished else None,
                max_score=100 if finished else None,
                percentage=percentage if finished else None,
                passed=finished and percentage >= definition.passing_score_percentage,
            )
        )


# ----- In-memory DB (for tests that need DB without touching real DB) -----
@pytest.fixture
def in_memory_engine():
    """In-memory SQLite engine shared by every session of one test."""
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )


@pytest.fixture
def db_session(in_memory_engine):
    """Create an in-memory database session. Uses assessment.config.Base for schema."""
    from assessment.config import Base
    import assessment.models  # noqa: F401
    Base.metadata.create_all(in_memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 2, 15, 9, 0, 0))


@pytest.fixture
def factory(db_session, clock):
    return CatalogFactory(db_session, clock)


@pytest.fixture
def engine(db_session, clock):
    """Attempt engine wired like production, with a fixed clock and seeded rng."""
    from assessment.bootstrap import build_engine
    return build_engine(db_session, clock=clock, rng=random.Random(7))


@pytest.fixture
def learner(factory):
    return factory.user(email="ada@example.com", full_name="Ada Lovelace")


@pytest.fixture
def course(factory):
    return factory.course()


@pytest.fixture
def enrollment(factory, learner, course):
    return factory.enroll(learner, course)


@pytest.fixture
def answer_all():
    """Answer every question of an attempt; the first `correct` ones right."""

    def _answer(engine, attempt, correct, right="a", wrong="b"):
        for idx, response in enumerate(engine.store.responses(attempt.id)):
            engine.record_answer(attempt.id, response.question_id, right if idx < correct else wrong, 5)

    return _answer
