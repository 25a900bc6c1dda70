"""
Read-only question catalog. Content authoring lives elsewhere; this service
only reads questions and test definitions.
"""

import random
from typing import Optional

from sqlalchemy.orm import Session

from assessment.errors import InsufficientQuestions, NotFoundError
from assessment.models import Question, TestDefinition, TestQuestion


class QuestionBank:
    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.SystemRandom()

    def get_question(self, question_id: str) -> Question:
        question = self.db.query(Question).filter(Question.id == question_id).first()
        if question is None:
            raise NotFoundError("Question not found", code="QUESTION_NOT_FOUND", question_id=question_id)
        return question

    def get_questions(self, *, course_id: Optional[str] = None, test_definition_id: Optional[str] = None) -> list[Question]:
        """Active questions of a course, or the assigned questions of a test definition in order."""
        if test_definition_id is not None:
            return self.assigned_questions(self.get_definition(test_definition_id))
        if course_id is None:
            raise ValueError("course_id or test_definition_id is required")
        return (
            self.db.query(Question)
            .filter(Question.course_id == course_id, Question.is_active.is_(True))
            .order_by(Question.created_at.asc(), Question.id.asc())
            .all()
        )

    def get_definition(self, test_definition_id: str, *, active_only: bool = False) -> TestDefinition:
        q = self.db.query(TestDefinition).filter(TestDefinition.id == test_definition_id)
        if active_only:
            q = q.filter(TestDefinition.is_active.is_(True))
        definition = q.first()
        if definition is None:
            raise NotFoundError(
                "Test not found or not active",
                code="TEST_NOT_FOUND",
                test_definition_id=test_definition_id,
            )
        return definition

    def assigned_questions(self, definition: TestDefinition) -> list[Question]:
        rows = (
            self.db.query(Question)
            .join(TestQuestion, TestQuestion.question_id == Question.id)
            .filter(TestQuestion.test_definition_id == definition.id, Question.is_active.is_(True))
            .order_by(TestQuestion.order_index.asc())
            .all()
        )
        return rows

    def eligible_pool(self, definition: TestDefinition) -> list[Question]:
        q = self.db.query(Question).filter(
            Question.course_id == definition.course_id,
            Question.is_active.is_(True),
        )
        if definition.category:
            q = q.filter(Question.category == definition.category)
        return q.order_by(Question.created_at.asc(), Question.id.asc()).all()

    def select_for_attempt(self, definition: TestDefinition) -> list[Question]:
        """
        The curated set (in admin order) when the definition has one, otherwise
        a random sample without replacement from the eligible pool.
        """
        assigned = self.assigned_questions(definition)
        pool = assigned if assigned else self.eligible_pool(definition)
        if len(pool) < definition.question_count:
            raise InsufficientQuestions(
                f"Not enough questions available (need {definition.question_count}, have {len(pool)})",
                required=definition.question_count,
                available=len(pool),
            )
        if assigned:
            return assigned[: definition.question_count]
        return self.rng.sample(pool, definition.question_count)
