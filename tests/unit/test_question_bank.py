"""Unit tests for the read-only question catalog."""
import random

import pytest

from assessment.errors import InsufficientQuestions, NotFoundError
from assessment.models import TestKind
from assessment.services.question_bank import QuestionBank


@pytest.fixture
def bank(db_session):
    return QuestionBank(db_session, rng=random.Random(3))


@pytest.mark.unit
class TestLookups:
    def test_get_question(self, bank, factory, course):
        question = factory.question(course)
        assert bank.get_question(question.id).id == question.id

    def test_unknown_question(self, bank):
        with pytest.raises(NotFoundError) as exc:
            bank.get_question("missing")
        assert exc.value.code == "QUESTION_NOT_FOUND"

    def test_course_questions_skip_inactive(self, bank, factory, course):
        active = factory.questions(course, 2)
        factory.question(course, is_active=False)
        found = bank.get_questions(course_id=course.id)
        assert {q.id for q in found} == {q.id for q in active}

    def test_definition_questions_in_assigned_order(self, bank, factory, course):
        questions = factory.questions(course, 3)
        ordered = [questions[2], questions[0], questions[1]]
        definition = factory.definition(course, TestKind.QUIZ, question_count=3, questions=ordered)
        assert [q.id for q in bank.get_questions(test_definition_id=definition.id)] == [q.id for q in ordered]

    def test_requires_a_filter(self, bank):
        with pytest.raises(ValueError):
            bank.get_questions()

    def test_inactive_definition_hidden_when_active_only(self, bank, factory, course):
        definition = factory.definition(course, is_active=False)
        assert bank.get_definition(definition.id).id == definition.id
        with pytest.raises(NotFoundError) as exc:
            bank.get_definition(definition.id, active_only=True)
        assert exc.value.code == "TEST_NOT_FOUND"


@pytest.mark.unit
class TestSelection:
    def test_random_sample_without_replacement(self, bank, factory, course):
        factory.questions(course, 8)
        definition = factory.definition(course, TestKind.DAILY_TEST, day_number=1, question_count=5)
        picked = bank.select_for_attempt(definition)
        assert len(picked) == 5
        assert len({q.id for q in picked}) == 5

    def test_category_filter(self, bank, factory, course):
        loops = factory.questions(course, 2, category="loops")
        factory.questions(course, 3, category="strings")
        definition = factory.definition(course, TestKind.DAILY_TEST, day_number=1, question_count=2, category="loops")
        assert {q.id for q in bank.select_for_attempt(definition)} == {q.id for q in loops}

    def test_assigned_set_truncated_to_question_count(self, bank, factory, course):
        questions = factory.questions(course, 4)
        definition = factory.definition(course, question_count=2, questions=questions)
        assert [q.id for q in bank.select_for_attempt(definition)] == [q.id for q in questions[:2]]

    def test_pool_too_small(self, bank, factory, course):
        factory.questions(course, 3)
        definition = factory.definition(course, TestKind.GRANDTEST, question_count=5)
        with pytest.raises(InsufficientQuestions) as exc:
            bank.select_for_attempt(definition)
        assert exc.value.details == {"required": 5, "available": 3}
