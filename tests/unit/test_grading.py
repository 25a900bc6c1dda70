"""Unit tests for per-type grading strategies and the grader registry."""
import pytest

from assessment.models import Question, QuestionType
from assessment.services.grading import (
    GraderRegistry,
    build_default_graders,
    exact_match,
    min_length,
    set_match,
)


def _q(question_type, correct):
    return Question(question_type=question_type, correct_answer=correct, points=1)


@pytest.mark.unit
class TestExactMatch:
    def test_ignores_case_and_whitespace(self):
        assert exact_match(_q(QuestionType.FILL_BLANK, "Photosynthesis"), "  photosynthesis ")

    def test_wrong_answer(self):
        assert not exact_match(_q(QuestionType.SINGLE_CHOICE, "a"), "b")

    def test_true_false_accepts_bool(self):
        assert exact_match(_q(QuestionType.TRUE_FALSE, "true"), True)
        assert not exact_match(_q(QuestionType.TRUE_FALSE, "true"), False)

    def test_list_answer_is_not_a_match(self):
        assert not exact_match(_q(QuestionType.SINGLE_CHOICE, "a"), ["a"])

    def test_single_item_list_key(self):
        assert exact_match(_q(QuestionType.SINGLE_CHOICE, ["c"]), "C")


@pytest.mark.unit
class TestSetMatch:
    def test_order_and_case_ignored(self):
        assert set_match(_q(QuestionType.MULTI_CHOICE, ["a", "b"]), ["B", " a"])

    def test_subset_is_wrong(self):
        assert not set_match(_q(QuestionType.MULTI_CHOICE, ["a", "b"]), ["a"])

    def test_superset_is_wrong(self):
        assert not set_match(_q(QuestionType.MULTI_CHOICE, ["a", "b"]), ["a", "b", "c"])

    def test_comma_separated_string(self):
        assert set_match(_q(QuestionType.MULTI_CHOICE, "a,c"), "c, a")


@pytest.mark.unit
class TestEssayPlaceholder:
    def test_longer_than_threshold(self):
        grade = min_length(10)
        assert grade(_q(QuestionType.ESSAY, None), "eleven char")

    def test_exactly_threshold_is_rejected(self):
        grade = min_length(10)
        assert not grade(_q(QuestionType.ESSAY, None), "ten chars!")

    def test_whitespace_does_not_count(self):
        grade = min_length(10)
        assert not grade(_q(QuestionType.ESSAY, None), "   short      ")


@pytest.mark.unit
class TestGraderRegistry:
    def test_defaults_cover_every_type(self):
        registry = build_default_graders(10)
        assert set(registry.list_types()) == set(QuestionType)

    def test_duplicate_registration_rejected(self):
        registry = GraderRegistry()
        registry.register(QuestionType.ESSAY, min_length(5))
        with pytest.raises(ValueError):
            registry.register(QuestionType.ESSAY, min_length(5))

    def test_replace_swaps_grader(self):
        registry = build_default_graders(10)
        registry.register(QuestionType.ESSAY, lambda q, a: "lambda" in a, replace=True)
        assert registry.grade(_q(QuestionType.ESSAY, None), "uses a lambda")
        assert not registry.grade(_q(QuestionType.ESSAY, None), "a long essay without the keyword")

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            GraderRegistry().get(QuestionType.FILL_BLANK)
