"""
Per-question-type grading strategies.

Graders are plain callables ``(question, answer) -> bool`` registered by
question type, so a real essay grader can replace the length heuristic
without touching the attempt engine.
"""

from typing import Any, Callable, Dict, Iterable

from assessment.models import Question, QuestionType

Grader = Callable[[Question, Any], bool]


def _normalize(value: Any) -> str:
    return str(value).strip().casefold()


def _as_choices(value: Any) -> set[str]:
    if value is None:
        return set()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        items = value
    else:
        items = [value]
    return {_normalize(v) for v in items if _normalize(v)}


def exact_match(question: Question, answer: Any) -> bool:
    """Case-insensitive comparison of trimmed text."""
    expected = question.correct_answer
    if isinstance(expected, list):
        expected = expected[0] if len(expected) == 1 else None
    if expected is None or answer is None or isinstance(answer, (list, dict)):
        return False
    return _normalize(answer) == _normalize(expected)


def set_match(question: Question, answer: Any) -> bool:
    """Multi-choice: the selected set must equal the correct set, order ignored."""
    expected = _as_choices(question.correct_answer)
    return bool(expected) and _as_choices(answer) == expected


def min_length(threshold: int) -> Grader:
    """Essay placeholder: any answer longer than ``threshold`` characters is accepted."""

    def grade(question: Question, answer: Any) -> bool:
        return isinstance(answer, str) and len(answer.strip()) > threshold

    return grade


class GraderRegistry:
    def __init__(self):
        self._graders: Dict[QuestionType, Grader] = {}

    def register(self, question_type: QuestionType, grader: Grader, *, replace: bool = False) -> None:
        if question_type in self._graders and not replace:
            raise ValueError(f"Grader for {question_type.value} already registered")
        self._graders[question_type] = grader

    def get(self, question_type: QuestionType) -> Grader:
        if question_type not in self._graders:
            raise ValueError(f"No grader registered for {question_type.value}")
        return self._graders[question_type]

    def grade(self, question: Question, answer: Any) -> bool:
        return self.get(QuestionType(question.question_type))(question, answer)

    def list_types(self) -> list[QuestionType]:
        return list(self._graders.keys())


def build_default_graders(essay_min_length: int) -> GraderRegistry:
    registry = GraderRegistry()
    registry.register(QuestionType.SINGLE_CHOICE, exact_match)
    registry.register(QuestionType.TRUE_FALSE, exact_match)
    registry.register(QuestionType.FILL_BLANK, exact_match)
    registry.register(QuestionType.MULTI_CHOICE, set_match)
    registry.register(QuestionType.ESSAY, min_length(essay_min_length))
    return registry
