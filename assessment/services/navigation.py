"""
Client-side cursor over the questions of one attempt.

The server never stores the cursor or the skip set; a client keeps one
navigator per open attempt and sends the skip set along with answers and
review requests. The engine rebuilds a navigator from that skip set and the
stored answers to echo the split back.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class AttemptNavigator:
    question_ids: list[str]
    current_index: int = 0
    skipped: set[str] = field(default_factory=set)
    answered: set[str] = field(default_factory=set)

    def __post_init__(self):
        if not self.question_ids:
            raise ValueError("an attempt has at least one question")
        self.current_index = max(0, min(self.current_index, len(self.question_ids) - 1))

    @property
    def current(self) -> str:
        return self.question_ids[self.current_index]

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index == len(self.question_ids) - 1

    def next(self) -> str:
        if not self.is_last:
            self.current_index += 1
        return self.current

    def previous(self) -> str:
        if not self.is_first:
            self.current_index -= 1
        return self.current

    def go_to(self, index: int) -> str:
        """Jump to any question, skipped ones included."""
        if not 0 <= index < len(self.question_ids):
            raise IndexError(f"question index {index} out of range")
        self.current_index = index
        return self.current

    def skip(self) -> str:
        """Mark the current question skipped and move on."""
        if self.current not in self.answered:
            self.skipped.add(self.current)
        return self.next()

    def mark_answered(self, question_id: Optional[str] = None) -> None:
        qid = question_id or self.current
        self.answered.add(qid)
        self.skipped.discard(qid)

    def unanswered(self) -> list[str]:
        return [q for q in self.question_ids if q not in self.answered and q not in self.skipped]

    def answered_questions(self) -> list[str]:
        return [q for q in self.question_ids if q in self.answered]

    def skipped_questions(self) -> list[str]:
        """Skipped and still unanswered, in question order."""
        return [q for q in self.question_ids if q in self.skipped and q not in self.answered]
