"""
Attempt state machine shared by lesson quizzes, daily tests and the grandtest.

    in_progress -> completed   (explicit finalize)
    in_progress -> submitted   (time limit ran out; finalized on the next call)
    in_progress -> abandoned

Terminal states are final. Time limits are enforced lazily: every call that
touches an attempt first checks the clock and auto-finalizes an expired one.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from assessment.config import settings
from assessment.errors import AttemptNotActive, AttemptsExhausted, PersistenceError, StateError, ValidationError
from assessment.models import Attempt, AttemptStatus, Response, TestKind
from assessment.services.analytics import ResultBreakdown, build_breakdown
from assessment.services.attempt_store import AttemptStore
from assessment.services.certificate_issuer import CertificateIssuer
from assessment.services.completion_tracker import CompletionTracker
from assessment.services.eligibility_guard import EligibilityGuard
from assessment.services.grading import GraderRegistry, build_default_graders
from assessment.services.navigation import AttemptNavigator
from assessment.services.progression_gate import ProgressionGate
from assessment.services.question_bank import QuestionBank
from assessment.utils.common import get_enrollment, transaction, utcnow
from assessment.utils.logger import attempt_context, get_logger, log_operation

logger = get_logger(__name__)


@dataclass
class AnswerResult:
    response: Response
    skipped: list[str]


@dataclass
class ReviewSummary:
    attempt_id: str
    total_questions: int
    answered: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unanswered: list[str] = field(default_factory=list)
    remaining_seconds: Optional[int] = None


def _is_empty_answer(answer: Any) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, (list, tuple)):
        return not any(str(a).strip() for a in answer)
    return False


class AttemptEngine:
    def __init__(
        self,
        db: Session,
        *,
        bank: Optional[QuestionBank] = None,
        store: Optional[AttemptStore] = None,
        graders: Optional[GraderRegistry] = None,
        gate: Optional[ProgressionGate] = None,
        tracker: Optional[CompletionTracker] = None,
        guard: Optional[EligibilityGuard] = None,
        issuer: Optional[CertificateIssuer] = None,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self.db = db
        self.clock = clock
        self.bank = bank or QuestionBank(db, rng=rng)
        self.store = store or AttemptStore(db)
        self.graders = graders or build_default_graders(settings.essay_min_length)
        self.gate = gate or ProgressionGate(db)
        self.tracker = tracker or CompletionTracker(db)
        self.guard = guard or EligibilityGuard(db, tracker=self.tracker, clock=clock)
        self.issuer = issuer or CertificateIssuer(db, clock=clock)

    # ----- timer -----

    @staticmethod
    def _deadline(attempt: Attempt) -> Optional[datetime]:
        if not attempt.time_limit_minutes:
            return None
        return attempt.started_at + timedelta(minutes=attempt.time_limit_minutes)

    def remaining_seconds(self, attempt: Attempt, now: Optional[datetime] = None) -> Optional[int]:
        """Whole seconds left on the clock for display, or None for untimed attempts."""
        deadline = self._deadline(attempt)
        if deadline is None:
            return None
        now = now or self.clock()
        return max(0, int((deadline - now).total_seconds()))

    def _is_expired(self, attempt: Attempt, now: Optional[datetime] = None) -> bool:
        # Exact comparison; remaining_seconds truncates and reads 0 during the last second.
        deadline = self._deadline(attempt)
        return deadline is not None and deadline <= (now or self.clock())

    def _expire_if_needed(self, attempt: Attempt) -> bool:
        """Auto-submit an in-progress attempt whose time is up. True if it did."""
        if AttemptStatus(attempt.status) is not AttemptStatus.IN_PROGRESS:
            return False
        if not self._is_expired(attempt):
            return False
        logger.info("time limit reached attempt=%s limit_min=%s", attempt.id, attempt.time_limit_minutes)
        self._finalize(attempt, auto=True)
        return True

    # ----- operations -----

    def start_attempt(self, owner_id: int, test_definition_id: str) -> Attempt:
        with log_operation(logger, "start_attempt"):
            definition = self.bank.get_definition(test_definition_id, active_only=True)
            enrollment = get_enrollment(owner_id, definition.course_id, self.db)

            existing = self.store.find_in_progress(owner_id, definition.id)
            if existing is not None and not self._expire_if_needed(existing):
                logger.info("resumed attempt=%s owner=%s test=%s", existing.id, owner_id, definition.id)
                return existing

            kind = TestKind(definition.kind)
            if kind is TestKind.DAILY_TEST:
                self.gate.ensure_unlocked(owner_id, definition.course_id, definition.day_number)
            elif kind is TestKind.GRANDTEST:
                self.guard.ensure(owner_id, definition.course_id, enrollment.id)

            if definition.max_attempts is not None:
                used = self.store.count_terminal(owner_id, definition.id)
                if used >= definition.max_attempts:
                    raise AttemptsExhausted(
                        f"Maximum attempts ({definition.max_attempts}) reached for this test",
                        attempts_used=used,
                        max_attempts=definition.max_attempts,
                    )

            questions = self.bank.select_for_attempt(definition)
            attempt = self.store.create(
                owner_id=owner_id,
                enrollment_id=enrollment.id,
                definition=definition,
                questions=questions,
                started_at=self.clock(),
            )
            if attempt is None:
                attempt = self.store.find_in_progress(owner_id, definition.id)
                if attempt is None:
                    raise PersistenceError("Attempt could not be created", code="ATTEMPT_CREATE_CONFLICT")
                return attempt

            logger.info(
                "started attempt=%s owner=%s test=%s kind=%s number=%s questions=%s",
                attempt.id, owner_id, definition.id, kind.value, attempt.attempt_number, len(questions),
            )
            return attempt

    def get_attempt(self, attempt_id: str, owner_id: Optional[int] = None) -> Attempt:
        attempt = self.store.get(attempt_id, owner_id)
        self._expire_if_needed(attempt)
        return attempt

    def record_answer(
        self,
        attempt_id: str,
        question_id: str,
        answer: Any,
        time_spent_seconds: int = 0,
        *,
        owner_id: Optional[int] = None,
        skipped: Iterable[str] = (),
    ) -> AnswerResult:
        attempt = self.store.get(attempt_id, owner_id, for_update=True)
        with attempt_context(attempt.id), log_operation(logger, "record_answer"):
            response = self.store.get_response(attempt.id, question_id)

            if self._expire_if_needed(attempt):
                raise AttemptNotActive(
                    "Time limit exceeded; the attempt was submitted",
                    attempt_id=attempt.id,
                    status=AttemptStatus.SUBMITTED.value,
                )
            status = AttemptStatus(attempt.status)
            if status is not AttemptStatus.IN_PROGRESS:
                raise AttemptNotActive("Attempt is not active", attempt_id=attempt.id, status=status.value)

            if _is_empty_answer(answer):
                raise ValidationError("Answer must not be empty", code="EMPTY_ANSWER", question_id=question_id)
            if time_spent_seconds is None or time_spent_seconds < 0:
                raise ValidationError(
                    "time_spent_seconds must be zero or positive",
                    code="INVALID_TIME_SPENT",
                    time_spent_seconds=time_spent_seconds,
                )

            is_correct = self.graders.grade(response.question, answer)
            with transaction(self.db):
                # A finalize may have landed since the check above; the write must not outlive it.
                self.db.refresh(attempt, with_for_update=True)
                status = AttemptStatus(attempt.status)
                if status is not AttemptStatus.IN_PROGRESS:
                    raise AttemptNotActive("Attempt is not active", attempt_id=attempt.id, status=status.value)
                self.store.upsert_response(
                    response,
                    answer=answer,
                    is_correct=is_correct,
                    points_earned=response.points_possible if is_correct else 0,
                    time_spent_seconds=int(time_spent_seconds),
                    answered_at=self.clock(),
                )
            self.db.refresh(response)
            navigator = self._navigator(attempt.id, skipped)
            return AnswerResult(response=response, skipped=navigator.skipped_questions())

    def _navigator(self, attempt_id: str, skipped: Iterable[str]) -> AttemptNavigator:
        """Rebuild the client's view of an attempt: stored answers plus the skip set it sent."""
        responses = self.store.responses(attempt_id)
        question_ids = [r.question_id for r in responses]
        known = set(question_ids)
        navigator = AttemptNavigator(question_ids=question_ids, skipped={q for q in skipped if q in known})
        for r in responses:
            if r.is_answered:
                navigator.mark_answered(r.question_id)
        return navigator

    def review(self, attempt_id: str, skipped: Iterable[str] = (), *, owner_id: Optional[int] = None) -> ReviewSummary:
        """Answered / skipped / unanswered split before submitting. Advisory only."""
        attempt = self.get_attempt(attempt_id, owner_id)
        navigator = self._navigator(attempt.id, skipped)
        return ReviewSummary(
            attempt_id=attempt.id,
            total_questions=attempt.total_questions,
            answered=navigator.answered_questions(),
            skipped=navigator.skipped_questions(),
            unanswered=navigator.unanswered(),
            remaining_seconds=self.remaining_seconds(attempt),
        )

    def result_breakdown(self, attempt_id: str, *, owner_id: Optional[int] = None) -> ResultBreakdown:
        """Per-category performance and recommendations for a finished attempt."""
        attempt = self.get_attempt(attempt_id, owner_id)
        if AttemptStatus(attempt.status) is AttemptStatus.IN_PROGRESS:
            raise StateError(
                "Results are available once the attempt is finished",
                code="ATTEMPT_IN_PROGRESS",
                attempt_id=attempt.id,
            )
        return build_breakdown(attempt, self.store.responses(attempt.id))

    def finalize(self, attempt_id: str, *, owner_id: Optional[int] = None) -> Attempt:
        attempt = self.store.get(attempt_id, owner_id, for_update=True)
        with attempt_context(attempt.id), log_operation(logger, "finalize"):
            status = AttemptStatus(attempt.status)
            if status is not AttemptStatus.IN_PROGRESS:
                raise AttemptNotActive("Attempt is already finished", attempt_id=attempt.id, status=status.value)
            return self._finalize(attempt, auto=self._is_expired(attempt))

    def _finalize(self, attempt: Attempt, *, auto: bool) -> Attempt:
        now = self.clock()
        with transaction(self.db):
            responses = self.store.responses(attempt.id)
            score = sum(r.points_earned for r in responses)
            max_score = sum(r.points_possible for r in responses)
            percentage = round(score / max_score * 100, 2) if max_score else 0.0

            attempt.score = score
            attempt.max_score = max_score
            attempt.percentage = percentage
            # Decided on the unrounded ratio; the stored percentage is for display.
            attempt.passed = score * 100 >= attempt.passing_score_percentage * max_score
            attempt.status = AttemptStatus.SUBMITTED if auto else AttemptStatus.COMPLETED
            attempt.submitted_at = now
            attempt.completed_at = now
            self.db.add(attempt)
            self.db.flush()

            kind = TestKind(attempt.kind)
            if kind is TestKind.QUIZ:
                self.tracker.check_completion(attempt.owner_id, attempt.course_id, attempt.enrollment_id)
            elif kind is TestKind.GRANDTEST and attempt.passed:
                self.issuer.issue_certificate(attempt)
                self.tracker.check_completion(attempt.owner_id, attempt.course_id, attempt.enrollment_id)

        logger.info(
            "finalized attempt=%s status=%s score=%s/%s pct=%s passed=%s",
            attempt.id, AttemptStatus(attempt.status).value, score, max_score, percentage, attempt.passed,
        )
        return attempt

    def abandon(self, attempt_id: str, *, owner_id: Optional[int] = None) -> Attempt:
        attempt = self.store.get(attempt_id, owner_id, for_update=True)
        with attempt_context(attempt.id), log_operation(logger, "abandon"):
            if self._expire_if_needed(attempt):
                raise AttemptNotActive(
                    "Time limit exceeded; the attempt was submitted",
                    attempt_id=attempt.id,
                    status=AttemptStatus.SUBMITTED.value,
                )
            status = AttemptStatus(attempt.status)
            if status is not AttemptStatus.IN_PROGRESS:
                raise AttemptNotActive("Attempt is already finished", attempt_id=attempt.id, status=status.value)
            with transaction(self.db):
                attempt.status = AttemptStatus.ABANDONED
                attempt.completed_at = self.clock()
                self.db.add(attempt)
            logger.info("abandoned attempt=%s", attempt.id)
            return attempt
