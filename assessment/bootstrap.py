import random
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from assessment.config import get_db, settings
from assessment.services.attempt_engine import AttemptEngine
from assessment.services.certificate_issuer import CertificateIssuer
from assessment.services.completion_tracker import CompletionTracker
from assessment.services.eligibility_guard import EligibilityGuard
from assessment.services.grading import GraderRegistry, build_default_graders
from assessment.services.progression_gate import ProgressionGate
from assessment.services.question_bank import QuestionBank
from assessment.utils.common import utcnow


def build_graders() -> GraderRegistry:
    registry = build_default_graders(settings.essay_min_length)
    # A real essay grader replaces the length heuristic here:
    #   registry.register(QuestionType.ESSAY, my_grader, replace=True)
    return registry


def build_engine(
    db: Session,
    *,
    clock: Callable[[], datetime] = utcnow,
    rng: Optional[random.Random] = None,
) -> AttemptEngine:
    tracker = CompletionTracker(db)
    return AttemptEngine(
        db,
        bank=QuestionBank(db, rng=rng),
        graders=build_graders(),
        gate=ProgressionGate(db, unlock_percentage=settings.daily_test_unlock_percentage),
        tracker=tracker,
        guard=EligibilityGuard(db, tracker=tracker, cooldown_hours=settings.grandtest_cooldown_hours, clock=clock),
        issuer=CertificateIssuer(
            db, clock=clock, max_number_attempts=settings.certificate_number_attempts, tracker=tracker
        ),
        clock=clock,
    )


def get_engine(db: Session = Depends(get_db)) -> AttemptEngine:
    """FastAPI dependency: one engine per request, bound to the request session."""
    return build_engine(db)
