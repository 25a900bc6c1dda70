"""
Typed errors raised by the assessment services.

Every error carries a machine-readable ``code``, a human ``message`` and a
``details`` dict with whatever the caller needs to explain the outcome
(retry time, required day, attempts used, ...). ``assessment.api`` turns them
into JSON bodies of the form ``{"error": {"type", "code", "message", "details"}}``.
"""

from datetime import datetime
from typing import Any, Optional


class AssessmentError(Exception):
    status_code = 400
    code = "ASSESSMENT_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = {k: (v.isoformat() + "Z" if isinstance(v, datetime) else v) for k, v in details.items()}

    @property
    def error_type(self) -> str:
        for cls in type(self).__mro__:
            if cls in _CATEGORIES:
                return cls.__name__
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            "type": self.error_type,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AssessmentError):
    status_code = 422
    code = "VALIDATION_ERROR"


class NotFoundError(AssessmentError):
    status_code = 404
    code = "NOT_FOUND"


class StateError(AssessmentError):
    status_code = 409
    code = "INVALID_STATE"


class PolicyError(AssessmentError):
    status_code = 403
    code = "POLICY_VIOLATION"


class PersistenceError(AssessmentError):
    status_code = 503
    code = "PERSISTENCE_ERROR"


_CATEGORIES = (ValidationError, NotFoundError, StateError, PolicyError, PersistenceError)


# ----- State -----

class AttemptNotActive(StateError):
    code = "ATTEMPT_NOT_ACTIVE"


# ----- Policy -----

class AttemptsExhausted(PolicyError):
    code = "ATTEMPTS_EXHAUSTED"


class DayLocked(PolicyError):
    code = "DAY_LOCKED"


class InsufficientQuestions(PolicyError):
    code = "INSUFFICIENT_QUESTIONS"


class NotCompleted(PolicyError):
    code = "NOT_COMPLETED"


class NotEligible(PolicyError):
    code = "NOT_ELIGIBLE"


class AlreadyPassed(PolicyError):
    code = "ALREADY_PASSED"


class CooldownActive(PolicyError):
    code = "COOLDOWN_ACTIVE"
