"""
Certificate issuance and public verification.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from assessment.config import settings
from assessment.errors import NotFoundError, PersistenceError, StateError
from assessment.models import Attempt, Certificate, Course, TestKind, User
from assessment.services.completion_tracker import CompletionTracker
from assessment.utils.common import display_name, new_id, utcnow
from assessment.utils.logger import get_logger

logger = get_logger(__name__)

INVALID_MESSAGE = "Certificate not found or invalid"


@dataclass
class VerificationResult:
    valid: bool
    message: str
    certificate_number: Optional[str] = None
    student_name: Optional[str] = None
    course_title: Optional[str] = None
    issued_at: Optional[datetime] = None
    score: Optional[float] = None


def generate_certificate_number(now: datetime) -> str:
    return f"CERT-{now.year}-{now.timetuple().tm_yday:03d}-{secrets.token_hex(3).upper()}"


def generate_verification_code() -> str:
    return secrets.token_hex(8).upper()


class CertificateIssuer:
    def __init__(
        self,
        db: Session,
        clock: Callable[[], datetime] = utcnow,
        number_factory: Callable[[datetime], str] = generate_certificate_number,
        max_number_attempts: Optional[int] = None,
        tracker: Optional[CompletionTracker] = None,
    ):
        self.db = db
        self.tracker = tracker or CompletionTracker(db)
        self.clock = clock
        self.number_factory = number_factory
        self.max_number_attempts = max_number_attempts or settings.certificate_number_attempts

    def get_for_attempt(self, attempt_id: str) -> Optional[Certificate]:
        return self.db.query(Certificate).filter(Certificate.grandtest_attempt_id == attempt_id).first()

    def _unique_number(self, now: datetime) -> str:
        for _ in range(self.max_number_attempts):
            number = self.number_factory(now)
            taken = self.db.query(Certificate.id).filter(Certificate.certificate_number == number).first()
            if taken is None:
                return number
            logger.info("certificate number collision number=%s", number)
        raise PersistenceError(
            "Could not allocate a unique certificate number",
            code="CERTIFICATE_NUMBER_EXHAUSTED",
            attempts=self.max_number_attempts,
        )

    def issue_certificate(self, attempt: Attempt) -> Certificate:
        """
        Certificate for a passed grandtest attempt. Calling it again for the
        same attempt returns the certificate issued the first time. Flushes;
        the caller commits.
        """
        if attempt.kind != TestKind.GRANDTEST or not attempt.passed:
            raise StateError(
                "Certificates are issued only for passed grandtest attempts",
                code="NOT_A_PASSED_GRANDTEST",
                attempt_id=attempt.id,
            )
        existing = self.get_for_attempt(attempt.id)
        if existing is not None:
            return existing

        now = self.clock()
        certificate = Certificate(
            id=new_id(),
            user_id=attempt.owner_id,
            course_id=attempt.course_id,
            enrollment_id=attempt.enrollment_id,
            grandtest_attempt_id=attempt.id,
            certificate_number=self._unique_number(now),
            verification_code=generate_verification_code(),
            issued_at=now,
            is_valid=True,
        )
        self.db.add(certificate)
        self.db.flush()
        logger.info(
            "certificate issued number=%s user=%s course=%s attempt=%s",
            certificate.certificate_number, attempt.owner_id, attempt.course_id, attempt.id,
        )
        return certificate

    def verify_certificate(self, certificate_number: str, verification_code: str) -> VerificationResult:
        """Unknown number, wrong code and invalidated certificates all give the same answer."""
        certificate = (
            self.db.query(Certificate)
            .filter(
                Certificate.certificate_number == (certificate_number or "").strip(),
                Certificate.verification_code == (verification_code or "").strip(),
                Certificate.is_valid.is_(True),
            )
            .first()
        )
        if certificate is None:
            return VerificationResult(valid=False, message=INVALID_MESSAGE)

        user = self.db.query(User).filter(User.id == certificate.user_id).first()
        course = self.db.query(Course).filter(Course.id == certificate.course_id).first()
        attempt = self.db.query(Attempt).filter(Attempt.id == certificate.grandtest_attempt_id).first()
        return VerificationResult(
            valid=True,
            message="Certificate is valid",
            certificate_number=certificate.certificate_number,
            student_name=display_name(user) if user else None,
            course_title=course.title if course else None,
            issued_at=certificate.issued_at,
            score=attempt.percentage if attempt else None,
        )

    def list_user_certificates(self, user_id: int) -> list[Certificate]:
        return (
            self.db.query(Certificate)
            .filter(Certificate.user_id == user_id)
            .order_by(Certificate.issued_at.desc())
            .all()
        )

    def invalidate_certificate(self, certificate_id: str, reason: str) -> Certificate:
        """Revokes the certificate and refreshes the completion snapshot. Flushes; the caller commits."""
        certificate = self.db.query(Certificate).filter(Certificate.id == certificate_id).first()
        if certificate is None:
            raise NotFoundError("Certificate not found", code="CERTIFICATE_NOT_FOUND", certificate_id=certificate_id)
        if certificate.is_valid:
            certificate.is_valid = False
            certificate.invalidated_at = self.clock()
            certificate.invalidated_reason = reason
            self.db.add(certificate)
            self.db.flush()
            logger.warning("certificate invalidated number=%s reason=%s", certificate.certificate_number, reason)
            self.tracker.check_completion(certificate.user_id, certificate.course_id, certificate.enrollment_id)
        return certificate
