"""Unit tests for certificate issuance and verification."""
import re

import pytest

from assessment.errors import NotFoundError, PersistenceError, StateError
from assessment.models import Certificate, TestKind
from assessment.routes.certificate_routes import verify_certificate
from assessment.schemas.certificate_schemas import VerifyCertificateRequest
from assessment.services.certificate_issuer import (
    INVALID_MESSAGE,
    CertificateIssuer,
    generate_certificate_number,
)


@pytest.fixture
def issuer(db_session, clock):
    return CertificateIssuer(db_session, clock=clock)


@pytest.fixture
def passed_attempt(factory, learner, enrollment, course):
    grandtest = factory.definition(course, TestKind.GRANDTEST, question_count=5, passing_score_percentage=80)
    return factory.attempt(learner, enrollment, grandtest, percentage=90.0)


@pytest.fixture
def certificate(issuer, db_session, passed_attempt):
    cert = issuer.issue_certificate(passed_attempt)
    db_session.commit()
    return cert


@pytest.mark.unit
class TestIssueCertificate:
    def test_number_format(self, certificate, clock):
        assert re.fullmatch(r"CERT-2025-046-[0-9A-F]{6}", certificate.certificate_number)
        assert certificate.issued_at == clock()
        assert certificate.is_valid

    def test_verification_code_is_independent(self, certificate):
        assert certificate.verification_code
        assert certificate.verification_code not in certificate.certificate_number

    def test_idempotent_per_attempt(self, issuer, db_session, certificate, passed_attempt):
        again = issuer.issue_certificate(passed_attempt)
        assert again.id == certificate.id
        assert db_session.query(Certificate).count() == 1

    def test_rejects_failed_attempt(self, issuer, factory, learner, enrollment, course):
        grandtest = factory.definition(course, TestKind.GRANDTEST, question_count=5, passing_score_percentage=80)
        failed = factory.attempt(learner, enrollment, grandtest, percentage=50.0)
        with pytest.raises(StateError):
            issuer.issue_certificate(failed)

    def test_rejects_quiz_attempt(self, issuer, factory, learner, enrollment, course):
        quiz = factory.definition(course, TestKind.QUIZ, question_count=2)
        passed_quiz = factory.attempt(learner, enrollment, quiz, percentage=100.0)
        with pytest.raises(StateError):
            issuer.issue_certificate(passed_quiz)

    def test_collision_regenerates_number(self, db_session, clock, certificate, factory, learner, enrollment, course):
        numbers = iter([certificate.certificate_number, "CERT-2025-046-ABCDEF"])
        issuer = CertificateIssuer(db_session, clock=clock, number_factory=lambda now: next(numbers))
        grandtest = factory.definition(course, TestKind.GRANDTEST, question_count=5, title="Retake")
        other = factory.attempt(learner, enrollment, grandtest, percentage=100.0)
        assert issuer.issue_certificate(other).certificate_number == "CERT-2025-046-ABCDEF"

    def test_collision_retries_are_bounded(self, db_session, clock, certificate, factory, learner, enrollment, course):
        issuer = CertificateIssuer(
            db_session,
            clock=clock,
            number_factory=lambda now: certificate.certificate_number,
            max_number_attempts=3,
        )
        grandtest = factory.definition(course, TestKind.GRANDTEST, question_count=5, title="Retake")
        other = factory.attempt(learner, enrollment, grandtest, percentage=100.0)
        with pytest.raises(PersistenceError) as exc:
            issuer.issue_certificate(other)
        assert exc.value.details["attempts"] == 3

    def test_generated_numbers_differ(self, clock):
        assert generate_certificate_number(clock()) != generate_certificate_number(clock())


@pytest.mark.unit
class TestVerifyCertificate:
    def test_valid_pair(self, issuer, certificate, learner, course):
        result = issuer.verify_certificate(certificate.certificate_number, certificate.verification_code)
        assert result.valid
        assert result.student_name == "Ada Lovelace"
        assert result.course_title == course.title
        assert result.score == 90.0

    def test_wrong_code_and_wrong_number_look_the_same(self, issuer, certificate):
        wrong_code = issuer.verify_certificate(certificate.certificate_number, "0000000000000000")
        wrong_number = issuer.verify_certificate("CERT-2025-046-000000", certificate.verification_code)
        assert wrong_code == wrong_number
        assert not wrong_code.valid
        assert wrong_code.message == INVALID_MESSAGE
        assert wrong_code.student_name is None

    def test_invalidated_certificate_fails_verification(self, issuer, db_session, certificate):
        issuer.invalidate_certificate(certificate.id, "Issued in error")
        db_session.commit()
        result = issuer.verify_certificate(certificate.certificate_number, certificate.verification_code)
        assert not result.valid
        assert result.message == INVALID_MESSAGE

    @pytest.mark.asyncio
    async def test_verify_route_hides_failure_reason(self, db_session, certificate):
        bad = await verify_certificate(
            VerifyCertificateRequest(certificate_number=certificate.certificate_number, verification_code="nope"),
            db=db_session,
        )
        assert bad.valid is False
        assert bad.message == INVALID_MESSAGE
        assert bad.certificate_number is None


@pytest.mark.unit
class TestListAndInvalidate:
    def test_list_user_certificates(self, issuer, certificate, learner, factory):
        assert [c.id for c in issuer.list_user_certificates(learner.id)] == [certificate.id]
        assert issuer.list_user_certificates(factory.user().id) == []

    def test_invalidate_records_reason(self, issuer, certificate, clock):
        clock.advance(days=3)
        cert = issuer.invalidate_certificate(certificate.id, "Academic misconduct")
        assert not cert.is_valid
        assert cert.invalidated_reason == "Academic misconduct"
        assert cert.invalidated_at == clock()

    def test_invalidate_unknown(self, issuer):
        with pytest.raises(NotFoundError):
            issuer.invalidate_certificate("missing", "whatever")

    def test_invalidate_refreshes_completion_snapshot(self, issuer, db_session, certificate, learner, course, enrollment):
        before = issuer.tracker.check_completion(learner.id, course.id, enrollment.id)
        db_session.commit()
        assert before.certificate_issued is True

        issuer.invalidate_certificate(certificate.id, "Issued in error")
        db_session.commit()
        after = issuer.tracker.get_status(learner.id, course.id, enrollment.id)
        assert after.certificate_issued is False
