"""
Certificate listing (learner) and public verification.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from assessment.config import get_db
from assessment.models import User
from assessment.schemas.certificate_schemas import (
    CertificateListResponse,
    CertificateResponse,
    VerifyCertificateRequest,
    VerifyCertificateResponse,
)
from assessment.services.certificate_issuer import CertificateIssuer
from assessment.utils.auth import get_current_user
from assessment.utils.common import iso_format

certificate_routes = APIRouter()


@certificate_routes.get("/certificates", response_model=CertificateListResponse)
async def list_certificates(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CertificateListResponse:
    certificates = CertificateIssuer(db).list_user_certificates(current_user.id)
    return CertificateListResponse(
        certificates=[
            CertificateResponse(
                id=c.id,
                course_id=c.course_id,
                course_title=c.course.title if c.course else None,
                certificate_number=c.certificate_number,
                verification_code=c.verification_code,
                issued_at=iso_format(c.issued_at),
                is_valid=bool(c.is_valid),
            )
            for c in certificates
        ]
    )


@certificate_routes.post("/certificates/verify", response_model=VerifyCertificateResponse)
async def verify_certificate(
    req: VerifyCertificateRequest,
    db: Session = Depends(get_db),
) -> VerifyCertificateResponse:
    """Public: no login required. Every failure returns the same invalid answer."""
    result = CertificateIssuer(db).verify_certificate(req.certificate_number, req.verification_code)
    return VerifyCertificateResponse(
        valid=result.valid,
        message=result.message,
        certificate_number=result.certificate_number,
        student_name=result.student_name,
        course_title=result.course_title,
        issued_at=iso_format(result.issued_at),
        score=result.score,
    )
