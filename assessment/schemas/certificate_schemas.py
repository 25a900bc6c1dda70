from pydantic import BaseModel
from typing import Optional


class CertificateResponse(BaseModel):
    id: str
    course_id: str
    course_title: Optional[str] = None
    certificate_number: str
    verification_code: str
    issued_at: str
    is_valid: bool


class CertificateListResponse(BaseModel):
    certificates: list[CertificateResponse]


class VerifyCertificateRequest(BaseModel):
    certificate_number: str
    verification_code: str


class VerifyCertificateResponse(BaseModel):
    valid: bool
    message: str
    certificate_number: Optional[str] = None
    student_name: Optional[str] = None
    course_title: Optional[str] = None
    issued_at: Optional[str] = None
    score: Optional[float] = None
