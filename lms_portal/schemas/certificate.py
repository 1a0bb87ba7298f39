from datetime import datetime

from pydantic import BaseModel, Field


class CertificateReject(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class CertificateRow(BaseModel):
    enrollment_id: int
    student_id: int
    student_email: str
    student_name: str | None = None
    course_id: int
    course_title: str
    certificate_status: str
    progress: int
    requested_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
