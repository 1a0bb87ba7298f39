from datetime import datetime

from pydantic import BaseModel


class EnrollmentCreate(BaseModel):
    course_id: int


class EnrollmentOut(BaseModel):
    id: int
    student_id: int
    course_id: int
    status: str
    payment_status: str
    progress: int
    completed: bool
    completed_lessons: list[int] = []
    average_score: float | None = None
    certificate_status: str
    certificate_requested_at: datetime | None = None
    certificate_approved_at: datetime | None = None
    certificate_rejected_at: datetime | None = None
    certificate_rejection_reason: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True
