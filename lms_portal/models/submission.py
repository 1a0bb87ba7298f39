from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from lms_portal.db.base_class import Base

CONTACT_STATUSES = ("new", "in-progress", "resolved")
RESUME_STATUSES = ("pending", "reviewed", "contacted")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    inquiry_type = Column(String(100), nullable=False, index=True)
    message = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default="new")
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)


class ResumeSubmission(Base):
    __tablename__ = "resume_submissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, index=True)

    file_name = Column(String(255), nullable=False)
    file_url = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(100), nullable=False)

    status = Column(String(20), nullable=False, default="pending")
    submitted_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
