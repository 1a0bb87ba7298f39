from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from lms_portal.db.base_class import Base


class EnrollmentStatus:
    PENDING = "pending"
    APPROVED = "approved"


class CertificateStatus:
    NONE = "none"
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id = Column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status = Column(String(20), nullable=False, default=EnrollmentStatus.APPROVED)
    payment_status = Column(String(20), nullable=False, default="free")

    progress = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    completed_lessons = Column(JSON, nullable=False, default=list)
    average_score = Column(Float, nullable=True)

    certificate_status = Column(
        String(20), nullable=False, default=CertificateStatus.NONE, index=True
    )
    certificate_requested_at = Column(DateTime(timezone=True), nullable=True)
    certificate_approved_at = Column(DateTime(timezone=True), nullable=True)
    certificate_rejected_at = Column(DateTime(timezone=True), nullable=True)
    certificate_rejection_reason = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "course_id", name="uq_enrollments_student_course"
        ),
    )

    student = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
