"""
Certificate approval gate.

    none ──request──▶ requested ──approve──▶ approved
      ▲                   │
      │                reject
      │                   ▼
      └──── request ── rejected

Students request, admins approve or reject. Nothing moves on its own.
"""

from datetime import datetime, timezone

from lms_portal.core.config import CERTIFICATE_MIN_PROGRESS
from lms_portal.core.errors import ConflictError, PermissionDeniedError
from lms_portal.models.enrollment import CertificateStatus, Enrollment, EnrollmentStatus


def is_course_finished(enrollment: Enrollment) -> bool:
    return bool(enrollment.completed) or (enrollment.progress or 0) >= CERTIFICATE_MIN_PROGRESS


def ensure_can_request(enrollment: Enrollment) -> None:
    if enrollment.status != EnrollmentStatus.APPROVED:
        raise PermissionDeniedError("Enrollment has not been approved yet.")

    current = enrollment.certificate_status or CertificateStatus.NONE
    if current == CertificateStatus.REQUESTED:
        raise ConflictError("Certificate request is already pending approval.")
    if current == CertificateStatus.APPROVED:
        raise ConflictError("Certificate has already been approved.")

    if not is_course_finished(enrollment):
        raise ConflictError("You must complete the course before requesting a certificate.")


def ensure_is_requested(enrollment: Enrollment) -> None:
    if enrollment.certificate_status != CertificateStatus.REQUESTED:
        raise ConflictError(
            f"Certificate is not awaiting approval (status: {enrollment.certificate_status})."
        )


def request_certificate(enrollment: Enrollment, now: datetime | None = None) -> Enrollment:
    ensure_can_request(enrollment)
    enrollment.certificate_status = CertificateStatus.REQUESTED
    enrollment.certificate_requested_at = now or datetime.now(timezone.utc)
    enrollment.certificate_rejection_reason = None
    return enrollment


def approve_certificate(enrollment: Enrollment, now: datetime | None = None) -> Enrollment:
    ensure_is_requested(enrollment)
    enrollment.certificate_status = CertificateStatus.APPROVED
    enrollment.certificate_approved_at = now or datetime.now(timezone.utc)
    return enrollment


def reject_certificate(
    enrollment: Enrollment,
    reason: str | None = None,
    now: datetime | None = None,
) -> Enrollment:
    ensure_is_requested(enrollment)
    enrollment.certificate_status = CertificateStatus.REJECTED
    enrollment.certificate_rejected_at = now or datetime.now(timezone.utc)
    enrollment.certificate_rejection_reason = reason
    return enrollment
