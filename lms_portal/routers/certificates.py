import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.errors import ConflictError
from lms_portal.core.permissions import is_admin, require_admin
from lms_portal.models.course import Course
from lms_portal.models.enrollment import CertificateStatus, Enrollment
from lms_portal.models.user import User
from lms_portal.schemas.certificate import CertificateReject, CertificateRow
from lms_portal.schemas.enrollment import EnrollmentOut
from lms_portal.services import certificates
from lms_portal.services.notifications import (
    EmailDispatcher,
    build_certificate_approved,
    build_certificate_rejected,
    build_certificate_requested,
    get_email_dispatcher,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_enrollment_exists(db: Session, enrollment_id: int) -> Enrollment:
    enrollment = db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return enrollment


def _rows(db: Session, status_value: str, user_id: int | None = None) -> list[CertificateRow]:
    q = (
        db.query(Enrollment, User, Course)
        .join(User, User.id == Enrollment.student_id)
        .join(Course, Course.id == Enrollment.course_id)
        .filter(Enrollment.certificate_status == status_value)
    )
    if user_id is not None:
        q = q.filter(Enrollment.student_id == user_id)

    if status_value == CertificateStatus.REQUESTED:
        q = q.order_by(Enrollment.certificate_requested_at.asc(), Enrollment.id.asc())
    else:
        q = q.order_by(Enrollment.certificate_approved_at.desc(), Enrollment.id.desc())

    return [
        CertificateRow(
            enrollment_id=e.id,
            student_id=u.id,
            student_email=u.email,
            student_name=u.full_name,
            course_id=c.id,
            course_title=c.title,
            certificate_status=e.certificate_status,
            progress=e.progress,
            requested_at=e.certificate_requested_at,
            approved_at=e.certificate_approved_at,
            rejected_at=e.certificate_rejected_at,
            rejection_reason=e.certificate_rejection_reason,
        )
        for e, u, c in q.all()
    ]


@router.post("/{enrollment_id}/request", response_model=EnrollmentOut)
def request_certificate(
    enrollment_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    enrollment = _ensure_enrollment_exists(db, enrollment_id)
    if enrollment.student_id != me.id:
        raise HTTPException(status_code=403, detail="Not your enrollment")

    course = enrollment.course
    if not course.has_certificate:
        raise ConflictError("This course does not offer a certificate.")

    certificates.request_certificate(enrollment)
    db.commit()
    db.refresh(enrollment)

    logger.info("Certificate requested for enrollment %s", enrollment.id)
    background_tasks.add_task(mailer.deliver, build_certificate_requested(me, course))
    return enrollment


@router.get("/requests", response_model=list[CertificateRow])
def list_requested(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return _rows(db, CertificateStatus.REQUESTED)


@router.get("/approved", response_model=list[CertificateRow])
def list_approved(
    user_id: int | None = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    # non-admins only ever see their own certificates
    if not is_admin(me):
        user_id = me.id
    return _rows(db, CertificateStatus.APPROVED, user_id=user_id)


@router.post("/{enrollment_id}/approve", response_model=EnrollmentOut)
def approve_certificate(
    enrollment_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    enrollment = _ensure_enrollment_exists(db, enrollment_id)
    certificates.approve_certificate(enrollment)
    db.commit()
    db.refresh(enrollment)

    logger.info("Admin %s approved certificate for enrollment %s", admin.id, enrollment.id)
    background_tasks.add_task(
        mailer.deliver, build_certificate_approved(enrollment.student, enrollment.course)
    )
    return enrollment


@router.post("/{enrollment_id}/reject", response_model=EnrollmentOut)
def reject_certificate(
    enrollment_id: int,
    background_tasks: BackgroundTasks,
    payload: CertificateReject | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    enrollment = _ensure_enrollment_exists(db, enrollment_id)
    reason = payload.reason.strip() if payload and payload.reason else None

    certificates.reject_certificate(enrollment, reason=reason or None)
    db.commit()
    db.refresh(enrollment)

    logger.info("Admin %s rejected certificate for enrollment %s", admin.id, enrollment.id)
    background_tasks.add_task(
        mailer.deliver,
        build_certificate_rejected(enrollment.student, enrollment.course, reason),
    )
    return enrollment
