import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_portal.core.deps import get_db
from lms_portal.core.errors import ConflictError
from lms_portal.core.permissions import require_admin
from lms_portal.models.announcement import Announcement
from lms_portal.models.course import Course
from lms_portal.models.enrollment import CertificateStatus, Enrollment, EnrollmentStatus
from lms_portal.models.submission import ContactSubmission, ResumeSubmission
from lms_portal.models.user import User, UserRole, UserStatus
from lms_portal.schemas.announcement import AnnouncementCreate, AnnouncementRead
from lms_portal.schemas.dashboard import AdminSummary
from lms_portal.schemas.enrollment import EnrollmentOut
from lms_portal.schemas.submission import (
    ContactRead,
    ContactStats,
    ContactStatusUpdate,
    ResumeRead,
    ResumeStats,
    ResumeStatusUpdate,
)
from lms_portal.schemas.user import UserRead
from lms_portal.services.counters import refresh_student_count

logger = logging.getLogger(__name__)

router = APIRouter()

STATS_WINDOW = timedelta(days=30)

# action -> (statuses it may start from, resulting status)
USER_TRANSITIONS = {
    "approve": ({UserStatus.PENDING, UserStatus.REJECTED}, UserStatus.APPROVED),
    "suspend": ({UserStatus.APPROVED}, UserStatus.SUSPENDED),
    "reinstate": ({UserStatus.SUSPENDED}, UserStatus.APPROVED),
    "reject": ({UserStatus.PENDING}, UserStatus.REJECTED),
}


def _ensure_user_exists(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _ensure_enrollment_exists(db: Session, enrollment_id: int) -> Enrollment:
    enrollment = db.query(Enrollment).filter(Enrollment.id == enrollment_id).first()
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return enrollment


def _window_start() -> datetime:
    return datetime.now(timezone.utc) - STATS_WINDOW


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserRead])
def list_users(
    role: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role)
    if status_filter:
        q = q.filter(User.status == status_filter)
    return q.order_by(User.created_at.desc(), User.id.desc()).all()


@router.post("/users/{user_id}/{action}", response_model=UserRead)
def change_user_status(
    user_id: int,
    action: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    if action not in USER_TRANSITIONS:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")

    user = _ensure_user_exists(db, user_id)
    if user.id == admin.id:
        raise ConflictError("You cannot change the status of your own account")
    if user.role == UserRole.ADMIN:
        raise ConflictError("Admin accounts cannot be changed here")

    allowed_from, new_status = USER_TRANSITIONS[action]
    if user.status not in allowed_from:
        raise ConflictError(f"Cannot {action} a user who is {user.status}")

    user.status = new_status
    db.commit()
    db.refresh(user)

    logger.info("Admin %s: %s user %s -> %s", admin.id, action, user.id, new_status)
    return user


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------


@router.get("/enrollments", response_model=list[EnrollmentOut])
def list_enrollments(
    status_filter: str | None = Query(default=None, alias="status"),
    course_id: int | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(Enrollment)
    if status_filter:
        q = q.filter(Enrollment.status == status_filter)
    if course_id is not None:
        q = q.filter(Enrollment.course_id == course_id)
    return q.order_by(Enrollment.created_at.desc(), Enrollment.id.desc()).all()


@router.post("/enrollments/{enrollment_id}/approve", response_model=EnrollmentOut)
def approve_enrollment(
    enrollment_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    enrollment = _ensure_enrollment_exists(db, enrollment_id)
    if enrollment.status != EnrollmentStatus.PENDING:
        raise ConflictError("Enrollment is not pending")

    enrollment.status = EnrollmentStatus.APPROVED
    refresh_student_count(db, enrollment.course_id)
    db.commit()
    db.refresh(enrollment)
    return enrollment


@router.delete("/enrollments/{enrollment_id}")
def revoke_enrollment(
    enrollment_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    enrollment = _ensure_enrollment_exists(db, enrollment_id)
    course_id = enrollment.course_id

    db.delete(enrollment)
    refresh_student_count(db, course_id)
    db.commit()

    logger.info("Admin %s revoked enrollment %s", admin.id, enrollment_id)
    return {"success": True, "message": "Enrollment revoked"}


# ---------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------


@router.post(
    "/announcements",
    response_model=AnnouncementRead,
    status_code=status.HTTP_201_CREATED,
)
def create_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    announcement = Announcement(
        title=payload.title.strip(),
        content=payload.content.strip(),
        type=payload.type,
    )
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return announcement


@router.delete("/announcements/{announcement_id}")
def delete_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    announcement = db.query(Announcement).filter(Announcement.id == announcement_id).first()
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")

    db.delete(announcement)
    db.commit()
    return {"success": True, "message": "Announcement deleted"}


# ---------------------------------------------------------------------------
# Contact submissions
# ---------------------------------------------------------------------------


@router.get("/contact-submissions", response_model=list[ContactRead])
def list_contact_submissions(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(ContactSubmission)
    if status_filter:
        q = q.filter(ContactSubmission.status == status_filter)
    return q.order_by(ContactSubmission.submitted_at.desc(), ContactSubmission.id.desc()).all()


@router.get("/contact-submissions/stats", response_model=ContactStats)
def contact_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    since = _window_start()
    total = db.query(func.count(ContactSubmission.id)).scalar() or 0
    recent = (
        db.query(func.count(ContactSubmission.id))
        .filter(ContactSubmission.submitted_at >= since)
        .scalar()
    ) or 0
    by_type = (
        db.query(ContactSubmission.inquiry_type, func.count(ContactSubmission.id))
        .filter(ContactSubmission.submitted_at >= since)
        .group_by(ContactSubmission.inquiry_type)
        .all()
    )
    return ContactStats(
        total=total,
        last_30_days=recent,
        by_inquiry_type={inquiry: int(count) for inquiry, count in by_type},
    )


@router.patch("/contact-submissions/{submission_id}", response_model=ContactRead)
def update_contact_status(
    submission_id: int,
    payload: ContactStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    submission = (
        db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
    )
    if not submission:
        raise HTTPException(status_code=404, detail="Contact submission not found")

    submission.status = payload.status
    db.commit()
    db.refresh(submission)
    return submission


@router.delete("/contact-submissions/{submission_id}")
def delete_contact_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    submission = (
        db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
    )
    if not submission:
        raise HTTPException(status_code=404, detail="Contact submission not found")

    db.delete(submission)
    db.commit()
    return {"success": True, "message": "Contact submission deleted"}


# ---------------------------------------------------------------------------
# Resume submissions
# ---------------------------------------------------------------------------


@router.get("/resume-submissions", response_model=list[ResumeRead])
def list_resume_submissions(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(ResumeSubmission)
    if status_filter:
        q = q.filter(ResumeSubmission.status == status_filter)
    return q.order_by(ResumeSubmission.submitted_at.desc(), ResumeSubmission.id.desc()).all()


@router.get("/resume-submissions/stats", response_model=ResumeStats)
def resume_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    total = db.query(func.count(ResumeSubmission.id)).scalar() or 0
    recent = (
        db.query(func.count(ResumeSubmission.id))
        .filter(ResumeSubmission.submitted_at >= _window_start())
        .scalar()
    ) or 0
    by_status = (
        db.query(ResumeSubmission.status, func.count(ResumeSubmission.id))
        .group_by(ResumeSubmission.status)
        .all()
    )
    return ResumeStats(
        total=total,
        last_30_days=recent,
        by_status={s: int(count) for s, count in by_status},
    )


@router.patch("/resume-submissions/{submission_id}", response_model=ResumeRead)
def update_resume_status(
    submission_id: int,
    payload: ResumeStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    submission = (
        db.query(ResumeSubmission).filter(ResumeSubmission.id == submission_id).first()
    )
    if not submission:
        raise HTTPException(status_code=404, detail="Resume submission not found")

    submission.status = payload.status
    submission.updated_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(submission)
    return submission


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@router.get("/dashboard", response_model=AdminSummary)
def admin_dashboard(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())

    pending_instructors = (
        db.query(func.count(User.id))
        .filter(User.role == UserRole.INSTRUCTOR, User.status == UserStatus.PENDING)
        .scalar()
    ) or 0

    pending_enrollments = (
        db.query(func.count(Enrollment.id))
        .filter(Enrollment.status == EnrollmentStatus.PENDING)
        .scalar()
    ) or 0

    pending_certificates = (
        db.query(func.count(Enrollment.id))
        .filter(Enrollment.certificate_status == CertificateStatus.REQUESTED)
        .scalar()
    ) or 0

    return AdminSummary(
        users_by_role={
            role: int(by_role.get(role, 0))
            for role in (UserRole.STUDENT, UserRole.INSTRUCTOR, UserRole.ADMIN)
        },
        pending_instructors=pending_instructors,
        courses=db.query(func.count(Course.id)).scalar() or 0,
        enrollments=db.query(func.count(Enrollment.id)).scalar() or 0,
        pending_enrollments=pending_enrollments,
        pending_certificates=pending_certificates,
    )
