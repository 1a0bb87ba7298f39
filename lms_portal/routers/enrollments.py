import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.models.course import Course, CourseType
from lms_portal.models.enrollment import Enrollment, EnrollmentStatus
from lms_portal.models.user import User
from lms_portal.schemas.enrollment import EnrollmentCreate, EnrollmentOut
from lms_portal.services.counters import refresh_student_count

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
def enroll_me(
    payload: EnrollmentCreate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    course = (
        db.query(Course).filter(Course.id == payload.course_id).with_for_update().first()
    )
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    # paid enrollments wait for an admin to confirm payment
    if course.type == CourseType.PAID:
        enrollment = Enrollment(
            student_id=me.id,
            course_id=course.id,
            status=EnrollmentStatus.PENDING,
            payment_status="paid",
        )
    else:
        enrollment = Enrollment(
            student_id=me.id,
            course_id=course.id,
            status=EnrollmentStatus.APPROVED,
            payment_status="free",
        )
    db.add(enrollment)

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Already enrolled")

    refresh_student_count(db, course.id)
    db.commit()
    db.refresh(enrollment)

    logger.info("User %s enrolled in course %s (%s)", me.id, course.id, enrollment.status)
    return enrollment


@router.get("/me", response_model=list[EnrollmentOut])
def my_enrollments(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return (
        db.query(Enrollment)
        .filter(Enrollment.student_id == me.id)
        .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        .all()
    )


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
def get_my_enrollment(
    enrollment_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    enrollment = (
        db.query(Enrollment)
        .filter(Enrollment.id == enrollment_id, Enrollment.student_id == me.id)
        .first()
    )
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return enrollment
