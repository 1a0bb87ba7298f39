from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.models.assessment import Test
from lms_portal.models.enrollment import Enrollment, EnrollmentStatus
from lms_portal.models.user import User, UserRole, UserStatus


def require_instructor(current_user: User = Depends(get_current_user)) -> User:
    """Approved instructors and admins."""
    if current_user.role == UserRole.ADMIN:
        return current_user
    if current_user.role != UserRole.INSTRUCTOR:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor role required",
        )
    if current_user.status != UserStatus.APPROVED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Instructor account is awaiting approval",
        )
    return current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return current_user


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def can_manage_test(test: Test, user: User) -> bool:
    return is_admin(user) or test.instructor_id == user.id


def ensure_can_take_test(db: Session, test: Test, user: User) -> None:
    """Course tests are open to the test's managers and approved enrollees only."""
    if test.course_id is None or can_manage_test(test, user):
        return

    enrolled = (
        db.query(Enrollment.id)
        .filter(
            Enrollment.student_id == user.id,
            Enrollment.course_id == test.course_id,
            Enrollment.status == EnrollmentStatus.APPROVED,
        )
        .first()
    )
    if enrolled is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enrolled in this course",
        )
