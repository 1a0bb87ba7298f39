from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.permissions import require_instructor
from lms_portal.models.assessment import AttemptStatus, Test, TestAttempt
from lms_portal.models.course import Course
from lms_portal.models.enrollment import CertificateStatus, Enrollment, EnrollmentStatus
from lms_portal.models.lesson import Lesson
from lms_portal.models.user import User
from lms_portal.schemas.dashboard import InstructorCourseStats, StudentCourseRow
from lms_portal.services.progress import count_completed_attempts

router = APIRouter(tags=["dashboards"])


@router.get("/instructor/dashboard", response_model=list[InstructorCourseStats])
def instructor_dashboard(
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    courses = (
        db.query(Course)
        .filter(Course.instructor_id == me.id)
        .order_by(Course.id.asc())
        .all()
    )

    rows: list[InstructorCourseStats] = []

    for course in courses:
        total_students = (
            db.query(func.count(Enrollment.id))
            .filter(
                Enrollment.course_id == course.id,
                Enrollment.status == EnrollmentStatus.APPROVED,
            )
            .scalar()
        ) or 0

        total_lessons = (
            db.query(func.count(Lesson.id)).filter(Lesson.course_id == course.id).scalar()
        ) or 0

        total_tests = (
            db.query(func.count(Test.id)).filter(Test.course_id == course.id).scalar()
        ) or 0

        attempts = (
            db.query(
                func.count(TestAttempt.id).label("completed"),
                func.avg(TestAttempt.percentage).label("average"),
            )
            .join(Test, Test.id == TestAttempt.test_id)
            .filter(
                Test.course_id == course.id,
                TestAttempt.status == AttemptStatus.COMPLETED,
            )
            .first()
        )

        pending_certificates = (
            db.query(func.count(Enrollment.id))
            .filter(
                Enrollment.course_id == course.id,
                Enrollment.certificate_status == CertificateStatus.REQUESTED,
            )
            .scalar()
        ) or 0

        rows.append(
            InstructorCourseStats(
                course_id=course.id,
                course_title=course.title,
                total_students=total_students,
                total_lessons=total_lessons,
                total_tests=total_tests,
                completed_attempts=int(attempts.completed or 0),
                average_percentage=(
                    round(float(attempts.average), 2) if attempts.average is not None else None
                ),
                pending_certificates=pending_certificates,
            )
        )

    return rows


@router.get("/student/dashboard", response_model=list[StudentCourseRow])
def student_dashboard(
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    enrollments = (
        db.query(Enrollment, Course)
        .join(Course, Course.id == Enrollment.course_id)
        .filter(Enrollment.student_id == me.id)
        .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        .all()
    )

    rows: list[StudentCourseRow] = []
    for enrollment, course in enrollments:
        best = (
            db.query(func.max(TestAttempt.percentage))
            .filter(
                TestAttempt.user_id == me.id,
                TestAttempt.course_id == course.id,
                TestAttempt.status == AttemptStatus.COMPLETED,
            )
            .scalar()
        )
        rows.append(
            StudentCourseRow(
                enrollment_id=enrollment.id,
                course_id=course.id,
                course_title=course.title,
                status=enrollment.status,
                progress=enrollment.progress,
                completed=enrollment.completed,
                certificate_status=enrollment.certificate_status,
                completed_attempts=count_completed_attempts(db, me.id, course.id),
                best_percentage=float(best) if best is not None else None,
            )
        )
    return rows
