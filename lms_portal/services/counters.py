"""
Denormalized counters.

Each helper recomputes a stored aggregate from its source rows inside the
caller's transaction, so the new value is committed together with the
mutation that changed it. Callers lock the parent row (``with_for_update``)
before mutating, which serializes concurrent recounts of the same parent.

Pending changes are flushed first (sessions are created with
autoflush=False). The recount runs in a SAVEPOINT: a failure is rolled back
to it, logged, and leaves the previous value in place without poisoning the
outer transaction.
"""

import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms_portal.models.assessment import AttemptStatus, Test, TestAttempt, TestQuestion
from lms_portal.models.course import Course
from lms_portal.models.enrollment import Enrollment, EnrollmentStatus
from lms_portal.models.lesson import Lesson
from lms_portal.models.review import Review

logger = logging.getLogger(__name__)


def _count_questions(db: Session, test_id: int) -> int:
    return (
        db.query(func.count(TestQuestion.id))
        .filter(TestQuestion.test_id == test_id)
        .scalar()
    ) or 0


def refresh_question_count(db: Session, test_id: int) -> int | None:
    db.flush()
    try:
        with db.begin_nested():
            count = _count_questions(db, test_id)
            db.query(Test).filter(Test.id == test_id).update(
                {Test.question_count: count}, synchronize_session="fetch"
            )
        return count
    except SQLAlchemyError:
        logger.exception("Failed to refresh question_count for test %s", test_id)
        return None


def refresh_lesson_count(db: Session, course_id: int) -> int | None:
    db.flush()
    try:
        with db.begin_nested():
            count = (
                db.query(func.count(Lesson.id))
                .filter(Lesson.course_id == course_id)
                .scalar()
            ) or 0
            db.query(Course).filter(Course.id == course_id).update(
                {Course.lesson_count: count}, synchronize_session="fetch"
            )
        return count
    except SQLAlchemyError:
        logger.exception("Failed to refresh lesson_count for course %s", course_id)
        return None


def refresh_student_count(db: Session, course_id: int) -> int | None:
    db.flush()
    try:
        with db.begin_nested():
            count = (
                db.query(func.count(Enrollment.id))
                .filter(
                    Enrollment.course_id == course_id,
                    Enrollment.status == EnrollmentStatus.APPROVED,
                )
                .scalar()
            ) or 0
            db.query(Course).filter(Course.id == course_id).update(
                {Course.student_count: count}, synchronize_session="fetch"
            )
        return count
    except SQLAlchemyError:
        logger.exception("Failed to refresh student_count for course %s", course_id)
        return None


def refresh_course_rating(db: Session, course_id: int) -> None:
    db.flush()
    try:
        with db.begin_nested():
            agg = (
                db.query(
                    func.count(Review.id).label("rating_count"),
                    func.sum(Review.rating).label("total_rating"),
                    func.avg(Review.rating).label("average"),
                )
                .filter(Review.course_id == course_id)
                .first()
            )
            rating_count = int(agg.rating_count or 0)
            total_rating = int(agg.total_rating or 0)
            average = round(float(agg.average), 1) if agg.average is not None else 0.0

            db.query(Course).filter(Course.id == course_id).update(
                {
                    Course.rating_count: rating_count,
                    Course.total_rating: total_rating,
                    Course.rating: average,
                },
                synchronize_session="fetch",
            )
    except SQLAlchemyError:
        logger.exception("Failed to refresh rating for course %s", course_id)


def refresh_average_score(db: Session, enrollment: Enrollment) -> float | None:
    """Mean percentage of the student's completed attempts in the course."""
    db.flush()
    try:
        with db.begin_nested():
            avg = (
                db.query(func.avg(TestAttempt.percentage))
                .filter(
                    TestAttempt.user_id == enrollment.student_id,
                    TestAttempt.course_id == enrollment.course_id,
                    TestAttempt.status == AttemptStatus.COMPLETED,
                )
                .scalar()
            )
            enrollment.average_score = round(float(avg), 2) if avg is not None else None
        return enrollment.average_score
    except SQLAlchemyError:
        logger.exception("Failed to refresh average score for enrollment %s", enrollment.id)
        return None
