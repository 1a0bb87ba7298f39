"""Lesson completion and course progress for an enrollment."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_portal.models.assessment import AttemptStatus, Test, TestAttempt
from lms_portal.models.enrollment import Enrollment
from lms_portal.models.lesson import Lesson
from lms_portal.services.scoring import percentage_of

logger = logging.getLogger(__name__)

# progress is held here while a final test is still outstanding
FINAL_TEST_PENDING_PROGRESS = 99


def has_final_test(db: Session, course_id: int) -> bool:
    return (
        db.query(Test.id)
        .filter(Test.course_id == course_id, Test.type == "final")
        .first()
        is not None
    )


def passed_final_test(db: Session, user_id: int, course_id: int) -> bool:
    return (
        db.query(TestAttempt.id)
        .join(Test, Test.id == TestAttempt.test_id)
        .filter(
            Test.course_id == course_id,
            Test.type == "final",
            TestAttempt.user_id == user_id,
            TestAttempt.status == AttemptStatus.COMPLETED,
            TestAttempt.passed.is_(True),
        )
        .first()
        is not None
    )


def mark_course_completed(enrollment: Enrollment) -> Enrollment:
    enrollment.completed = True
    enrollment.progress = 100
    return enrollment


def recompute_progress(db: Session, enrollment: Enrollment) -> Enrollment:
    # a finished enrollment stays finished
    if enrollment.completed:
        return enrollment

    lesson_ids = {
        row.id
        for row in db.query(Lesson.id).filter(Lesson.course_id == enrollment.course_id).all()
    }
    done = [lid for lid in (enrollment.completed_lessons or []) if lid in lesson_ids]
    progress = percentage_of(len(done), len(lesson_ids))

    if progress < 100:
        enrollment.progress = progress
    elif has_final_test(db, enrollment.course_id) and not passed_final_test(
        db, enrollment.student_id, enrollment.course_id
    ):
        enrollment.progress = FINAL_TEST_PENDING_PROGRESS
    else:
        mark_course_completed(enrollment)

    return enrollment


def complete_lesson(db: Session, enrollment: Enrollment, lesson_id: int) -> Enrollment:
    """Add ``lesson_id`` to the enrollment's completed lessons and refresh progress.

    Completing a lesson that is already recorded changes nothing.
    """
    completed = list(enrollment.completed_lessons or [])
    if lesson_id in completed:
        return enrollment

    completed.append(lesson_id)
    # reassign so the JSON column is flagged dirty
    enrollment.completed_lessons = completed

    recompute_progress(db, enrollment)
    logger.info(
        "Enrollment %s: lesson %s complete, progress %s%%",
        enrollment.id,
        lesson_id,
        enrollment.progress,
    )
    return enrollment


def count_completed_attempts(db: Session, user_id: int, course_id: int) -> int:
    return (
        db.query(func.count(TestAttempt.id))
        .filter(
            TestAttempt.user_id == user_id,
            TestAttempt.course_id == course_id,
            TestAttempt.status == AttemptStatus.COMPLETED,
        )
        .scalar()
    ) or 0
