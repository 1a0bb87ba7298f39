import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.errors import ConflictError, ValidationFailedError
from lms_portal.core.permissions import ensure_can_take_test, is_admin, require_instructor
from lms_portal.models.assessment import AttemptStatus, Test, TestAttempt, TestQuestion
from lms_portal.models.enrollment import Enrollment
from lms_portal.models.user import User
from lms_portal.schemas.attempt import (
    AttemptRead,
    AttemptSubmit,
    RetakeEligibility,
    ReviewFlagsUpdate,
)
from lms_portal.services.counters import refresh_average_score
from lms_portal.services.progress import mark_course_completed
from lms_portal.services.scoring import score_answers

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_test_exists(db: Session, test_id: int) -> Test:
    test = db.query(Test).filter(Test.id == test_id).first()
    if not test:
        raise HTTPException(status_code=404, detail="Test not found")
    return test


def _ensure_attempt_exists(db: Session, attempt_id: int) -> TestAttempt:
    attempt = db.query(TestAttempt).filter(TestAttempt.id == attempt_id).first()
    if not attempt:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return attempt


def _ensure_owner(attempt: TestAttempt, user: User) -> None:
    if attempt.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not your attempt")


def _ensure_in_progress(attempt: TestAttempt) -> None:
    if attempt.status != AttemptStatus.IN_PROGRESS:
        raise ConflictError(f"Attempt is already {attempt.status}")


def _enrollment_for(db: Session, user_id: int, course_id: int | None) -> Enrollment | None:
    if course_id is None:
        return None
    return (
        db.query(Enrollment)
        .filter(Enrollment.student_id == user_id, Enrollment.course_id == course_id)
        .first()
    )


def _attempts_used(db: Session, user_id: int, test_id: int) -> int:
    # abandoned attempts count too
    return (
        db.query(func.count(TestAttempt.id))
        .filter(TestAttempt.user_id == user_id, TestAttempt.test_id == test_id)
        .scalar()
    ) or 0


def _eligibility(db: Session, user: User, test: Test) -> RetakeEligibility:
    used = _attempts_used(db, user.id, test.id)
    return RetakeEligibility(
        test_id=test.id,
        attempts_used=used,
        max_attempts=test.max_attempts,
        can_attempt=test.max_attempts is None or used < test.max_attempts,
    )


@router.get("/tests/{test_id}/eligibility", response_model=RetakeEligibility)
def retake_eligibility(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    test = _ensure_test_exists(db, test_id)
    return _eligibility(db, me, test)


@router.post(
    "/tests/{test_id}/attempts",
    response_model=AttemptRead,
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    test = _ensure_test_exists(db, test_id)

    question_count = (
        db.query(func.count(TestQuestion.id)).filter(TestQuestion.test_id == test_id).scalar()
    ) or 0
    if question_count == 0:
        raise ValidationFailedError("Test has no questions yet")

    ensure_can_take_test(db, test, me)

    if not _eligibility(db, me, test).can_attempt:
        raise ConflictError(f"Maximum attempts ({test.max_attempts}) reached")

    attempt = TestAttempt(
        user_id=me.id,
        test_id=test.id,
        course_id=test.course_id,
        status=AttemptStatus.IN_PROGRESS,
        answers=[],
        review_flags=[],
        total_questions=question_count,
        time_left=test.time_limit if test.is_time_limited else None,
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.info("User %s started attempt %s on test %s", me.id, attempt.id, test.id)
    return attempt


@router.post("/attempts/{attempt_id}/submit", response_model=AttemptRead)
def submit_attempt(
    attempt_id: int,
    payload: AttemptSubmit,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    attempt = _ensure_attempt_exists(db, attempt_id)
    _ensure_owner(attempt, me)
    _ensure_in_progress(attempt)

    test = _ensure_test_exists(db, attempt.test_id)
    questions = (
        db.query(TestQuestion)
        .filter(TestQuestion.test_id == test.id)
        .order_by(TestQuestion.order_number.asc(), TestQuestion.id.asc())
        .all()
    )

    result = score_answers(
        payload.answers,
        [q.correct_answer for q in questions],
        passing_score=test.passing_score,
    )

    attempt.answers = list(payload.answers)
    attempt.score = result.score
    attempt.total_questions = result.total_questions
    attempt.correct_answers = result.correct_answers
    attempt.incorrect_answers = result.incorrect_answers
    attempt.unanswered = result.unanswered
    attempt.percentage = result.percentage
    attempt.passed = result.passed
    attempt.status = AttemptStatus.COMPLETED
    attempt.submitted_at = datetime.now(timezone.utc)
    if payload.time_left is not None:
        attempt.time_left = payload.time_left

    enrollment = _enrollment_for(db, me.id, attempt.course_id)
    if enrollment is not None:
        refresh_average_score(db, enrollment)
        if result.passed and test.type == "final":
            mark_course_completed(enrollment)

    db.commit()
    db.refresh(attempt)
    logger.info(
        "Attempt %s submitted: %s/%s (%s%%, passed=%s)",
        attempt.id,
        result.score,
        result.total_questions,
        result.percentage,
        result.passed,
    )
    return attempt


@router.post("/attempts/{attempt_id}/abandon", response_model=AttemptRead)
def abandon_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    attempt = _ensure_attempt_exists(db, attempt_id)
    _ensure_owner(attempt, me)
    _ensure_in_progress(attempt)

    attempt.status = AttemptStatus.ABANDONED
    attempt.score = 0
    attempt.percentage = 0
    attempt.passed = False
    attempt.submitted_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(attempt)
    return attempt


@router.put("/attempts/{attempt_id}/review-flags", response_model=AttemptRead)
def update_review_flags(
    attempt_id: int,
    payload: ReviewFlagsUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    attempt = _ensure_attempt_exists(db, attempt_id)
    _ensure_owner(attempt, me)
    if attempt.status != AttemptStatus.COMPLETED:
        raise ConflictError("Only completed attempts can be reviewed")

    test = _ensure_test_exists(db, attempt.test_id)
    if not test.allow_review:
        raise HTTPException(status_code=403, detail="Review is disabled for this test")

    total = attempt.total_questions or 0
    out_of_range = [i for i in payload.review_flags if i < 0 or i >= total]
    if out_of_range:
        raise ValidationFailedError(f"Question indices out of range: {out_of_range}")

    attempt.review_flags = sorted(set(payload.review_flags))
    db.commit()
    db.refresh(attempt)
    return attempt


@router.get("/attempts/me", response_model=list[AttemptRead])
def my_attempts(
    test_id: int | None = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    q = db.query(TestAttempt).filter(TestAttempt.user_id == me.id)
    if test_id is not None:
        q = q.filter(TestAttempt.test_id == test_id)
    return q.order_by(TestAttempt.started_at.desc(), TestAttempt.id.desc()).all()


@router.get("/attempts/{attempt_id}", response_model=AttemptRead)
def get_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    attempt = _ensure_attempt_exists(db, attempt_id)
    if attempt.user_id != me.id and not is_admin(me):
        test = _ensure_test_exists(db, attempt.test_id)
        if test.instructor_id != me.id:
            raise HTTPException(status_code=403, detail="Not your attempt")
    return attempt


@router.get("/tests/{test_id}/attempts", response_model=list[AttemptRead])
def list_test_attempts(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    test = _ensure_test_exists(db, test_id)
    if not is_admin(me) and test.instructor_id != me.id:
        raise HTTPException(status_code=403, detail="Not the test owner")

    return (
        db.query(TestAttempt)
        .filter(TestAttempt.test_id == test_id)
        .order_by(TestAttempt.started_at.desc(), TestAttempt.id.desc())
        .all()
    )
