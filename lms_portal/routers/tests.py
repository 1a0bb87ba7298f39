import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.errors import ValidationFailedError
from lms_portal.core.permissions import ensure_can_take_test, is_admin, require_instructor
from lms_portal.models.assessment import Test, TestQuestion
from lms_portal.models.course import Course
from lms_portal.models.enrollment import Enrollment, EnrollmentStatus
from lms_portal.models.user import User, UserRole
from lms_portal.schemas.assessment import (
    QuestionCreate,
    QuestionPublic,
    QuestionRead,
    QuestionReorder,
    QuestionUpdate,
    TestCreate,
    TestRead,
    TestUpdate,
)
from lms_portal.services.counters import refresh_question_count

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_test_exists(db: Session, test_id: int, for_update: bool = False) -> Test:
    q = db.query(Test).filter(Test.id == test_id)
    if for_update:
        # serializes question writes and recounts on the same test
        q = q.with_for_update()
    test = q.first()
    if not test:
        raise HTTPException(status_code=404, detail="Test not found")
    return test



def _ensure_question_exists(db: Session, question_id: int) -> TestQuestion:
    question = db.query(TestQuestion).filter(TestQuestion.id == question_id).first()
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


def _ensure_can_manage(test: Test, user: User) -> None:
    if not is_admin(user) and test.instructor_id != user.id:
        raise HTTPException(status_code=403, detail="Not the test owner")


def _ordered_questions(db: Session, test_id: int) -> list[TestQuestion]:
    return (
        db.query(TestQuestion)
        .filter(TestQuestion.test_id == test_id)
        .order_by(TestQuestion.order_number.asc(), TestQuestion.id.asc())
        .all()
    )


@router.post("", response_model=TestRead, status_code=status.HTTP_201_CREATED)
def create_test(
    payload: TestCreate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course_title = None
    if payload.course_id is not None:
        course = db.query(Course).filter(Course.id == payload.course_id).first()
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        if not is_admin(me) and course.instructor_id != me.id:
            raise HTTPException(status_code=403, detail="Not course instructor")
        course_title = course.title

    test = Test(
        **payload.model_dump(),
        instructor_id=me.id,
        course_title=course_title,
        question_count=0,
    )
    db.add(test)
    db.commit()
    db.refresh(test)
    logger.info("Test %s created by user %s", test.id, me.id)
    return test


@router.get("", response_model=list[TestRead])
def list_tests(
    course_id: int | None = None,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    q = db.query(Test)
    if course_id is not None:
        q = q.filter(Test.course_id == course_id)

    if me.role == UserRole.INSTRUCTOR:
        q = q.filter(Test.instructor_id == me.id)
    elif me.role == UserRole.STUDENT:
        enrolled_courses = db.query(Enrollment.course_id).filter(
            Enrollment.student_id == me.id,
            Enrollment.status == EnrollmentStatus.APPROVED,
        )
        q = q.filter(Test.course_id.in_(enrolled_courses))

    return q.order_by(Test.created_at.desc(), Test.id.desc()).all()


@router.get("/{test_id}", response_model=TestRead)
def get_test(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    return _ensure_test_exists(db, test_id)


@router.patch("/{test_id}", response_model=TestRead)
def update_test(
    test_id: int,
    payload: TestUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    test = _ensure_test_exists(db, test_id)
    _ensure_can_manage(test, me)

    nullable = {"description", "time_limit", "max_attempts"}
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in nullable:
            continue
        setattr(test, field, value)

    db.commit()
    db.refresh(test)
    return test


@router.delete("/{test_id}")
def delete_test(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    test = _ensure_test_exists(db, test_id)
    _ensure_can_manage(test, me)

    db.delete(test)
    db.commit()
    return {"success": True, "message": "Test deleted"}


@router.get("/{test_id}/questions", response_model=list[QuestionPublic])
def list_questions(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    test = _ensure_test_exists(db, test_id)
    ensure_can_take_test(db, test, me)
    return _ordered_questions(db, test_id)


@router.get("/{test_id}/questions/full", response_model=list[QuestionRead])
def list_questions_with_answers(
    test_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    test = _ensure_test_exists(db, test_id)
    _ensure_can_manage(test, me)
    return _ordered_questions(db, test_id)


@router.post(
    "/{test_id}/questions",
    response_model=QuestionRead,
    status_code=status.HTTP_201_CREATED,
)
def add_question(
    test_id: int,
    payload: QuestionCreate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    test = _ensure_test_exists(db, test_id, for_update=True)
    _ensure_can_manage(test, me)

    highest = (
        db.query(func.max(TestQuestion.order_number))
        .filter(TestQuestion.test_id == test_id)
        .scalar()
    )

    question = TestQuestion(
        test_id=test_id,
        question_text=payload.question_text,
        options=payload.options,
        correct_answer=payload.correct_answer,
        explanation=payload.explanation,
        points=payload.points,
        order_number=0 if highest is None else highest + 1,
    )
    db.add(question)
    refresh_question_count(db, test_id)
    db.commit()
    db.refresh(question)
    return question


@router.patch("/questions/{question_id}", response_model=QuestionRead)
def update_question(
    question_id: int,
    payload: QuestionUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    question = _ensure_question_exists(db, question_id)
    _ensure_can_manage(_ensure_test_exists(db, question.test_id, for_update=True), me)

    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    options = changes.get("options", question.options)
    correct = changes.get("correct_answer", question.correct_answer)
    if correct >= len(options):
        raise ValidationFailedError("correct_answer must index into options")

    for field, value in changes.items():
        setattr(question, field, value)

    refresh_question_count(db, question.test_id)
    db.commit()
    db.refresh(question)
    return question


@router.delete("/questions/{question_id}")
def delete_question(
    question_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    question = _ensure_question_exists(db, question_id)
    test_id = question.test_id
    _ensure_can_manage(_ensure_test_exists(db, test_id, for_update=True), me)

    db.delete(question)
    question_count = refresh_question_count(db, test_id)
    db.commit()
    return {"success": True, "message": "Question deleted", "question_count": question_count}


@router.put("/{test_id}/questions/order", response_model=list[QuestionRead])
def reorder_questions(
    test_id: int,
    payload: QuestionReorder,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    test = _ensure_test_exists(db, test_id, for_update=True)
    _ensure_can_manage(test, me)

    questions = {q.id: q for q in _ordered_questions(db, test_id)}
    unknown = [qid for qid in payload.question_ids if qid not in questions]
    if unknown:
        raise ValidationFailedError(f"Questions not in this test: {unknown}")
    if len(set(payload.question_ids)) != len(payload.question_ids):
        raise ValidationFailedError("question_ids contains duplicates")

    for position, qid in enumerate(payload.question_ids):
        questions[qid].order_number = position

    db.commit()
    return _ordered_questions(db, test_id)
