from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.errors import ValidationFailedError
from lms_portal.core.permissions import is_admin, require_instructor
from lms_portal.models.course import Course
from lms_portal.models.enrollment import Enrollment, EnrollmentStatus
from lms_portal.models.lesson import Lesson
from lms_portal.models.user import User
from lms_portal.schemas.enrollment import EnrollmentOut
from lms_portal.schemas.lesson import LessonCreate, LessonRead, LessonReorder, LessonUpdate
from lms_portal.services.counters import refresh_lesson_count
from lms_portal.services.progress import complete_lesson

router = APIRouter()


def _ensure_course_exists(db: Session, course_id: int, for_update: bool = False) -> Course:
    q = db.query(Course).filter(Course.id == course_id)
    if for_update:
        q = q.with_for_update()
    course = q.first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course



def _ensure_lesson_exists(db: Session, lesson_id: int) -> Lesson:
    lesson = db.query(Lesson).filter(Lesson.id == lesson_id).first()
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return lesson


def _ensure_can_manage(course: Course, user: User) -> None:
    if not is_admin(user) and course.instructor_id != user.id:
        raise HTTPException(status_code=403, detail="Not course instructor")


def _approved_enrollment(db: Session, course_id: int, student_id: int) -> Enrollment | None:
    return (
        db.query(Enrollment)
        .filter(
            Enrollment.course_id == course_id,
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.APPROVED,
        )
        .first()
    )


@router.get("/courses/{course_id}/lessons", response_model=list[LessonRead])
def list_lessons(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    course = _ensure_course_exists(db, course_id)
    can_view = (
        is_admin(me)
        or course.instructor_id == me.id
        or _approved_enrollment(db, course_id, me.id) is not None
    )
    if not can_view:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")

    return (
        db.query(Lesson)
        .filter(Lesson.course_id == course_id)
        .order_by(Lesson.order_number.asc(), Lesson.id.asc())
        .all()
    )


@router.post(
    "/courses/{course_id}/lessons",
    response_model=LessonRead,
    status_code=status.HTTP_201_CREATED,
)
def create_lesson(
    course_id: int,
    payload: LessonCreate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id, for_update=True)
    _ensure_can_manage(course, me)

    if payload.parent_id is not None:
        parent = _ensure_lesson_exists(db, payload.parent_id)
        if parent.course_id != course_id:
            raise ValidationFailedError("Parent lesson belongs to a different course")

    # new lessons go last
    existing = (
        db.query(func.count(Lesson.id)).filter(Lesson.course_id == course_id).scalar()
    ) or 0

    lesson = Lesson(
        course_id=course_id,
        parent_id=payload.parent_id,
        title=payload.title.strip(),
        type=payload.type,
        content=payload.content,
        objectives=payload.objectives,
        asset_url=payload.asset_url,
        order_number=existing,
    )
    db.add(lesson)
    refresh_lesson_count(db, course_id)
    db.commit()
    db.refresh(lesson)
    return lesson


@router.patch("/lessons/{lesson_id}", response_model=LessonRead)
def update_lesson(
    lesson_id: int,
    payload: LessonUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    lesson = _ensure_lesson_exists(db, lesson_id)
    _ensure_can_manage(_ensure_course_exists(db, lesson.course_id), me)

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "type", "content"):
            continue
        setattr(lesson, field, value)

    db.commit()
    db.refresh(lesson)
    return lesson


@router.delete("/lessons/{lesson_id}")
def delete_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    lesson = _ensure_lesson_exists(db, lesson_id)
    course_id = lesson.course_id
    _ensure_can_manage(_ensure_course_exists(db, course_id, for_update=True), me)

    # sub-lessons go with their parent
    db.delete(lesson)
    refresh_lesson_count(db, course_id)
    db.commit()
    return {"success": True, "message": "Lesson deleted"}


@router.put("/courses/{course_id}/lessons/order", response_model=list[LessonRead])
def reorder_lessons(
    course_id: int,
    payload: LessonReorder,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    lessons = {
        lesson.id: lesson
        for lesson in db.query(Lesson).filter(Lesson.course_id == course_id).all()
    }
    unknown = [lid for lid in payload.lesson_ids if lid not in lessons]
    if unknown:
        raise ValidationFailedError(f"Lessons not in this course: {unknown}")
    if len(set(payload.lesson_ids)) != len(payload.lesson_ids):
        raise ValidationFailedError("lesson_ids contains duplicates")

    for position, lid in enumerate(payload.lesson_ids):
        lessons[lid].order_number = position

    db.commit()
    return (
        db.query(Lesson)
        .filter(Lesson.course_id == course_id)
        .order_by(Lesson.order_number.asc(), Lesson.id.asc())
        .all()
    )


@router.post("/lessons/{lesson_id}/complete", response_model=EnrollmentOut)
def mark_lesson_complete(
    lesson_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    lesson = _ensure_lesson_exists(db, lesson_id)
    enrollment = _approved_enrollment(db, lesson.course_id, me.id)
    if not enrollment:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")

    complete_lesson(db, enrollment, lesson.id)
    db.commit()
    db.refresh(enrollment)
    return enrollment
