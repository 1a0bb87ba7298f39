import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms_portal.core.config import DOCUMENT_CONTENT_TYPES, IMAGE_CONTENT_TYPES
from lms_portal.core.current_user import get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.errors import ConflictError, NotFoundError, ValidationFailedError
from lms_portal.core.permissions import is_admin, require_instructor
from lms_portal.models.course import Course, CourseType
from lms_portal.models.enrollment import Enrollment, EnrollmentStatus
from lms_portal.models.review import Review
from lms_portal.models.user import User, UserRole, UserStatus
from lms_portal.schemas.course import CourseCreate, CourseRead, CourseUpdate
from lms_portal.schemas.review import ReviewCreate, ReviewRead
from lms_portal.services import storage
from lms_portal.services.counters import refresh_course_rating
from lms_portal.services.scoring import round_half_up

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_course_exists(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def _ensure_can_manage(course: Course, user: User) -> None:
    if not is_admin(user) and course.instructor_id != user.id:
        raise HTTPException(status_code=403, detail="Not course instructor")


def _resolve_owner(db: Session, payload: CourseCreate, me: User) -> User:
    if payload.instructor_id is None or payload.instructor_id == me.id:
        return me
    if not is_admin(me):
        raise HTTPException(
            status_code=403, detail="Only admins can create courses for other instructors"
        )

    owner = db.query(User).filter(User.id == payload.instructor_id).first()
    if not owner:
        raise NotFoundError("Instructor not found")
    if owner.role != UserRole.INSTRUCTOR or owner.status != UserStatus.APPROVED:
        raise ValidationFailedError("instructor_id must reference an approved instructor")
    return owner


def _apply_price_rule(course: Course) -> None:
    # free courses never carry a price
    if course.type == CourseType.FREE:
        course.price = 0


@router.get("", response_model=list[CourseRead])
def list_courses(
    category: str | None = None,
    type: str | None = Query(default=None, pattern="^(free|paid)$"),
    instructor_id: int | None = None,
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
):
    q = db.query(Course)
    if category:
        q = q.filter(Course.category == category)
    if type:
        q = q.filter(Course.type == type)
    if instructor_id is not None:
        q = q.filter(Course.instructor_id == instructor_id)
    if search and search.strip():
        q = q.filter(Course.title.ilike(f"%{search.strip()}%"))
    return q.order_by(Course.created_at.desc(), Course.id.desc()).all()


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    owner = _resolve_owner(db, payload, me)

    course = Course(
        title=payload.title,
        description=payload.description,
        instructor_id=owner.id,
        instructor_name=owner.full_name or owner.email,
        type=payload.type,
        price=payload.price,
        category=payload.category,
        level=payload.level,
        tags=payload.tags,
        has_certificate=payload.has_certificate,
    )
    _apply_price_rule(course)

    db.add(course)
    db.commit()
    db.refresh(course)
    logger.info("Course %s created for instructor %s", course.id, owner.id)
    return course


@router.get("/me", response_model=list[CourseRead])
def my_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(Course)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .filter(Enrollment.student_id == current_user.id)
        .order_by(Enrollment.created_at.desc())
        .all()
    )


@router.get("/{course_id}", response_model=CourseRead)
def get_course(course_id: int, db: Session = Depends(get_db)):
    return _ensure_course_exists(db, course_id)


@router.patch("/{course_id}", response_model=CourseRead)
def update_course(
    course_id: int,
    payload: CourseUpdate,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "type", "price", "level", "tags", "has_certificate"):
            continue
        setattr(course, field, value)
    _apply_price_rule(course)

    db.commit()
    db.refresh(course)
    return course


@router.delete("/{course_id}")
def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    files = [course.image_url, course.certificate_url]
    db.delete(course)
    db.commit()

    for url in files:
        if url:
            storage.delete_by_url(url)

    logger.info("Course %s deleted by user %s", course_id, me.id)
    return {"success": True, "message": "Course deleted"}


@router.post("/{course_id}/thumbnail", response_model=CourseRead)
def upload_thumbnail(
    course_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    stored = storage.save_upload(file, f"courses/{course.id}", allowed_types=IMAGE_CONTENT_TYPES)
    previous = course.image_url
    course.image_url = stored.url
    db.commit()
    db.refresh(course)

    if previous:
        storage.delete_by_url(previous)
    return course


@router.delete("/{course_id}/thumbnail", response_model=CourseRead)
def delete_thumbnail(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    previous = course.image_url
    course.image_url = None
    db.commit()
    db.refresh(course)

    if previous:
        storage.delete_by_url(previous)
    return course


@router.post("/{course_id}/certificate-template", response_model=CourseRead)
def upload_certificate_template(
    course_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    stored = storage.save_upload(
        file,
        f"certificates/{course.id}",
        allowed_types=IMAGE_CONTENT_TYPES | DOCUMENT_CONTENT_TYPES,
    )
    previous = course.certificate_url
    course.certificate_url = stored.url
    db.commit()
    db.refresh(course)

    if previous:
        storage.delete_by_url(previous)
    return course


@router.delete("/{course_id}/certificate-template", response_model=CourseRead)
def delete_certificate_template(
    course_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_instructor),
):
    course = _ensure_course_exists(db, course_id)
    _ensure_can_manage(course, me)

    previous = course.certificate_url
    course.certificate_url = None
    db.commit()
    db.refresh(course)

    if previous:
        storage.delete_by_url(previous)
    return course


@router.get("/{course_id}/reviews", response_model=list[ReviewRead])
def list_reviews(course_id: int, db: Session = Depends(get_db)):
    _ensure_course_exists(db, course_id)
    return (
        db.query(Review)
        .filter(Review.course_id == course_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


@router.post(
    "/{course_id}/reviews",
    response_model=ReviewRead,
    status_code=status.HTTP_201_CREATED,
)
def create_review(
    course_id: int,
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    me: User = Depends(get_current_user),
):
    _ensure_course_exists(db, course_id)

    enrolled = (
        db.query(Enrollment)
        .filter(
            Enrollment.course_id == course_id,
            Enrollment.student_id == me.id,
            Enrollment.status == EnrollmentStatus.APPROVED,
        )
        .first()
    )
    if not enrolled:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")

    review = Review(
        course_id=course_id,
        user_id=me.id,
        user_name=me.full_name or me.email,
        content_rating=payload.content_rating,
        instructor_rating=payload.instructor_rating,
        rating=round_half_up((payload.content_rating + payload.instructor_rating) / 2),
        comment=payload.comment.strip(),
    )
    db.add(review)

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError("You have already reviewed this course")

    refresh_course_rating(db, course_id)
    db.commit()
    db.refresh(review)
    return review
