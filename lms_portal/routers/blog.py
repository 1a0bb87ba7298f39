import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms_portal.core.deps import get_db
from lms_portal.core.errors import ConflictError, ValidationFailedError
from lms_portal.core.permissions import require_admin
from lms_portal.models.post import Post, PostStatus
from lms_portal.models.user import User
from lms_portal.schemas.post import PostCreate, PostRead, PostUpdate
from lms_portal.services.blog import estimate_read_time, slugify

logger = logging.getLogger(__name__)

router = APIRouter()

DUPLICATE_SLUG = "A post with this slug already exists. Please choose a different slug."


def _ensure_post_exists(db: Session, post_id: int) -> Post:
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


def _ensure_slug_free(db: Session, slug: str, exclude_id: int | None = None) -> None:
    q = db.query(Post.id).filter(Post.slug == slug)
    if exclude_id is not None:
        q = q.filter(Post.id != exclude_id)
    if q.first() is not None:
        raise ConflictError(DUPLICATE_SLUG)


def _commit_post(db: Session, post: Post) -> Post:
    # the unique index catches a slug taken between the check and the write
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_SLUG)
    db.refresh(post)
    return post


@router.get("/posts", response_model=list[PostRead])
def list_published_posts(
    category: str | None = None,
    featured: bool | None = None,
    limit: int = 20,
    db: Session = Depends(get_db),
):
    q = db.query(Post).filter(Post.status == PostStatus.PUBLISHED)
    if category:
        q = q.filter(Post.category == category)
    if featured is not None:
        q = q.filter(Post.featured.is_(featured))
    return (
        q.order_by(Post.published_at.desc(), Post.id.desc())
        .limit(max(1, min(limit, 100)))
        .all()
    )


@router.get("/posts/{slug}", response_model=PostRead)
def get_published_post(slug: str, db: Session = Depends(get_db)):
    post = (
        db.query(Post)
        .filter(Post.slug == slug, Post.status == PostStatus.PUBLISHED)
        .first()
    )
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("/admin/posts", response_model=list[PostRead])
def list_all_posts(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    q = db.query(Post)
    if status_filter:
        q = q.filter(Post.status == status_filter)
    return q.order_by(Post.created_at.desc(), Post.id.desc()).all()


@router.post("/posts", response_model=PostRead, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    slug = payload.slug or slugify(payload.title)
    if len(slug) < 2:
        raise ValidationFailedError("Slug must be at least 2 characters.")
    _ensure_slug_free(db, slug)

    now = datetime.now(timezone.utc)
    post = Post(
        title=payload.title.strip(),
        slug=slug,
        excerpt=payload.excerpt.strip(),
        content=payload.content,
        category=payload.category.strip(),
        tags=payload.tags,
        image_url=payload.image_url,
        status=payload.status,
        featured=payload.featured,
        read_time_minutes=estimate_read_time(payload.content),
        author_id=admin.id,
        author_name=admin.full_name or admin.email,
        published_at=now if payload.status == PostStatus.PUBLISHED else None,
        updated_at=now,
    )
    db.add(post)
    _commit_post(db, post)

    logger.info("Post %s (%s) created by admin %s", post.id, post.slug, admin.id)
    return post


@router.patch("/posts/{post_id}", response_model=PostRead)
def update_post(
    post_id: int,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    post = _ensure_post_exists(db, post_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    if "slug" in changes and changes["slug"] != post.slug:
        _ensure_slug_free(db, changes["slug"], exclude_id=post.id)

    for field, value in changes.items():
        setattr(post, field, value)

    if "content" in changes:
        post.read_time_minutes = estimate_read_time(post.content)
    if post.status == PostStatus.PUBLISHED and post.published_at is None:
        post.published_at = datetime.now(timezone.utc)
    post.updated_at = datetime.now(timezone.utc)

    return _commit_post(db, post)


@router.delete("/posts/{post_id}")
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    post = _ensure_post_exists(db, post_id)
    db.delete(post)
    db.commit()
    logger.info("Post %s deleted by admin %s", post_id, admin.id)
    return {"success": True, "message": "Post deleted"}
