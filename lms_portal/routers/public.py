import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from pydantic import EmailStr
from sqlalchemy.orm import Session

from lms_portal.core.config import DOCUMENT_CONTENT_TYPES
from lms_portal.core.deps import get_db
from lms_portal.core.errors import ValidationFailedError
from lms_portal.models.announcement import Announcement
from lms_portal.models.submission import ContactSubmission, ResumeSubmission
from lms_portal.schemas.announcement import AnnouncementRead
from lms_portal.schemas.submission import ContactCreate, ContactRead, ResumeRead
from lms_portal.services import storage
from lms_portal.services.notifications import (
    EmailDispatcher,
    build_contact_admin_notification,
    build_contact_auto_reply,
    build_resume_admin_notification,
    build_resume_confirmation,
    get_email_dispatcher,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/announcements", response_model=list[AnnouncementRead])
def list_announcements(
    limit: int = 20,
    db: Session = Depends(get_db),
):
    return (
        db.query(Announcement)
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .limit(max(1, min(limit, 100)))
        .all()
    )


@router.post("/contact", response_model=ContactRead, status_code=status.HTTP_201_CREATED)
def submit_contact_form(
    payload: ContactCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    submission = ContactSubmission(**payload.model_dump(), status="new")
    db.add(submission)
    db.commit()
    db.refresh(submission)

    logger.info("Contact submission %s (%s)", submission.id, submission.inquiry_type)
    background_tasks.add_task(mailer.deliver, build_contact_admin_notification(submission))
    background_tasks.add_task(mailer.deliver, build_contact_auto_reply(submission))
    return submission


@router.post("/resume", response_model=ResumeRead, status_code=status.HTTP_201_CREATED)
def submit_resume(
    background_tasks: BackgroundTasks,
    name: str = Form(..., max_length=255),
    email: EmailStr = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    name = name.strip()
    if not name:
        raise ValidationFailedError("name must not be blank")

    stored = storage.save_upload(file, "resumes", allowed_types=DOCUMENT_CONTENT_TYPES)

    submission = ResumeSubmission(
        name=name,
        email=email.strip().lower(),
        file_name=stored.file_name,
        file_url=stored.url,
        file_size=stored.size,
        file_type=stored.content_type,
        status="pending",
    )
    db.add(submission)
    try:
        db.commit()
    except Exception:
        db.rollback()
        storage.delete_by_url(stored.url)
        raise
    db.refresh(submission)

    logger.info("Resume submission %s stored at %s", submission.id, stored.path)
    background_tasks.add_task(mailer.deliver, build_resume_admin_notification(submission))
    background_tasks.add_task(mailer.deliver, build_resume_confirmation(submission))
    return submission
