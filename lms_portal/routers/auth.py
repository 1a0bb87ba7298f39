import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from lms_portal.core.config import ACCESS_TOKEN_EXPIRE
from lms_portal.core.current_user import BLOCKED_STATUSES, get_current_user
from lms_portal.core.deps import get_db
from lms_portal.core.errors import NotFoundError
from lms_portal.core.permissions import require_admin
from lms_portal.core.security import create_access_token, hash_password, verify_password
from lms_portal.models.user import User, UserRole, UserStatus
from lms_portal.schemas.auth import LoginRequest
from lms_portal.schemas.token import Token
from lms_portal.schemas.user import PasswordRepair, UserCreate, UserRead
from lms_portal.services.notifications import (
    EmailDispatcher,
    build_registration_welcome,
    get_email_dispatcher,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Email already registered"},
    },
)
def register(
    payload: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: EmailDispatcher = Depends(get_email_dispatcher),
):
    existing_user = db.query(User).filter(User.email == payload.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )

    # instructors wait for an admin before they can publish anything
    initial_status = (
        UserStatus.PENDING if payload.role == UserRole.INSTRUCTOR else UserStatus.APPROVED
    )

    user = User(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=hash_password(payload.password),
        role=payload.role,
        status=initial_status,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered %s user %s", user.role, user.id)
    background_tasks.add_task(mailer.deliver, build_registration_welcome(user))
    return user


@router.post(
    "/login",
    response_model=Token,
    responses={
        401: {"description": "Invalid email or password"},
        403: {"description": "Account suspended or rejected"},
    },
)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if user.status in BLOCKED_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Account is {user.status}",
        )

    access_token = create_access_token(
        data={"sub": str(user.id), "role": user.role},
        expires_delta=ACCESS_TOKEN_EXPIRE,
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
    }


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/repair-registration")
def repair_registration(
    payload: PasswordRepair,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Reset the password of an account whose registration went wrong."""
    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise NotFoundError(f"No user registered with {payload.email}")

    user.hashed_password = hash_password(payload.new_password)
    db.commit()

    logger.info("Admin %s reset password for user %s", admin.id, user.id)
    return {
        "success": True,
        "message": f"Password reset for {user.email}",
        "user_id": user.id,
    }
