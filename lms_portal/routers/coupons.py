import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms_portal.core.deps import get_db
from lms_portal.core.errors import ConflictError
from lms_portal.core.permissions import require_admin
from lms_portal.models.coupon import Coupon
from lms_portal.models.user import User
from lms_portal.schemas.coupon import (
    CouponCreate,
    CouponRead,
    CouponStatusUpdate,
    CouponValidate,
    CouponValidation,
    Discount,
)
from lms_portal.services.coupons import ensure_redeemable, normalize_code

logger = logging.getLogger(__name__)

router = APIRouter()


def _ensure_coupon_exists(db: Session, coupon_id: int) -> Coupon:
    coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon


@router.get("", response_model=list[CouponRead])
def list_coupons(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return db.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


@router.post("", response_model=CouponRead, status_code=status.HTTP_201_CREATED)
def create_coupon(
    payload: CouponCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    coupon = Coupon(
        code=payload.code,
        type=payload.type,
        value=payload.value,
        usage_limit=payload.usage_limit,
        usage_count=0,
        is_active=True,
        expires_at=payload.expires_at,
    )
    db.add(coupon)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"Coupon code {payload.code} already exists")
    db.refresh(coupon)

    logger.info("Admin %s created coupon %s", admin.id, coupon.code)
    return coupon


@router.patch("/{coupon_id}/status", response_model=CouponRead)
def update_coupon_status(
    coupon_id: int,
    payload: CouponStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    coupon = _ensure_coupon_exists(db, coupon_id)
    coupon.is_active = payload.is_active
    db.commit()
    db.refresh(coupon)
    return coupon


@router.delete("/{coupon_id}")
def delete_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    coupon = _ensure_coupon_exists(db, coupon_id)
    db.delete(coupon)
    db.commit()
    return {"success": True, "message": "Coupon deleted"}


@router.post("/validate", response_model=CouponValidation)
def validate_coupon(
    payload: CouponValidate,
    db: Session = Depends(get_db),
):
    coupon = (
        db.query(Coupon)
        .filter(Coupon.code == normalize_code(payload.coupon_code))
        .first()
    )
    if not coupon:
        raise HTTPException(status_code=404, detail="Invalid coupon code.")

    ensure_redeemable(coupon)
    return CouponValidation(discount=Discount(type=coupon.type, value=coupon.value))
