"""
Coupon redemption rules.

A coupon can be redeemed while it is active, not past ``expires_at`` and,
when it has a ``usage_limit``, used fewer times than that limit.
"""

from datetime import datetime, timezone

from lms_portal.core.errors import LMSError
from lms_portal.models.coupon import Coupon


class CouponNotRedeemableError(LMSError):
    pass


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def ensure_redeemable(coupon: Coupon, now: datetime | None = None) -> None:
    now = now or datetime.now(timezone.utc)

    if not coupon.is_active:
        raise CouponNotRedeemableError("This coupon is not active.")
    if coupon.expires_at is not None and _as_utc(coupon.expires_at) < now:
        raise CouponNotRedeemableError("This coupon has expired.")
    if coupon.usage_limit and coupon.usage_count >= coupon.usage_limit:
        raise CouponNotRedeemableError("This coupon has reached its usage limit.")
