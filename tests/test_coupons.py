from datetime import datetime, timedelta, timezone

import pytest

from lms_portal.models.coupon import Coupon
from lms_portal.services.coupons import CouponNotRedeemableError, ensure_redeemable


def make_coupon(**overrides):
    fields = {
        "code": "WELCOME10",
        "type": "percentage",
        "value": 10,
        "usage_limit": None,
        "usage_count": 0,
        "is_active": True,
        "expires_at": None,
    }
    fields.update(overrides)
    return Coupon(**fields)


def test_redeemable_coupon_passes():
    ensure_redeemable(make_coupon())
    ensure_redeemable(make_coupon(usage_limit=5, usage_count=4))


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"is_active": False}, "not active"),
        ({"expires_at": datetime(2020, 1, 1, tzinfo=timezone.utc)}, "expired"),
        ({"expires_at": datetime(2020, 1, 1)}, "expired"),
        ({"usage_limit": 3, "usage_count": 3}, "usage limit"),
    ],
)
def test_coupon_not_redeemable(overrides, message):
    with pytest.raises(CouponNotRedeemableError, match=message):
        ensure_redeemable(make_coupon(**overrides))


def test_admin_creates_coupon_with_uppercase_code(client, admin_headers):
    r = client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": " summer25 ", "type": "percentage", "value": 25, "usage_limit": 100},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["code"] == "SUMMER25"
    assert body["is_active"] is True
    assert body["usage_count"] == 0

    r = client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": "Summer25", "type": "fixed", "value": 5},
    )
    assert r.status_code == 409


def test_percentage_coupon_cannot_exceed_100(client, admin_headers):
    r = client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": "TOOMUCH", "type": "percentage", "value": 150},
    )
    assert r.status_code == 422


def test_only_admins_manage_coupons(client, student_headers):
    assert client.get("/coupons", headers=student_headers).status_code == 403
    r = client.post(
        "/coupons",
        headers=student_headers,
        json={"code": "FREE", "type": "fixed", "value": 5},
    )
    assert r.status_code == 403


def test_validate_coupon(client, admin_headers):
    client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": "SAVE50", "type": "fixed", "value": 50},
    )

    r = client.post("/coupons/validate", json={"coupon_code": "save50"})
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "discount": {"type": "fixed", "value": 50.0}}

    r = client.post("/coupons/validate", json={"coupon_code": "NOPE"})
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Invalid coupon code."}


def test_deactivated_and_expired_coupons_are_rejected(client, admin_headers):
    coupon_id = client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": "PAUSED", "type": "percentage", "value": 15},
    ).json()["id"]

    r = client.patch(f"/coupons/{coupon_id}/status", headers=admin_headers, json={"is_active": False})
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    r = client.post("/coupons/validate", json={"coupon_code": "PAUSED"})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "This coupon is not active."}

    yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": "OLD", "type": "fixed", "value": 5, "expires_at": yesterday},
    )
    r = client.post("/coupons/validate", json={"coupon_code": "OLD"})
    assert r.status_code == 400
    assert r.json()["error"] == "This coupon has expired."


def test_delete_coupon(client, admin_headers, db):
    coupon_id = client.post(
        "/coupons",
        headers=admin_headers,
        json={"code": "GONE", "type": "fixed", "value": 5},
    ).json()["id"]

    assert client.delete(f"/coupons/{coupon_id}", headers=admin_headers).status_code == 200
    assert db.query(Coupon).filter(Coupon.id == coupon_id).count() == 0
