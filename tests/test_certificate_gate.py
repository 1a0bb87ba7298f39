from datetime import datetime, timezone

import pytest

from lms_portal.core.errors import ConflictError, PermissionDeniedError
from lms_portal.models.enrollment import Enrollment
from lms_portal.services import certificates


def make_enrollment(**overrides) -> Enrollment:
    values = {
        "status": "approved",
        "progress": 100,
        "completed": True,
        "certificate_status": "none",
    }
    values.update(overrides)
    return Enrollment(**values)


def test_request_moves_none_to_requested():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    enrollment = certificates.request_certificate(make_enrollment(), now=now)

    assert enrollment.certificate_status == "requested"
    assert enrollment.certificate_requested_at == now


def test_request_allowed_by_progress_alone():
    enrollment = make_enrollment(completed=False, progress=100)
    certificates.request_certificate(enrollment)
    assert enrollment.certificate_status == "requested"


def test_request_requires_completion():
    enrollment = make_enrollment(completed=False, progress=60)
    with pytest.raises(ConflictError, match="must complete the course"):
        certificates.request_certificate(enrollment)
    assert enrollment.certificate_status == "none"


def test_request_requires_approved_enrollment():
    with pytest.raises(PermissionDeniedError):
        certificates.request_certificate(make_enrollment(status="pending"))


def test_duplicate_request_is_rejected():
    enrollment = make_enrollment(certificate_status="requested")
    with pytest.raises(ConflictError, match="already pending"):
        certificates.request_certificate(enrollment)


def test_cannot_request_after_approval():
    enrollment = make_enrollment(certificate_status="approved")
    with pytest.raises(ConflictError, match="already been approved"):
        certificates.request_certificate(enrollment)


@pytest.mark.parametrize("status", ["none", "rejected", "approved"])
def test_approve_only_from_requested(status):
    enrollment = make_enrollment(certificate_status=status)
    with pytest.raises(ConflictError):
        certificates.approve_certificate(enrollment)
    assert enrollment.certificate_status == status


def test_approve_sets_timestamp():
    enrollment = certificates.approve_certificate(make_enrollment(certificate_status="requested"))
    assert enrollment.certificate_status == "approved"
    assert enrollment.certificate_approved_at is not None


def test_reject_then_request_again():
    enrollment = make_enrollment(certificate_status="requested")
    certificates.reject_certificate(enrollment, reason="Name misspelled")

    assert enrollment.certificate_status == "rejected"
    assert enrollment.certificate_rejection_reason == "Name misspelled"
    assert enrollment.certificate_rejected_at is not None

    certificates.request_certificate(enrollment)
    assert enrollment.certificate_status == "requested"
    assert enrollment.certificate_rejection_reason is None
