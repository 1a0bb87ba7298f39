from io import BytesIO
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from lms_portal.core.errors import ValidationFailedError
from lms_portal.services import storage


def make_upload(data: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        file=BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(storage.config, "UPLOAD_DIR", tmp_path)
    return tmp_path


def test_save_upload_writes_file_and_returns_public_url(upload_dir):
    stored = storage.save_upload(
        make_upload(b"%PDF-1.4 resume", "My CV.PDF", "application/pdf"),
        "resumes",
        allowed_types={"application/pdf"},
    )

    assert stored.url.startswith("/uploads/resumes/")
    assert stored.url.endswith(".pdf")
    assert stored.file_name == "My CV.PDF"
    assert stored.size == len(b"%PDF-1.4 resume")
    assert (Path(upload_dir) / stored.path).read_bytes() == b"%PDF-1.4 resume"


def test_disallowed_type_is_rejected(upload_dir):
    with pytest.raises(ValidationFailedError, match="not allowed"):
        storage.save_upload(
            make_upload(b"MZ", "virus.exe", "application/x-msdownload"),
            "resumes",
            allowed_types={"application/pdf"},
        )


def test_oversized_file_is_rejected(upload_dir):
    with pytest.raises(ValidationFailedError, match="too large"):
        storage.save_upload(
            make_upload(b"x" * 11, "big.pdf", "application/pdf"),
            "resumes",
            max_bytes=10,
        )


def test_empty_file_is_rejected(upload_dir):
    with pytest.raises(ValidationFailedError, match="empty"):
        storage.save_upload(make_upload(b"", "empty.pdf", "application/pdf"), "resumes")


def test_path_from_url():
    assert storage.path_from_url("/uploads/courses/1/abc.png") == "courses/1/abc.png"
    assert storage.path_from_url("/uploads/courses/1/abc.png?v=2") == "courses/1/abc.png"
    assert storage.path_from_url("https://cdn.example.com/abc.png") is None
    assert storage.path_from_url("/uploads/../secrets.txt") is None
    assert storage.path_from_url(None) is None


def test_delete_by_url_is_best_effort(upload_dir):
    stored = storage.save_upload(make_upload(b"png", "a.png", "image/png"), "courses/1")

    assert storage.delete_by_url(stored.url) is True
    assert not (Path(upload_dir) / stored.path).exists()
    # second delete and foreign urls never raise
    assert storage.delete_by_url(stored.url) is False
    assert storage.delete_by_url("https://cdn.example.com/a.png") is False
