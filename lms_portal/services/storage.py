"""
Local file storage for uploads.

Files land under UPLOAD_DIR/<folder>/<uuid>.<ext> and are served back by the
StaticFiles mount at UPLOAD_URL_PREFIX.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from fastapi import UploadFile

from lms_portal.core import config
from lms_portal.core.errors import ValidationFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    url: str
    path: str  # relative to UPLOAD_DIR
    file_name: str
    size: int
    content_type: str


def _extension(filename: str | None) -> str:
    suffix = PurePosixPath(filename or "").suffix.lower()
    if not suffix or len(suffix) > 10 or not suffix[1:].isalnum():
        return ""
    return suffix


def _safe_folder(folder: str) -> str:
    parts = [p for p in PurePosixPath(folder).parts if p not in ("", ".", "..", "/")]
    if not parts:
        raise ValueError(f"Invalid upload folder: {folder!r}")
    return "/".join(parts)


def save_upload(
    file: UploadFile,
    folder: str,
    allowed_types: set[str] | None = None,
    max_bytes: int | None = None,
) -> StoredFile:
    """
    Validate and write ``file`` to disk.

    Raises ValidationFailedError for a disallowed content type, an empty
    file, or a file larger than ``max_bytes`` (default MAX_UPLOAD_BYTES).
    """
    limit = max_bytes if max_bytes is not None else config.MAX_UPLOAD_BYTES
    content_type = file.content_type or "application/octet-stream"

    if allowed_types is not None and content_type not in allowed_types:
        raise ValidationFailedError(f"File type {content_type} is not allowed")

    data = file.file.read(limit + 1)
    if not data:
        raise ValidationFailedError("Uploaded file is empty")
    if len(data) > limit:
        raise ValidationFailedError(
            f"File is too large (max {limit // (1024 * 1024) or 1} MB)"
        )

    relative = f"{_safe_folder(folder)}/{uuid.uuid4().hex}{_extension(file.filename)}"
    target = Path(config.UPLOAD_DIR) / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)

    logger.info("Stored upload %s (%d bytes)", relative, len(data))
    return StoredFile(
        url=f"{config.UPLOAD_URL_PREFIX}/{relative}",
        path=relative,
        file_name=file.filename or PurePosixPath(relative).name,
        size=len(data),
        content_type=content_type,
    )


def path_from_url(url: str | None) -> str | None:
    """Relative storage path for a public upload URL, or None if it is not one of ours."""
    if not url:
        return None
    prefix = config.UPLOAD_URL_PREFIX.rstrip("/") + "/"
    if not url.startswith(prefix):
        return None

    relative = url[len(prefix):].split("?", 1)[0]
    parts = PurePosixPath(relative).parts
    if not parts or any(p in ("..", ".") for p in parts):
        return None
    return "/".join(parts)


def delete_by_url(url: str | None) -> bool:
    relative = path_from_url(url)
    if relative is None:
        return False

    target = Path(config.UPLOAD_DIR) / relative
    try:
        target.unlink()
    except FileNotFoundError:
        logger.warning("Upload %s already gone", relative)
        return False
    except OSError:
        logger.exception("Failed to delete upload %s", relative)
        return False

    logger.info("Deleted upload %s", relative)
    return True
