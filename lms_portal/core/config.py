import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Security
SECRET_KEY = os.getenv("LMS_SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=int(os.getenv("LMS_ACCESS_TOKEN_MINUTES", "60")))
BCRYPT_ROUNDS = int(os.getenv("LMS_BCRYPT_ROUNDS", "12"))

# Database
DATABASE_URL = os.getenv("LMS_DATABASE_URL", f"sqlite:///{BASE_DIR}/lms_portal.db")

# Assessment policy
DEFAULT_PASSING_SCORE = 80  # percent
CERTIFICATE_MIN_PROGRESS = 100  # percent of lessons completed

# Uploads
UPLOAD_DIR = Path(os.getenv("LMS_UPLOAD_DIR", str(BASE_DIR / "uploads")))
UPLOAD_URL_PREFIX = "/uploads"
MAX_UPLOAD_BYTES = int(os.getenv("LMS_MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
IMAGE_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
DOCUMENT_CONTENT_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# Email
APP_URL = os.getenv("APP_URL", "http://localhost:8000")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
SENDER_NAME = os.getenv("SENDER_NAME", "Whiteboard Consultants")

# primary provider
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "")
SMTP_SECURE = os.getenv("SMTP_SECURE", "false").lower() == "true"

# secondary provider, used when the primary is not configured
SMTP_FALLBACK_HOST = os.getenv("SMTP_FALLBACK_HOST", "mail.smtp2go.com")
SMTP_FALLBACK_PORT = int(os.getenv("SMTP_FALLBACK_PORT", "2525"))
SMTP_FALLBACK_USER = os.getenv("SMTP_FALLBACK_USER", "")
SMTP_FALLBACK_PASSWORD = os.getenv("SMTP_FALLBACK_PASSWORD", "")
SMTP_FALLBACK_FROM_EMAIL = os.getenv("SMTP_FALLBACK_FROM_EMAIL", "")

SMTP_TIMEOUT_SECONDS = 15
