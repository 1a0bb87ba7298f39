"""
Outgoing email.

EmailDispatcher.send() picks the primary SMTP provider when it is fully
configured (host, user and password) and the secondary provider otherwise.
It returns True on success and False on any failure; it never raises, so
routers can hand it to BackgroundTasks and forget about it.

The build_* helpers return an OutgoingEmail for every notification the
application sends. Recipient-supplied values are HTML-escaped.
"""

import logging
import re
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape

from lms_portal.core import config
from lms_portal.models.user import UserStatus

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


@dataclass(frozen=True)
class SmtpProvider:
    name: str
    host: str
    port: int
    user: str
    password: str
    from_email: str
    secure: bool = False

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    @property
    def sender(self) -> str:
        return self.from_email or self.user


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str | None = None


def html_to_text(html: str) -> str:
    text = _TAG_RE.sub("", html)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


class EmailDispatcher:
    def __init__(
        self,
        primary: SmtpProvider | None,
        fallback: SmtpProvider | None = None,
        sender_name: str = config.SENDER_NAME,
        timeout: float = config.SMTP_TIMEOUT_SECONDS,
    ):
        self.primary = primary
        self.fallback = fallback
        self.sender_name = sender_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "EmailDispatcher":
        primary = SmtpProvider(
            name="primary",
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            user=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            from_email=config.SMTP_FROM_EMAIL,
            secure=config.SMTP_SECURE,
        )
        fallback = SmtpProvider(
            name="fallback",
            host=config.SMTP_FALLBACK_HOST,
            port=config.SMTP_FALLBACK_PORT,
            user=config.SMTP_FALLBACK_USER,
            password=config.SMTP_FALLBACK_PASSWORD,
            from_email=config.SMTP_FALLBACK_FROM_EMAIL,
        )
        return cls(primary, fallback)

    def select_provider(self) -> SmtpProvider | None:
        for provider in (self.primary, self.fallback):
            if provider is not None and provider.configured:
                return provider
        return None

    def send(self, to: str, subject: str, html: str, text: str | None = None) -> bool:
        if not to:
            logger.warning("Skipping email %r: no recipient", subject)
            return False

        provider = self.select_provider()
        if provider is None:
            logger.warning("Email not configured, skipping %r to %s", subject, to)
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.sender_name, provider.sender))
        msg["To"] = to
        msg.attach(MIMEText(text or html_to_text(html), "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))

        try:
            if provider.secure:
                with smtplib.SMTP_SSL(provider.host, provider.port, timeout=self.timeout) as server:
                    server.login(provider.user, provider.password)
                    server.sendmail(provider.sender, [to], msg.as_string())
            else:
                with smtplib.SMTP(provider.host, provider.port, timeout=self.timeout) as server:
                    server.ehlo()
                    server.starttls()
                    server.login(provider.user, provider.password)
                    server.sendmail(provider.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send %r to %s via %s", subject, to, provider.name)
            return False

        logger.info("Sent %r to %s via %s", subject, to, provider.name)
        return True

    def deliver(self, email: OutgoingEmail) -> bool:
        return self.send(email.to, email.subject, email.html, email.text)


dispatcher = EmailDispatcher.from_settings()


def get_email_dispatcher() -> EmailDispatcher:
    return dispatcher


# ---------------------------------------------------------------------------
# Message builders
# ---------------------------------------------------------------------------


def _wrap(title: str, body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"<h2>{escape(title)}</h2>{body}"
        f'<p style="color: #64748b; font-size: 12px;">{escape(config.SENDER_NAME)}</p>'
        "</div>"
    )


def build_contact_admin_notification(submission) -> OutgoingEmail:
    name = f"{submission.first_name} {submission.last_name}"
    body = (
        f"<p><strong>Name:</strong> {escape(name)}</p>"
        f"<p><strong>Email:</strong> {escape(submission.email)}</p>"
        f"<p><strong>Phone:</strong> {escape(submission.phone)}</p>"
        f"<p><strong>Inquiry Type:</strong> {escape(submission.inquiry_type)}</p>"
    )
    if submission.message:
        body += f"<p><strong>Message:</strong><br>{escape(submission.message)}</p>"
    body += f'<p><a href="{config.APP_URL}/admin/contact-submissions">View all submissions</a></p>'

    text = (
        f"New contact form submission - {submission.inquiry_type}\n\n"
        f"Name: {name}\nEmail: {submission.email}\nPhone: {submission.phone}\n"
    )
    if submission.message:
        text += f"\nMessage:\n{submission.message}\n"

    return OutgoingEmail(
        to=config.ADMIN_EMAIL,
        subject=f"New Contact Form Submission - {submission.inquiry_type}",
        html=_wrap("New Contact Form Submission", body),
        text=text,
    )


def build_contact_auto_reply(submission) -> OutgoingEmail:
    body = (
        f"<p>Dear {escape(submission.first_name)},</p>"
        "<p>Thank you for reaching out. We have received your inquiry about "
        f"<strong>{escape(submission.inquiry_type)}</strong> and will get back to you "
        "within 24 hours.</p>"
    )
    return OutgoingEmail(
        to=submission.email,
        subject=f"Thank you for contacting {config.SENDER_NAME} - {submission.inquiry_type}",
        html=_wrap("We received your message", body),
    )


def build_resume_admin_notification(submission) -> OutgoingEmail:
    size_kb = round((submission.file_size or 0) / 1024, 1)
    body = (
        f"<p><strong>Name:</strong> {escape(submission.name)}</p>"
        f"<p><strong>Email:</strong> {escape(submission.email)}</p>"
        f"<p><strong>File:</strong> {escape(submission.file_name)} ({size_kb} KB)</p>"
        f'<p><a href="{config.APP_URL}{submission.file_url}">Download resume</a></p>'
    )
    return OutgoingEmail(
        to=config.ADMIN_EMAIL,
        subject=f"New Resume Submission - {submission.name}",
        html=_wrap("New Resume Submission", body),
    )


def build_resume_confirmation(submission) -> OutgoingEmail:
    body = (
        f"<p>Dear {escape(submission.name)},</p>"
        f"<p>We have received your resume ({escape(submission.file_name)}). "
        "Our team will review it and contact you if there is a match.</p>"
    )
    return OutgoingEmail(
        to=submission.email,
        subject="Resume received",
        html=_wrap("Resume received", body),
    )


def build_certificate_requested(student, course) -> OutgoingEmail:
    body = (
        f"<p>{escape(student.full_name or student.email)} ({escape(student.email)}) "
        f"requested a certificate for <strong>{escape(course.title)}</strong>.</p>"
        f'<p><a href="{config.APP_URL}/admin/certificates">Review pending requests</a></p>'
    )
    return OutgoingEmail(
        to=config.ADMIN_EMAIL,
        subject=f"Certificate request - {course.title}",
        html=_wrap("Certificate request", body),
    )


def build_certificate_approved(student, course) -> OutgoingEmail:
    body = (
        f"<p>Congratulations {escape(student.full_name or '')}!</p>"
        f"<p>Your certificate for <strong>{escape(course.title)}</strong> has been approved.</p>"
        f'<p><a href="{config.APP_URL}/dashboard/certificates">View your certificate</a></p>'
    )
    return OutgoingEmail(
        to=student.email,
        subject=f"Your certificate for {course.title} is ready",
        html=_wrap("Certificate approved", body),
    )


def build_certificate_rejected(student, course, reason: str | None = None) -> OutgoingEmail:
    body = f"<p>Your certificate request for <strong>{escape(course.title)}</strong> was not approved.</p>"
    if reason:
        body += f"<p><strong>Reason:</strong> {escape(reason)}</p>"
    body += "<p>You can submit a new request once the issue is resolved.</p>"
    return OutgoingEmail(
        to=student.email,
        subject=f"Certificate request for {course.title}",
        html=_wrap("Certificate request update", body),
    )


def build_registration_welcome(user) -> OutgoingEmail:
    body = f"<p>Welcome {escape(user.full_name or user.email)}, your account has been created.</p>"
    if user.status != UserStatus.APPROVED:
        body += "<p>An administrator will review your account shortly.</p>"
    body += f'<p><a href="{config.APP_URL}/login">Sign in</a></p>'
    return OutgoingEmail(
        to=user.email,
        subject=f"Welcome to {config.SENDER_NAME}",
        html=_wrap("Welcome", body),
    )
