"""
Leave status notifications.

Notifiers are best-effort side channels: the workflow calls them only after
its transaction has committed and discards any error they raise.
"""
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import Config, settings
from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationKind:
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    LEAVE_AWAITING_HR = "leave_awaiting_hr"


# kind -> (title, message template, ui type)
TEMPLATES: Dict[str, tuple] = {
    NotificationKind.LEAVE_APPROVED: (
        "Leave Approved",
        "Your {leave_type} request for {number_of_days} days ({start_date} to {end_date}) has been APPROVED.",
        "success",
    ),
    NotificationKind.LEAVE_REJECTED: (
        "Leave Rejected",
        "Your {leave_type} request ({start_date} to {end_date}) has been REJECTED. Reason: {rejection_reason}",
        "error",
    ),
    NotificationKind.LEAVE_AWAITING_HR: (
        "Leave Update",
        "Your {leave_type} request ({start_date} to {end_date}) was approved by your manager and is pending HR approval.",
        "info",
    ),
}


def render(kind: str, payload: Dict[str, Any]) -> tuple:
    """Returns (title, message, ui type) for a notification kind."""
    if kind not in TEMPLATES:
        raise ValueError(f"Unknown notification kind: {kind}")
    title, template, ui_type = TEMPLATES[kind]
    values = {"rejection_reason": "not specified", **payload}
    return title, template.format(**values), ui_type


class Notifier(ABC):
    @abstractmethod
    def notify(self, recipient_employee_id: int, kind: str, payload: Dict[str, Any]) -> None:
        """Deliver one notification. Implementations may raise; callers log and drop the error."""


class InAppNotifier(Notifier):
    """Stores a Notification row using its own session, independent of the caller's transaction."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def notify(self, recipient_employee_id: int, kind: str, payload: Dict[str, Any]) -> None:
        title, message, ui_type = render(kind, payload)
        db = self.session_factory()
        try:
            db.add(Notification(
                employee_id=recipient_employee_id,
                application_id=payload.get("application_id"),
                kind=kind,
                title=title,
                message=message,
                type=ui_type,
                link=payload.get("link"),
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class EmailNotifier(Notifier):
    """SMTP delivery with retries. Without SMTP settings the message is only logged."""

    def __init__(self, config: Config = settings):
        self.mail = config.mail
        self.retry_attempts = max(1, config.notifications.retry_attempts)

    def notify(self, recipient_employee_id: int, kind: str, payload: Dict[str, Any]) -> None:
        to_email = payload.get("employee_email")
        if not to_email:
            logger.warning(f"No email address for employee {recipient_employee_id}; skipping {kind} email")
            return

        title, message, _ = render(kind, payload)
        msg = EmailMessage()
        msg["From"] = self.mail.sender
        msg["To"] = to_email
        msg["Subject"] = title
        name = payload.get("employee_name")
        greeting = f"Hello {name}," if name else "Hello,"
        msg.set_content(f"{greeting}\n\n{message}\n")

        if not self.mail.configured:
            logger.info(f"EMAIL DEBUG MODE: SMTP not configured. Would send '{title}' to {to_email}")
            return

        for attempt in Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((smtplib.SMTPException, OSError)),
            reraise=True,
        ):
            with attempt:
                self._send(msg)

    def _send(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.mail.host, self.mail.port, timeout=30) as server:
            if self.mail.use_tls:
                server.starttls()
            server.login(self.mail.username, self.mail.password)
            server.send_message(msg)


class CompositeNotifier(Notifier):
    """Fans out to several channels; one failing channel does not stop the others."""

    def __init__(self, notifiers: List[Notifier]):
        self.notifiers = notifiers

    def notify(self, recipient_employee_id: int, kind: str, payload: Dict[str, Any]) -> None:
        errors = []
        for notifier in self.notifiers:
            try:
                notifier.notify(recipient_employee_id, kind, payload)
            except Exception as e:
                logger.warning(f"{type(notifier).__name__} failed: {e}", exc_info=True)
                errors.append(e)
        if errors and len(errors) == len(self.notifiers):
            raise errors[0]


def build_notifier(config: Config = settings, session_factory: Optional[Callable[[], Session]] = None) -> Notifier:
    """Notifier configured from settings (in-app and/or email)."""
    channels: List[Notifier] = []
    if config.notifications.in_app_enabled:
        if session_factory is None:
            from app.database import SessionLocal
            session_factory = SessionLocal
        channels.append(InAppNotifier(session_factory))
    if config.notifications.email_enabled:
        channels.append(EmailNotifier(config))
    return CompositeNotifier(channels)
