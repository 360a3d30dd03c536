"""Outbound email for workflow transitions.

Routes build a :class:`Notification` and hand it to ``notify``, which queues
delivery as a FastAPI background task. Delivery runs after the response is
sent, retries a bounded number of times, and never raises.
"""

import logging
import smtplib
import time
from dataclasses import dataclass
from email.message import EmailMessage

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.user import ROLE_ADMIN, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    recipients: tuple[str, ...]
    subject: str
    body: str


def admin_recipients(db: Session) -> tuple[str, ...]:
    emails = [email for (email,) in db.query(User.email).filter(User.role == ROLE_ADMIN).all()]
    if config.ADMIN_NOTIFICATION_EMAIL and config.ADMIN_NOTIFICATION_EMAIL not in emails:
        emails.append(config.ADMIN_NOTIFICATION_EMAIL)
    return tuple(emails)


def build_message(notification: Notification) -> EmailMessage:
    message = EmailMessage()
    message["From"] = config.MAIL_FROM
    message["To"] = ", ".join(notification.recipients)
    message["Subject"] = notification.subject
    message.set_content(notification.body)
    return message


def send_message(message: EmailMessage) -> None:
    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=10) as smtp:
        if config.SMTP_USE_TLS:
            smtp.starttls()
        if config.SMTP_USERNAME:
            smtp.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
        smtp.send_message(message)


def deliver(notification: Notification) -> bool:
    """Send a notification, returning whether it was handed to the mail server."""
    if not notification.recipients:
        return False

    if not config.SMTP_HOST:
        logger.info(
            "SMTP not configured; skipping mail '%s' to %s",
            notification.subject,
            ", ".join(notification.recipients),
        )
        return False

    message = build_message(notification)
    attempts = max(1, config.MAIL_MAX_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            send_message(message)
            logger.info("Sent mail '%s' on attempt %d", notification.subject, attempt)
            return True
        except (smtplib.SMTPException, OSError):
            logger.exception(
                "Mail delivery failed for '%s' (attempt %d of %d)",
                notification.subject,
                attempt,
                attempts,
            )
            if attempt < attempts:
                time.sleep(config.MAIL_RETRY_BACKOFF_SECONDS * attempt)

    logger.error("Giving up on mail '%s'", notification.subject)
    return False


def notify(background_tasks: BackgroundTasks, notification: Notification) -> None:
    if not notification.recipients:
        logger.debug("No recipients for '%s'; nothing queued", notification.subject)
        return
    background_tasks.add_task(deliver, notification)
