"""
Outbound notification channels used by the reminder dispatcher.

``Notifier`` is the collaborator interface. ``PortalNotifier`` is the
default implementation: email through a mailer, in-app notifications as rows
in the notifications table.
"""
import logging
from typing import Protocol

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from academy.core.config import settings
from academy.models.notification import Notification
from academy.models.user import User

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, user_id: int, subject: str, body: str) -> bool: ...

    def create_in_app(
        self, user_id: int, title: str, message: str, type: str, related_id: int | None
    ) -> bool: ...


class Mailer(Protocol):
    def send_email(self, to: str, subject: str, html: str) -> bool: ...


class SendGridMailer:
    def __init__(self, api_key: str, sender: str):
        self.client = SendGridAPIClient(api_key)
        self.sender = sender

    def send_email(self, to: str, subject: str, html: str) -> bool:
        message = Mail(
            from_email=self.sender,
            to_emails=to,
            subject=subject,
            html_content=html,
        )
        try:
            response = self.client.send(message)
        except Exception as exc:
            logger.warning("sendgrid send to %s failed: %s", to, exc)
            return False
        return 200 <= response.status_code < 300


class LogMailer:
    """Development mailer: logs the message instead of sending it."""

    def send_email(self, to: str, subject: str, html: str) -> bool:
        logger.info("mail to=%s subject=%r (%d chars)", to, subject, len(html))
        return True


def build_mailer() -> Mailer:
    if settings.SENDGRID_API_KEY:
        return SendGridMailer(settings.SENDGRID_API_KEY, settings.MAIL_FROM)
    return LogMailer()


class PortalNotifier:
    def __init__(self, db: Session, mailer: Mailer | None = None):
        self.db = db
        self.mailer = mailer or build_mailer()

    def send(self, user_id: int, subject: str, body: str) -> bool:
        user = self.db.get(User, user_id)
        if user is None or not user.email:
            logger.warning("no email address for user %s", user_id)
            return False
        return self.mailer.send_email(user.email, subject, body)

    def create_in_app(
        self, user_id: int, title: str, message: str, type: str, related_id: int | None
    ) -> bool:
        self.db.add(
            Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                related_id=related_id,
            )
        )
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("in-app notification for user %s failed: %s", user_id, exc)
            return False
        return True
