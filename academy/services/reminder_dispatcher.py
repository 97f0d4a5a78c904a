"""
Deadline reminder run: selector -> dedup gate -> notifier.

A reservation is made before anything is sent and is kept even if the send
fails, so a failed send still uses up the dedup window for that key. This
prefers "never twice" over "always delivered within the window".
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from html import escape

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from academy.core.clock import Clock, as_utc, utcnow
from academy.core.config import settings
from academy.core.errors import SendFailure, StoreUnavailable
from academy.models.gradable_item import ASSIGNMENT
from academy.services.dedup_gate import NotificationDedupGate
from academy.services.notifier import Notifier
from academy.services.reminder_selector import ReminderCandidate, ReminderSelector

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    aborted: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReminderMessage:
    subject: str
    body: str
    title: str
    message: str


def compose_reminder(candidate: ReminderCandidate, now: datetime) -> ReminderMessage:
    is_assignment = candidate.item_kind == ASSIGNMENT
    hours_left = round((candidate.due_at - as_utc(now)).total_seconds() / 3600, 1)
    due_text = candidate.due_at.strftime("%B %d, %Y %I:%M %p UTC")

    if is_assignment:
        subject = f"Reminder: Assignment Due in {hours_left} hours"
        title = "Reminder: Assignment Due Soon"
        message = f"Your assignment '{candidate.title}' is due soon"
        link = f"{settings.PORTAL_BASE_URL}student/classes/{candidate.class_id}/assignments"
    else:
        subject = f"Reminder: Quiz Closes in {hours_left} hours"
        title = "Reminder: Quiz Due Soon"
        message = f"Your quiz '{candidate.title}' is due soon"
        link = f"{settings.PORTAL_BASE_URL}student/classes/{candidate.class_id}/quizzes"

    urgent = ""
    if hours_left < settings.URGENT_REMINDER_HOURS:
        urgent = f"<p><strong>URGENT: Less than {settings.URGENT_REMINDER_HOURS} hours remaining!</strong></p>"

    body = (
        f"<p>Hello {escape(candidate.first_name or 'there')},</p>"
        f"<p>This is a friendly reminder about an upcoming "
        f"{'assignment' if is_assignment else 'quiz'}:</p>"
        f"<h3>{escape(candidate.title)}</h3>"
        f"<p><strong>Class:</strong> {escape(candidate.class_title or '')}</p>"
        f"<p><strong>Due:</strong> {due_text}</p>"
        f"<p><strong>Points:</strong> {candidate.max_score:g}</p>"
        f"{urgent}"
        f"<p><a href=\"{link}\">Submit now</a></p>"
        f"<p>&copy; {as_utc(now).year} {escape(settings.ACADEMY_NAME)}</p>"
    )
    return ReminderMessage(subject=subject, body=body, title=title, message=message)


class ReminderDispatcher:
    def __init__(
        self,
        db: Session,
        notifier: Notifier,
        selector: ReminderSelector | None = None,
        gate: NotificationDedupGate | None = None,
        horizon: timedelta | None = None,
        clock: Clock = utcnow,
    ):
        self.notifier = notifier
        self.selector = selector or ReminderSelector(db)
        self.gate = gate or NotificationDedupGate(db)
        self.horizon = horizon if horizon is not None else settings.reminder_horizon
        self.clock = clock

    def run(self, now: datetime | None = None, deadline: datetime | None = None) -> DispatchResult:
        now = as_utc(now or self.clock())
        result = DispatchResult()

        try:
            candidates = self.selector.select_due_soon(now, self.horizon)
        except OperationalError as exc:
            raise StoreUnavailable(str(exc)) from exc
        logger.info("reminder run started: %d candidates", len(candidates))

        for candidate in candidates:
            if deadline is not None and self.clock() >= deadline:
                logger.warning("reminder run: deadline reached, stopping early")
                result.aborted = True
                break

            granted = self.gate.try_reserve(
                candidate.user_id, candidate.item_id, candidate.notification_type, now
            )
            if not granted:
                result.skipped += 1
                continue

            try:
                self._deliver(candidate, now)
            except SendFailure as exc:
                logger.warning(
                    "reminder for user=%s item=%s not delivered: %s",
                    candidate.user_id,
                    candidate.item_id,
                    exc,
                )
                result.failed += 1
                result.errors.append(f"user {candidate.user_id} item {candidate.item_id}: {exc}")
                continue
            result.sent += 1

        logger.info(
            "reminder run finished: sent=%d skipped=%d failed=%d",
            result.sent,
            result.skipped,
            result.failed,
        )
        return result

    def _deliver(self, candidate: ReminderCandidate, now: datetime) -> None:
        """Send on both channels; succeeds if at least one of them did."""
        msg = compose_reminder(candidate, now)
        delivered = False

        for channel, call in (
            ("email", lambda: self.notifier.send(candidate.user_id, msg.subject, msg.body)),
            (
                "in-app",
                lambda: self.notifier.create_in_app(
                    candidate.user_id,
                    msg.title,
                    msg.message,
                    candidate.notification_type,
                    candidate.item_id,
                ),
            ),
        ):
            try:
                ok = call()
            except Exception as exc:
                logger.warning("%s channel raised for user=%s: %s", channel, candidate.user_id, exc)
                ok = False
            if ok:
                delivered = True
            else:
                logger.info("%s channel failed for user=%s item=%s", channel, candidate.user_id, candidate.item_id)

        if not delivered:
            raise SendFailure("all channels failed")
