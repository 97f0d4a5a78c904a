"""
Rate limiting for outbound reminders: at most one reservation per
(user, item, notification type) inside a rolling window.

Reservation is a single transaction. A conditional UPDATE moves an expired
window forward; if there is no window row yet, an INSERT guarded by the unique
key on reminder_windows creates it. Whichever concurrent caller loses either
matches zero rows or hits the unique key, and is denied.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from academy.core.clock import as_utc
from academy.core.config import settings
from academy.core.errors import ConflictAlreadyReserved, StoreUnavailable
from academy.models.reminder_log import ReminderLog, ReminderWindow

logger = logging.getLogger(__name__)


class NotificationDedupGate:
    def __init__(self, db: Session, window: timedelta | None = None):
        self.db = db
        self.window = window or settings.dedup_window

    def try_reserve(
        self, user_id: int, item_id: int, notification_type: str, now: datetime
    ) -> bool:
        """True if this caller now owns the window for the key."""
        try:
            self.reserve(user_id, item_id, notification_type, now)
        except ConflictAlreadyReserved as exc:
            logger.debug("%s", exc)
            return False
        return True

    def reserve(
        self, user_id: int, item_id: int, notification_type: str, now: datetime
    ) -> None:
        now = as_utc(now)
        cutoff = now - self.window

        try:
            moved = self.db.execute(
                update(ReminderWindow)
                .where(
                    ReminderWindow.user_id == user_id,
                    ReminderWindow.item_id == item_id,
                    ReminderWindow.notification_type == notification_type,
                    ReminderWindow.window_started_at <= cutoff,
                )
                .values(window_started_at=now)
                .execution_options(synchronize_session=False)
            )
            if moved.rowcount == 0:
                # either no window yet, or one still open; the unique key tells which
                self.db.add(
                    ReminderWindow(
                        user_id=user_id,
                        item_id=item_id,
                        notification_type=notification_type,
                        window_started_at=now,
                    )
                )
                self.db.flush()

            self.db.add(
                ReminderLog(
                    user_id=user_id,
                    item_id=item_id,
                    notification_type=notification_type,
                    sent_at=now,
                )
            )
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictAlreadyReserved(
                f"reminder already reserved: user={user_id} item={item_id} type={notification_type}"
            ) from exc
        except OperationalError as exc:
            self.db.rollback()
            raise StoreUnavailable(str(exc)) from exc

    def last_sent_at(
        self, user_id: int, item_id: int, notification_type: str
    ) -> datetime | None:
        row = (
            self.db.query(ReminderLog.sent_at)
            .filter(
                ReminderLog.user_id == user_id,
                ReminderLog.item_id == item_id,
                ReminderLog.notification_type == notification_type,
            )
            .order_by(ReminderLog.sent_at.desc())
            .first()
        )
        return as_utc(row.sent_at) if row else None
