from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint

from academy.db.base_class import Base

ASSIGNMENT_REMINDER = "assignment_reminder"
QUIZ_REMINDER = "quiz_reminder"


class ReminderLog(Base):
    """Append-only history of granted reminder reservations."""

    __tablename__ = "reminder_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False)
    notification_type = Column(String(50), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_reminder_logs_key_sent_at", "user_id", "item_id", "notification_type", "sent_at"),
    )


class ReminderWindow(Base):
    """Current dedup window per key; the unique key makes reservation atomic."""

    __tablename__ = "reminder_windows"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False)
    notification_type = Column(String(50), nullable=False)
    window_started_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "user_id", "item_id", "notification_type", name="uq_reminder_windows_key"
        ),
    )
