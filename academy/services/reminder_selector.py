"""
Finds published items closing soon that an actively enrolled student has not
finished yet. Assignments count as finished once any submission exists;
quizzes only once an attempt is completed or graded.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import and_, exists
from sqlalchemy.orm import Session

from academy.core.clock import as_utc
from academy.core.config import settings
from academy.models.class_batch import ClassBatch
from academy.models.enrollment import ACTIVE, Enrollment
from academy.models.gradable_item import ASSIGNMENT, QUIZ, GradableItem
from academy.models.quiz_attempt import FINISHED_STATUSES, QuizAttempt
from academy.models.reminder_log import ASSIGNMENT_REMINDER, QUIZ_REMINDER, ReminderLog
from academy.models.submission import Submission
from academy.models.user import User

NOTIFICATION_TYPES = {
    ASSIGNMENT: ASSIGNMENT_REMINDER,
    QUIZ: QUIZ_REMINDER,
}


@dataclass(frozen=True)
class ReminderCandidate:
    user_id: int
    item_id: int
    item_kind: str
    due_at: datetime
    already_reminded: bool
    title: str = ""
    class_id: int | None = None
    class_title: str | None = None
    max_score: float = 0.0
    email: str | None = None
    first_name: str | None = None

    @property
    def notification_type(self) -> str:
        return NOTIFICATION_TYPES[self.item_kind]


class ReminderSelector:
    def __init__(self, db: Session, dedup_window: timedelta | None = None):
        self.db = db
        self.dedup_window = dedup_window or settings.dedup_window

    def select_due_soon(
        self,
        now: datetime,
        horizon: timedelta | None = None,
        include_reminded: bool = False,
    ) -> list[ReminderCandidate]:
        """Candidates due within [now, now + horizon], soonest first.

        Already-reminded candidates are dropped unless ``include_reminded``;
        this is advisory only, the dedup gate decides at send time.
        """
        now = as_utc(now)
        horizon = horizon if horizon is not None else settings.reminder_horizon

        candidates = self._select_kind(ASSIGNMENT, now, horizon) + self._select_kind(
            QUIZ, now, horizon
        )
        if not include_reminded:
            candidates = [c for c in candidates if not c.already_reminded]
        candidates.sort(key=lambda c: (c.due_at, c.item_id, c.user_id))
        return candidates

    def _not_completed(self, kind: str):
        if kind == ASSIGNMENT:
            return ~exists().where(
                and_(
                    Submission.item_id == GradableItem.id,
                    Submission.student_id == Enrollment.student_id,
                )
            )
        return ~exists().where(
            and_(
                QuizAttempt.item_id == GradableItem.id,
                QuizAttempt.student_id == Enrollment.student_id,
                QuizAttempt.status.in_(FINISHED_STATUSES),
            )
        )

    def _select_kind(
        self, kind: str, now: datetime, horizon: timedelta
    ) -> list[ReminderCandidate]:
        notification_type = NOTIFICATION_TYPES[kind]
        reminded = (
            exists()
            .where(
                and_(
                    ReminderLog.user_id == Enrollment.student_id,
                    ReminderLog.item_id == GradableItem.id,
                    ReminderLog.notification_type == notification_type,
                    ReminderLog.sent_at > now - self.dedup_window,
                )
            )
            .label("already_reminded")
        )

        rows = (
            self.db.query(
                GradableItem.id.label("item_id"),
                GradableItem.title,
                GradableItem.class_id,
                GradableItem.max_score,
                GradableItem.due_at,
                ClassBatch.title.label("class_title"),
                Enrollment.student_id,
                User.email,
                User.full_name,
                reminded,
            )
            .join(ClassBatch, ClassBatch.id == GradableItem.class_id)
            .join(Enrollment, Enrollment.class_id == GradableItem.class_id)
            .join(User, User.id == Enrollment.student_id)
            .filter(
                GradableItem.kind == kind,
                GradableItem.published.is_(True),
                GradableItem.due_at.is_not(None),
                GradableItem.due_at >= now,
                GradableItem.due_at <= now + horizon,
                Enrollment.status == ACTIVE,
                User.status == "active",
                self._not_completed(kind),
            )
            .all()
        )

        return [
            ReminderCandidate(
                user_id=r.student_id,
                item_id=r.item_id,
                item_kind=kind,
                due_at=as_utc(r.due_at),
                already_reminded=bool(r.already_reminded),
                title=r.title,
                class_id=r.class_id,
                class_title=r.class_title,
                max_score=float(r.max_score),
                email=r.email,
                first_name=r.full_name.split()[0] if r.full_name else None,
            )
            for r in rows
        ]
