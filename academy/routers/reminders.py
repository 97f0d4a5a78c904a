from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from academy.core.clock import utcnow
from academy.core.config import settings
from academy.core.deps import get_db
from academy.core.permissions import require_admin
from academy.schemas.reminder import DispatchSummary, ReminderCandidateRead
from academy.services.notifier import PortalNotifier
from academy.services.reminder_dispatcher import ReminderDispatcher
from academy.services.reminder_selector import ReminderSelector

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/due-soon", response_model=list[ReminderCandidateRead])
def due_soon(
    hours: int = Query(default=settings.REMINDER_HORIZON_HOURS, ge=1, le=24 * 14),
    include_reminded: bool = False,
    db: Session = Depends(get_db),
):
    return ReminderSelector(db).select_due_soon(
        utcnow(), timedelta(hours=hours), include_reminded=include_reminded
    )


@router.post("/run", response_model=DispatchSummary)
def run_reminders(db: Session = Depends(get_db)):
    return ReminderDispatcher(db, PortalNotifier(db)).run(utcnow())
