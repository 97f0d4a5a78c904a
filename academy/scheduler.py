"""
Periodic jobs: gradebook reconciliation a few times a day and deadline
reminders every hour.

Runs may overlap (a slow run can still be going when the next trigger fires,
and several processes may run the scheduler). Each job therefore opens its own
session and relies on the store's unique keys, not on in-process locks.
"""
import argparse
import logging
import threading
import time
from datetime import timedelta

import schedule
from sqlalchemy.orm import Session, sessionmaker

from academy.core.clock import Clock, utcnow
from academy.core.config import settings
from academy.core.errors import StoreUnavailable
from academy.db.init_db import init_db
from academy.db.session import SessionLocal
from academy.services.notifier import PortalNotifier
from academy.services.reconciler import GradebookReconciler, ReconcileResult
from academy.services.reminder_dispatcher import DispatchResult, ReminderDispatcher

logger = logging.getLogger(__name__)


def _deadline(clock: Clock):
    return clock() + timedelta(seconds=settings.BATCH_TIME_LIMIT_SECONDS)


def run_reconcile_job(
    session_factory: sessionmaker = SessionLocal,
    class_id: int | None = None,
    clock: Clock = utcnow,
) -> ReconcileResult | None:
    """One reconciliation run; returns None when the store is unavailable."""
    db: Session = session_factory()
    try:
        result = GradebookReconciler(db, clock=clock).reconcile(class_id, deadline=_deadline(clock))
    except StoreUnavailable as exc:
        logger.error("reconcile job failed, will retry next tick: %s", exc)
        return None
    finally:
        db.close()
    logger.info("reconcile job: updated %d grade entries", result.reconciled_count)
    return result


def run_reminder_job(
    session_factory: sessionmaker = SessionLocal,
    notifier_factory=PortalNotifier,
    clock: Clock = utcnow,
) -> DispatchResult | None:
    """One reminder run; returns None when the store is unavailable."""
    db: Session = session_factory()
    try:
        dispatcher = ReminderDispatcher(db, notifier_factory(db), clock=clock)
        result = dispatcher.run(clock(), deadline=_deadline(clock))
    except StoreUnavailable as exc:
        logger.error("reminder job failed, will retry next tick: %s", exc)
        return None
    finally:
        db.close()
    logger.info("reminder job: sent %d deadline reminders", result.sent)
    return result


def register_jobs(scheduler: schedule.Scheduler) -> None:
    for at in settings.RECONCILE_TIMES:
        scheduler.every().day.at(at, settings.SCHEDULER_TIMEZONE).do(run_reconcile_job)
    scheduler.every(settings.REMINDER_INTERVAL_MINUTES).minutes.do(run_reminder_job)


def start_scheduler(scheduler: schedule.Scheduler | None = None) -> threading.Thread:
    """Start the job loop in a daemon thread."""
    scheduler = scheduler or schedule.Scheduler()
    register_jobs(scheduler)

    logger.info(
        "scheduler started: reconcile at %s %s, reminders every %d min",
        ", ".join(settings.RECONCILE_TIMES),
        settings.SCHEDULER_TIMEZONE,
        settings.REMINDER_INTERVAL_MINUTES,
    )

    def run_scheduler():
        while True:
            scheduler.run_pending()
            time.sleep(30)

    thread = threading.Thread(target=run_scheduler, daemon=True, name="academy-scheduler")
    thread.start()
    return thread


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="academy-jobs")
    parser.add_argument("job", choices=["reconcile", "reminders", "serve"])
    parser.add_argument("--class-id", type=int, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.LOG_LEVEL)
    init_db()

    if args.job == "reconcile":
        return 0 if run_reconcile_job(class_id=args.class_id) is not None else 1
    if args.job == "reminders":
        return 0 if run_reminder_job() is not None else 1

    start_scheduler()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("scheduler stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
