import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from academy.core.errors import ConflictAlreadyReserved
from academy.models.reminder_log import ReminderLog
from academy.services.dedup_gate import NotificationDedupGate


@pytest.fixture()
def key(seed):
    klass = seed.klass()
    student = seed.student()
    item = seed.assignment(klass)
    return student.id, item.id


def test_window_blocks_repeat_within_24_hours(db, now, key):
    user_id, item_id = key
    gate = NotificationDedupGate(db)

    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now) is True
    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now + timedelta(hours=1)) is False
    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now + timedelta(hours=25)) is True


def test_window_boundary_is_exactly_24_hours(db, now, key):
    user_id, item_id = key
    gate = NotificationDedupGate(db)

    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now)
    assert not gate.try_reserve(
        user_id, item_id, "assignment_reminder", now + timedelta(hours=23, minutes=59)
    )
    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now + timedelta(hours=24))


def test_denied_reservation_writes_nothing(db, now, key):
    user_id, item_id = key
    gate = NotificationDedupGate(db)

    gate.try_reserve(user_id, item_id, "assignment_reminder", now)
    gate.try_reserve(user_id, item_id, "assignment_reminder", now + timedelta(minutes=5))
    gate.try_reserve(user_id, item_id, "assignment_reminder", now + timedelta(hours=30))

    sent = [r.sent_at for r in db.query(ReminderLog).order_by(ReminderLog.sent_at).all()]
    assert len(sent) == 2
    assert sent[1] - sent[0] >= timedelta(hours=24)


def test_keys_are_independent(db, now, seed, key):
    user_id, item_id = key
    other_user = seed.student()
    gate = NotificationDedupGate(db)

    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now)
    assert gate.try_reserve(user_id, item_id, "quiz_reminder", now)
    assert gate.try_reserve(other_user.id, item_id, "assignment_reminder", now)
    assert not gate.try_reserve(user_id, item_id, "assignment_reminder", now)


def test_reservation_is_shared_across_sessions(session_factory, now, key):
    user_id, item_id = key
    first, second = session_factory(), session_factory()
    try:
        assert NotificationDedupGate(first).try_reserve(user_id, item_id, "quiz_reminder", now)
        assert not NotificationDedupGate(second).try_reserve(
            user_id, item_id, "quiz_reminder", now + timedelta(seconds=1)
        )
    finally:
        first.close()
        second.close()


def test_custom_window(db, now, key):
    user_id, item_id = key
    gate = NotificationDedupGate(db, window=timedelta(hours=1))

    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now)
    assert gate.try_reserve(user_id, item_id, "assignment_reminder", now + timedelta(hours=1))


def test_last_sent_at(db, now, key):
    user_id, item_id = key
    gate = NotificationDedupGate(db)
    assert gate.last_sent_at(user_id, item_id, "assignment_reminder") is None

    gate.try_reserve(user_id, item_id, "assignment_reminder", now)

    assert gate.last_sent_at(user_id, item_id, "assignment_reminder") == now


def test_reserve_raises_conflict_inside_window(db, key, now):
    user_id, item_id = key
    gate = NotificationDedupGate(db)
    gate.reserve(user_id, item_id, "quiz_reminder", now)

    with pytest.raises(ConflictAlreadyReserved):
        gate.reserve(user_id, item_id, "quiz_reminder", now + timedelta(hours=3))
    assert db.query(ReminderLog).count() == 1


@pytest.mark.parametrize("previous", [None, timedelta(hours=30)], ids=["first-window", "expired-window"])
def test_concurrent_reservations_grant_once(session_factory, db, now, key, previous):
    user_id, item_id = key
    if previous is not None:
        assert NotificationDedupGate(db).try_reserve(user_id, item_id, "quiz_reminder", now - previous)
    start = threading.Barrier(8)

    def reserve(_):
        session = session_factory()
        try:
            gate = NotificationDedupGate(session)
            start.wait()
            return gate.try_reserve(user_id, item_id, "quiz_reminder", now)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=8) as pool:
        granted = list(pool.map(reserve, range(8)))

    assert granted.count(True) == 1
    assert db.query(ReminderLog).count() == (1 if previous is None else 2)
