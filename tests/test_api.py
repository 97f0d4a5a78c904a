from datetime import timedelta

from conftest import ADMIN_HEADERS

from academy.core.clock import utcnow
from academy.models.grade_record import GradeRecord
from academy.models.notification import Notification


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "X-Process-Time" in r.headers


def test_class_gpa_endpoint(client, seed):
    student = seed.student()
    klass = seed.klass(code="CS101")
    seed.enroll(student, klass)
    a = seed.assignment(klass, "A", max_score=100)
    seed.assignment(klass, "B", max_score=50)
    seed.submit(a, student, score=90)

    r = client.get(f"/students/{student.id}/classes/{klass.id}/gpa")

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["percentage"] == 60.0
    assert body["letter_grade"] == "D"
    assert body["gpa"] == 0.7
    assert body["class_code"] == "CS101"
    assert [i["title"] for i in body["items"]] == ["A", "B"]


def test_class_gpa_unknown_class_is_404(client, seed):
    student = seed.student()

    r = client.get(f"/students/{student.id}/classes/999/gpa")

    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_cumulative_gpa_endpoint(client, seed):
    student = seed.student()

    r = client.get(f"/students/{student.id}/gpa")

    assert r.status_code == 200
    assert r.json() == {
        "student_id": student.id,
        "cumulative_gpa": 0.0,
        "classes_taken": 0,
        "per_class_details": [],
    }


def test_admin_endpoints_require_token(client):
    assert client.post("/gradebook/reconcile").status_code == 403
    assert client.post("/reminders/run", headers={"X-Admin-Token": "nope"}).status_code == 403


def test_reconcile_endpoint_returns_summary(client, db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    seed.assignment(klass)
    seed.quiz(klass)

    r = client.post(f"/gradebook/reconcile?class_id={klass.id}", headers=ADMIN_HEADERS)

    assert r.status_code == 200, r.text
    assert r.json() == {"succeeded": 2, "skipped": 0, "failed": 0, "aborted": False, "errors": []}
    assert db.query(GradeRecord).count() == 2

    again = client.post(f"/gradebook/reconcile?class_id={klass.id}", headers=ADMIN_HEADERS)
    assert again.json()["succeeded"] == 0


def test_record_grade_and_read_gradebook(client, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    item = seed.assignment(klass, max_score=40)

    r = client.post(
        "/gradebook/grades",
        headers=ADMIN_HEADERS,
        json={"student_id": student.id, "item_id": item.id, "score": 30},
    )
    assert r.status_code == 201, r.text
    assert r.json()["letter_grade"] == "C"

    conflict = client.post(
        "/gradebook/grades",
        headers=ADMIN_HEADERS,
        json={"student_id": student.id, "item_id": item.id, "score": 40},
    )
    assert conflict.status_code == 409

    too_high = client.post(
        "/gradebook/grades",
        headers=ADMIN_HEADERS,
        json={"student_id": student.id, "item_id": item.id, "score": 41},
    )
    assert too_high.status_code == 422

    rows = client.get(f"/gradebook/classes/{klass.id}/students/{student.id}").json()
    assert [(row["score"], row["source"]) for row in rows] == [(30.0, "graded")]


def test_reminder_endpoints(client, db, seed):
    student = seed.student()
    klass = seed.klass()
    seed.enroll(student, klass)
    item = seed.assignment(klass, "Project", due_at=utcnow() + timedelta(hours=12))

    due = client.get("/reminders/due-soon", headers=ADMIN_HEADERS)
    assert due.status_code == 200
    assert [c["item_id"] for c in due.json()] == [item.id]

    r = client.post("/reminders/run", headers=ADMIN_HEADERS)
    assert r.status_code == 200, r.text
    assert r.json()["sent"] == 1

    again = client.post("/reminders/run", headers=ADMIN_HEADERS)
    assert again.json()["sent"] == 0

    notes = db.query(Notification).all()
    assert [(n.type, n.related_id) for n in notes] == [("assignment_reminder", item.id)]
