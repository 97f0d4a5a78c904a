import os
import tempfile
from datetime import datetime, timezone

# point the app at a throwaway database before anything from academy is imported
_TMP_DIR = tempfile.mkdtemp(prefix="academy-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/academy.db"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from academy.core.deps import get_db  # noqa: E402
from academy.db.base import Base  # noqa: E402
from academy.db.session import make_engine  # noqa: E402
from academy.main import app  # noqa: E402
from academy.models.class_batch import ClassBatch  # noqa: E402
from academy.models.enrollment import ACTIVE, Enrollment  # noqa: E402
from academy.models.gradable_item import ASSIGNMENT, QUIZ, GradableItem  # noqa: E402
from academy.models.quiz_attempt import QuizAttempt  # noqa: E402
from academy.models.submission import GRADED, SUBMITTED, Submission  # noqa: E402
from academy.models.user import User  # noqa: E402

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine(tmp_path):
    """Fresh SQLite file database per test."""
    eng = make_engine(f"sqlite:///{tmp_path}/test_academy.db")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def now():
    return NOW


class Seed:
    """Small helpers to build the rows a test needs."""

    def __init__(self, db):
        self.db = db
        self._n = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def student(self, name: str = "Student One", status: str = "active") -> User:
        self._n += 1
        return self._save(
            User(email=f"student{self._n}@example.com", full_name=name, role="student", status=status)
        )

    def klass(self, code: str | None = None, title: str = "Intro to Data") -> ClassBatch:
        self._n += 1
        return self._save(ClassBatch(code=code or f"CB-{self._n}", title=title))

    def enroll(self, student: User, klass: ClassBatch, status: str = ACTIVE) -> Enrollment:
        return self._save(Enrollment(student_id=student.id, class_id=klass.id, status=status))

    def assignment(self, klass, title="HW", max_score=100, due_at=None, published=True) -> GradableItem:
        return self._save(
            GradableItem(
                class_id=klass.id,
                kind=ASSIGNMENT,
                title=title,
                max_score=max_score,
                due_at=due_at,
                published=published,
            )
        )

    def quiz(self, klass, title="Quiz", max_score=20, due_at=None, opens_at=None, published=True) -> GradableItem:
        return self._save(
            GradableItem(
                class_id=klass.id,
                kind=QUIZ,
                title=title,
                max_score=max_score,
                due_at=due_at,
                opens_at=opens_at,
                published=published,
            )
        )

    def submit(self, item, student, score=None) -> Submission:
        return self._save(
            Submission(
                item_id=item.id,
                student_id=student.id,
                status=GRADED if score is not None else SUBMITTED,
                score=score,
            )
        )

    def attempt(self, item, student, status="graded", score=None) -> QuizAttempt:
        return self._save(
            QuizAttempt(item_id=item.id, student_id=student.id, status=status, total_score=score)
        )


@pytest.fixture()
def seed(db):
    return Seed(db)


@pytest.fixture()
def client(session_factory):
    """Test client that uses the per-test database via dependency override."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class FakeNotifier:
    def __init__(self, email_ok=True, in_app_ok=True, raise_on_send=False):
        self.email_ok = email_ok
        self.in_app_ok = in_app_ok
        self.raise_on_send = raise_on_send
        self.emails = []
        self.in_app = []

    def send(self, user_id, subject, body):
        if self.raise_on_send:
            raise ConnectionError("smtp down")
        self.emails.append((user_id, subject, body))
        return self.email_ok

    def create_in_app(self, user_id, title, message, type, related_id):
        self.in_app.append((user_id, title, message, type, related_id))
        return self.in_app_ok


@pytest.fixture()
def notifier():
    return FakeNotifier()
