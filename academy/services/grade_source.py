"""
Read-only views over enrollments, published items and student completions.

Assignments and quizzes record completion differently: an assignment is done
once a submission row exists, a quiz once an attempt is finished. The rest of
the engine only sees the normalized ``Completion`` view built here.
"""
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from academy.models.class_batch import ClassBatch
from academy.models.enrollment import GRADED_STATUSES, Enrollment
from academy.models.gradable_item import ASSIGNMENT, QUIZ, GradableItem
from academy.models.quiz_attempt import FINISHED_STATUSES, GRADED as ATTEMPT_GRADED, QuizAttempt
from academy.models.submission import GRADED as SUBMISSION_GRADED, SUBMITTED, Submission
from academy.models.user import User  # noqa: F401  (mapper registration)


@dataclass(frozen=True)
class Completion:
    item_id: int
    student_id: int
    completed: bool
    earned_score: float | None = None

    @property
    def graded(self) -> bool:
        return self.earned_score is not None


def _item_order_by():
    # due_at NULLs last (SQLite-safe), then id for a stable tie-break
    return (
        GradableItem.due_at.is_(None),
        GradableItem.due_at.asc(),
        GradableItem.id.asc(),
    )


class GradeSource:
    def __init__(self, db: Session):
        self.db = db

    def get_class(self, class_id: int) -> ClassBatch | None:
        return self.db.get(ClassBatch, class_id)

    def get_item(self, item_id: int) -> GradableItem | None:
        return self.db.get(GradableItem, item_id)

    def list_published_items(self, class_id: int) -> list[GradableItem]:
        return (
            self.db.query(GradableItem)
            .filter(GradableItem.class_id == class_id, GradableItem.published.is_(True))
            .order_by(*_item_order_by())
            .all()
        )

    def completion_for(self, item_id: int, student_id: int) -> Completion:
        item = self.get_item(item_id)
        if item is None:
            return Completion(item_id=item_id, student_id=student_id, completed=False)
        return self.completions_for(student_id, [item])[item_id]

    def completions_for(
        self, student_id: int, items: Iterable[GradableItem]
    ) -> dict[int, Completion]:
        """Completion of every given item for one student, in two queries."""
        items = list(items)
        assignment_ids = [i.id for i in items if i.kind == ASSIGNMENT]
        quiz_ids = [i.id for i in items if i.kind == QUIZ]

        submissions: dict[int, Submission] = {}
        if assignment_ids:
            rows = (
                self.db.query(Submission)
                .filter(
                    Submission.student_id == student_id,
                    Submission.item_id.in_(assignment_ids),
                    Submission.status.in_((SUBMITTED, SUBMISSION_GRADED)),
                )
                .all()
            )
            submissions = {s.item_id: s for s in rows}

        finished: set[int] = set()
        best_scores: dict[int, float] = {}
        if quiz_ids:
            rows = (
                self.db.query(
                    QuizAttempt.item_id,
                    QuizAttempt.status,
                    func.max(QuizAttempt.total_score).label("best"),
                )
                .filter(
                    QuizAttempt.student_id == student_id,
                    QuizAttempt.item_id.in_(quiz_ids),
                    QuizAttempt.status.in_(FINISHED_STATUSES),
                )
                .group_by(QuizAttempt.item_id, QuizAttempt.status)
                .all()
            )
            for r in rows:
                finished.add(r.item_id)
                if r.status == ATTEMPT_GRADED and r.best is not None:
                    best_scores[r.item_id] = max(best_scores.get(r.item_id, 0.0), float(r.best))

        result: dict[int, Completion] = {}
        for item in items:
            if item.kind == ASSIGNMENT:
                sub = submissions.get(item.id)
                earned = None
                if sub is not None and sub.status == SUBMISSION_GRADED and sub.score is not None:
                    earned = float(sub.score)
                result[item.id] = Completion(item.id, student_id, sub is not None, earned)
            else:
                result[item.id] = Completion(
                    item.id, student_id, item.id in finished, best_scores.get(item.id)
                )
        return result


class EnrollmentSource:
    def __init__(self, db: Session):
        self.db = db

    def active_enrollments(self, class_id: int | None = None) -> list[Enrollment]:
        """Enrollments that participate in grading (active or completed)."""
        q = self.db.query(Enrollment).filter(Enrollment.status.in_(GRADED_STATUSES))
        if class_id is not None:
            q = q.filter(Enrollment.class_id == class_id)
        return q.order_by(Enrollment.class_id.asc(), Enrollment.student_id.asc()).all()

    def enrollments_for_student(self, student_id: int) -> list[Enrollment]:
        return (
            self.db.query(Enrollment)
            .filter(
                Enrollment.student_id == student_id,
                Enrollment.status.in_(GRADED_STATUSES),
            )
            .order_by(Enrollment.class_id.asc())
            .all()
        )
