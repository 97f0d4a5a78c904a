"""
Grade-point average calculation.

Unsubmitted and ungraded work counts as zero. Two independent scales are
derived from the same percentage: a coarse A-F letter grade and a finer
4.0-scale GPA step function. They are intentionally kept separate.
"""
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from academy.core.errors import NotFound
from academy.services.grade_source import EnrollmentSource, GradeSource

# (minimum percentage, letter)
LETTER_SCALE = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)

# (minimum percentage, grade points)
GPA_SCALE = (
    (93, 4.0),
    (90, 3.7),
    (87, 3.3),
    (83, 3.0),
    (80, 2.7),
    (77, 2.3),
    (73, 2.0),
    (70, 1.7),
    (67, 1.3),
    (63, 1.0),
    (60, 0.7),
)


def letter_grade(percentage: float) -> str:
    for threshold, letter in LETTER_SCALE:
        if percentage >= threshold:
            return letter
    return "F"


def percentage_to_gpa(percentage: float) -> float:
    for threshold, points in GPA_SCALE:
        if percentage >= threshold:
            return points
    return 0.0


def percentage_of(earned: float, possible: float) -> float:
    if possible <= 0:
        return 0.0
    return 100.0 * earned / possible


@dataclass
class ItemScore:
    item_id: int
    kind: str
    title: str
    max_score: float
    earned: float
    completed: bool
    due_at: datetime | None = None


@dataclass
class ClassGPA:
    student_id: int
    class_id: int
    percentage: float
    letter_grade: str
    gpa: float
    total_items: int = 0
    completed_items: int = 0
    missed_items: int = 0
    total_points_possible: float = 0.0
    total_points_earned: float = 0.0
    class_code: str | None = None
    class_title: str | None = None
    items: list[ItemScore] = field(default_factory=list)


@dataclass
class CumulativeGPA:
    student_id: int
    cumulative_gpa: float
    classes_taken: int
    per_class_details: list[ClassGPA] = field(default_factory=list)


def summarize(pairs: Iterable[tuple[float, float]]) -> tuple[float, str, float]:
    """Turn (earned, possible) pairs into (percentage, letter, gpa)."""
    earned = possible = 0.0
    for e, p in pairs:
        earned += e
        possible += p
    pct = percentage_of(earned, possible)
    return pct, letter_grade(pct), percentage_to_gpa(pct)


class GPACalculator:
    """Pure read path over GradeSource; never writes and never takes locks."""

    def __init__(
        self,
        db: Session,
        grade_source: GradeSource | None = None,
        enrollment_source: EnrollmentSource | None = None,
    ):
        self.grade_source = grade_source or GradeSource(db)
        self.enrollment_source = enrollment_source or EnrollmentSource(db)

    def compute_class_gpa(self, student_id: int, class_id: int) -> ClassGPA:
        class_batch = self.grade_source.get_class(class_id)
        if class_batch is None:
            raise NotFound(f"Class {class_id} not found")

        items = self.grade_source.list_published_items(class_id)
        completions = self.grade_source.completions_for(student_id, items)

        scores: list[ItemScore] = []
        for item in items:
            c = completions[item.id]
            scores.append(
                ItemScore(
                    item_id=item.id,
                    kind=item.kind,
                    title=item.title,
                    max_score=float(item.max_score),
                    earned=c.earned_score if c.earned_score is not None else 0.0,
                    completed=c.completed,
                    due_at=item.due_at,
                )
            )

        pct, letter, gpa = summarize((s.earned, s.max_score) for s in scores)
        completed = sum(1 for s in scores if s.completed)

        return ClassGPA(
            student_id=student_id,
            class_id=class_id,
            percentage=round(pct, 2),
            letter_grade=letter,
            gpa=gpa,
            total_items=len(scores),
            completed_items=completed,
            missed_items=len(scores) - completed,
            total_points_possible=sum(s.max_score for s in scores),
            total_points_earned=sum(s.earned for s in scores),
            class_code=class_batch.code,
            class_title=class_batch.title,
            items=scores,
        )

    def compute_cumulative_gpa(self, student_id: int) -> CumulativeGPA:
        # unweighted mean of per-class GPA; item counts and credit hours are ignored
        details = [
            self.compute_class_gpa(student_id, e.class_id)
            for e in self.enrollment_source.enrollments_for_student(student_id)
        ]
        if not details:
            return CumulativeGPA(student_id=student_id, cumulative_gpa=0.0, classes_taken=0)

        mean = sum(d.gpa for d in details) / len(details)
        return CumulativeGPA(
            student_id=student_id,
            cumulative_gpa=round(mean, 2),
            classes_taken=len(details),
            per_class_details=details,
        )
