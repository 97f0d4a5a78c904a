"""
Gradebook reconciliation.

Makes sure every (student, published item) pair of an active or completed
enrollment has exactly one GradeRecord, inserting zero rows for missing work.
Existing rows are never modified by reconciliation. The existence check and
the insert are one unit: the store's unique key on (student_id, item_id)
decides the winner when two runs race on the same pair.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from academy.core.clock import Clock, as_utc, utcnow
from academy.core.errors import (
    ConflictAlreadyGraded,
    ConflictAlreadyReconciled,
    InvalidScore,
    NotFound,
    StoreUnavailable,
)
from academy.models.enrollment import GRADED_STATUSES, Enrollment
from academy.models.gradable_item import ASSIGNMENT, GradableItem
from academy.models.grade_record import GRADED, ZERO_FILL, GradeRecord
from academy.models.quiz_attempt import COMPLETED
from academy.models.quiz_attempt import GRADED as ATTEMPT_GRADED
from academy.models.quiz_attempt import QuizAttempt
from academy.models.submission import GRADED as SUBMISSION_GRADED
from academy.models.submission import Submission
from academy.services.gpa import letter_grade, percentage_of
from academy.services.grade_source import Completion, EnrollmentSource, GradeSource

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    aborted: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def reconciled_count(self) -> int:
        return self.succeeded


class GradebookReconciler:
    def __init__(
        self,
        db: Session,
        grade_source: GradeSource | None = None,
        enrollment_source: EnrollmentSource | None = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.grade_source = grade_source or GradeSource(db)
        self.enrollment_source = enrollment_source or EnrollmentSource(db)
        self.clock = clock

    def reconcile(
        self, class_id: int | None = None, deadline: datetime | None = None
    ) -> ReconcileResult:
        result = ReconcileResult()

        try:
            if class_id is not None and self.grade_source.get_class(class_id) is None:
                logger.warning("reconcile: class %s not found, skipping", class_id)
                result.failed += 1
                result.errors.append(f"class {class_id}: not found")
                return result
            enrollments = self.enrollment_source.active_enrollments(class_id)
        except OperationalError as exc:
            self.db.rollback()
            raise StoreUnavailable(str(exc)) from exc

        logger.info(
            "reconcile started: class=%s enrollments=%d",
            class_id if class_id is not None else "all",
            len(enrollments),
        )

        items_by_class: dict[int, list[GradableItem]] = {}
        existing_by_class: dict[int, set[tuple[int, int]]] = {}

        for enrollment in enrollments:
            cid = enrollment.class_id
            if cid not in items_by_class:
                try:
                    items_by_class[cid] = self.grade_source.list_published_items(cid)
                    existing_by_class[cid] = self.existing_keys(cid)
                except OperationalError as exc:
                    self.db.rollback()
                    raise StoreUnavailable(str(exc)) from exc

            items = items_by_class[cid]
            existing = existing_by_class[cid]
            missing = [i for i in items if (enrollment.student_id, i.id) not in existing]
            result.skipped += len(items) - len(missing)
            if not missing:
                continue

            try:
                completions = self.grade_source.completions_for(enrollment.student_id, missing)
            except OperationalError as exc:
                self.db.rollback()
                raise StoreUnavailable(str(exc)) from exc

            for item in missing:
                if deadline is not None and self.clock() >= deadline:
                    logger.warning("reconcile: deadline reached, stopping early")
                    result.aborted = True
                    break
                self._reconcile_pair(enrollment, item, completions[item.id], result)
            if result.aborted:
                break

        logger.info(
            "reconcile finished: inserted=%d skipped=%d failed=%d",
            result.succeeded,
            result.skipped,
            result.failed,
        )
        return result

    def existing_keys(self, class_id: int) -> set[tuple[int, int]]:
        """Snapshot of (student_id, item_id) pairs already in the gradebook.

        Only used to avoid pointless inserts; the unique key is authoritative.
        """
        rows = (
            self.db.query(GradeRecord.student_id, GradeRecord.item_id)
            .join(GradableItem, GradableItem.id == GradeRecord.item_id)
            .filter(GradableItem.class_id == class_id)
            .all()
        )
        return {(r.student_id, r.item_id) for r in rows}

    def _reconcile_pair(
        self,
        enrollment: Enrollment,
        item: GradableItem,
        completion: Completion,
        result: ReconcileResult,
    ) -> None:
        key = (enrollment.student_id, item.id)
        try:
            inserted = self.insert_if_absent(enrollment, item, completion)
        except StoreUnavailable:
            raise
        except SQLAlchemyError as exc:
            logger.warning("reconcile: insert failed for student=%s item=%s: %s", *key, exc)
            result.failed += 1
            result.errors.append(f"student {key[0]} item {key[1]}: {exc.__class__.__name__}")
            return

        if inserted:
            result.succeeded += 1
        else:
            logger.debug("reconcile: student=%s item=%s already reconciled", *key)
            result.skipped += 1

    def insert_if_absent(
        self, enrollment: Enrollment, item: GradableItem, completion: Completion
    ) -> bool:
        """Returns False when another writer already holds the key."""
        try:
            self.insert_record(enrollment, item, completion)
        except ConflictAlreadyReconciled:
            return False
        return True

    def insert_record(
        self, enrollment: Enrollment, item: GradableItem, completion: Completion
    ) -> GradeRecord:
        """Insert the pair's GradeRecord in its own transaction."""
        now = as_utc(self.clock())
        if completion.graded:
            score = float(completion.earned_score)
            pct = percentage_of(score, item.max_score)
            record = GradeRecord(
                student_id=enrollment.student_id,
                item_id=item.id,
                enrollment_id=enrollment.id,
                score=score,
                max_score=item.max_score,
                percentage=round(pct, 2),
                letter_grade=letter_grade(pct),
                published=True,
                source=GRADED,
                created_at=now,
                graded_at=now,
            )
        else:
            record = GradeRecord(
                student_id=enrollment.student_id,
                item_id=item.id,
                enrollment_id=enrollment.id,
                score=0,
                max_score=item.max_score,
                percentage=0,
                letter_grade="F",
                published=True,
                source=ZERO_FILL,
                created_at=now,
            )

        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictAlreadyReconciled(
                f"student {enrollment.student_id} item {item.id} already reconciled"
            ) from exc
        except OperationalError as exc:
            self.db.rollback()
            raise StoreUnavailable(str(exc)) from exc
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return record

    def record_grade(self, student_id: int, item_id: int, score: float) -> GradeRecord:
        """Store a real grade, upgrading a zero-fill row if one exists.

        The underlying submission or quiz attempt is graded in the same
        transaction so GPA reads see the same score. A row that already
        carries a real grade is never overwritten.
        """
        item = self.grade_source.get_item(item_id)
        if item is None:
            raise NotFound(f"Item {item_id} not found")
        if score < 0 or score > item.max_score:
            raise InvalidScore(f"score must be between 0 and {item.max_score}")

        enrollment = (
            self.db.query(Enrollment)
            .filter(
                Enrollment.student_id == student_id,
                Enrollment.class_id == item.class_id,
                Enrollment.status.in_(GRADED_STATUSES),
            )
            .first()
        )
        if enrollment is None:
            raise NotFound(f"Student {student_id} is not enrolled in class {item.class_id}")

        now = as_utc(self.clock())
        pct = percentage_of(score, item.max_score)
        values = dict(
            score=float(score),
            max_score=item.max_score,
            percentage=round(pct, 2),
            letter_grade=letter_grade(pct),
            source=GRADED,
            graded_at=now,
        )

        try:
            upgraded = self.db.execute(
                update(GradeRecord)
                .where(
                    GradeRecord.student_id == student_id,
                    GradeRecord.item_id == item_id,
                    GradeRecord.source == ZERO_FILL,
                )
                .values(**values)
            )
            if upgraded.rowcount == 0:
                self.db.add(
                    GradeRecord(
                        student_id=student_id,
                        item_id=item_id,
                        enrollment_id=enrollment.id,
                        published=True,
                        created_at=now,
                        **values,
                    )
                )
            self._grade_work(item, student_id, float(score), now)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictAlreadyGraded(
                f"Student {student_id} already has a grade for item {item_id}"
            ) from exc
        except OperationalError as exc:
            self.db.rollback()
            raise StoreUnavailable(str(exc)) from exc

        return (
            self.db.query(GradeRecord)
            .populate_existing()
            .filter(GradeRecord.student_id == student_id, GradeRecord.item_id == item_id)
            .one()
        )

    def _grade_work(self, item: GradableItem, student_id: int, score: float, now) -> None:
        if item.kind == ASSIGNMENT:
            submission = (
                self.db.query(Submission)
                .filter(Submission.item_id == item.id, Submission.student_id == student_id)
                .first()
            )
            if submission is None:
                # grading work that was never handed in
                submission = Submission(item_id=item.id, student_id=student_id, submitted_at=now)
                self.db.add(submission)
            submission.status = SUBMISSION_GRADED
            submission.score = score
            submission.graded_at = now
            return

        attempt = (
            self.db.query(QuizAttempt)
            .filter(
                QuizAttempt.item_id == item.id,
                QuizAttempt.student_id == student_id,
                QuizAttempt.status == COMPLETED,
            )
            .order_by(QuizAttempt.finished_at.desc(), QuizAttempt.id.desc())
            .first()
        )
        if attempt is None:
            attempt = QuizAttempt(
                item_id=item.id, student_id=student_id, started_at=now, finished_at=now
            )
            self.db.add(attempt)
        attempt.status = ATTEMPT_GRADED
        attempt.total_score = score

    def gradebook_for(self, student_id: int, class_id: int) -> list[GradeRecord]:
        return (
            self.db.query(GradeRecord)
            .join(GradableItem, GradableItem.id == GradeRecord.item_id)
            .filter(GradeRecord.student_id == student_id, GradableItem.class_id == class_id)
            .order_by(GradableItem.due_at.is_(None), GradableItem.due_at.asc(), GradableItem.id.asc())
            .all()
        )
