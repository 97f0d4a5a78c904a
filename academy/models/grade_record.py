from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)

from academy.db.base_class import Base

ZERO_FILL = "zero_fill"
GRADED = "graded"


class GradeRecord(Base):
    """Materialized gradebook row, exactly one per (student, item)."""

    __tablename__ = "grade_records"

    id = Column(Integer, primary_key=True, index=True)

    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False, index=True)
    enrollment_id = Column(Integer, ForeignKey("enrollments.id", ondelete="SET NULL"), nullable=True)

    score = Column(Float, nullable=False, default=0)
    max_score = Column(Float, nullable=False)
    percentage = Column(Float, nullable=False, default=0)
    letter_grade = Column(String(2), nullable=False, default="F")
    published = Column(Boolean, nullable=False, default=True)
    source = Column(String(20), nullable=False, default=ZERO_FILL)

    created_at = Column(DateTime(timezone=True), nullable=False)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("student_id", "item_id", name="uq_grade_records_student_item"),
    )
