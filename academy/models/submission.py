from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func

from academy.db.base_class import Base

SUBMITTED = "submitted"
GRADED = "graded"


class Submission(Base):
    __tablename__ = "assignment_submissions"

    id = Column(Integer, primary_key=True, index=True)

    item_id = Column(Integer, ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=SUBMITTED)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Grading fields (nullable until graded)
    score = Column(Float, nullable=True)
    graded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("item_id", "student_id", name="uq_submission_item_student"),
    )
