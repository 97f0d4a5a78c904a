from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from academy.db.base_class import Base

ACTIVE = "active"
COMPLETED = "completed"
WITHDRAWN = "withdrawn"

# enrollments that count toward GPA and gradebook reconciliation
GRADED_STATUSES = (ACTIVE, COMPLETED)


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id = Column(
        Integer,
        ForeignKey("class_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(20), nullable=False, default=ACTIVE)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "class_id", name="uq_enrollments_student_class"
        ),
    )

    student = relationship("User", back_populates="enrollments")
    class_batch = relationship("ClassBatch", back_populates="enrollments")
