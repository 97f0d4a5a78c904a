from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from academy.db.base_class import Base

ASSIGNMENT = "assignment"
QUIZ = "quiz"
ITEM_KINDS = (ASSIGNMENT, QUIZ)


class GradableItem(Base):
    """One assignment or one quiz.

    ``due_at`` is the due time of an assignment and the close time of a quiz
    window; ``opens_at`` is only meaningful for quizzes.
    """

    __tablename__ = "gradable_items"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(
        Integer, ForeignKey("class_batches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    max_score = Column(Float, nullable=False, default=0)

    due_at = Column(DateTime(timezone=True), nullable=True, index=True)
    opens_at = Column(DateTime(timezone=True), nullable=True)
    published = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("max_score >= 0", name="ck_gradable_items_max_score"),
        CheckConstraint("kind IN ('assignment', 'quiz')", name="ck_gradable_items_kind"),
    )

    class_batch = relationship("ClassBatch", back_populates="items")
