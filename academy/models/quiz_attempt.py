from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, func

from academy.db.base_class import Base

IN_PROGRESS = "in_progress"
COMPLETED = "completed"
GRADED = "graded"

# an attempt in one of these states means the student finished the quiz
FINISHED_STATUSES = (COMPLETED, GRADED)


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)

    item_id = Column(Integer, ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String(20), nullable=False, default=IN_PROGRESS)
    total_score = Column(Float, nullable=True)

    started_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=True)
