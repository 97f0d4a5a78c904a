from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy.db.base_class import Base


class ClassBatch(Base):
    __tablename__ = "class_batches"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    instructor_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), index=True
    )

    enrollments = relationship(
        "Enrollment", back_populates="class_batch", cascade="all, delete-orphan"
    )

    items = relationship(
        "GradableItem", back_populates="class_batch", cascade="all, delete-orphan"
    )
