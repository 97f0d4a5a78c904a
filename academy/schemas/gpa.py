from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ItemScoreRead(BaseModel):
    item_id: int
    kind: str  # "assignment" | "quiz"
    title: str
    max_score: float
    earned: float
    completed: bool
    due_at: Optional[datetime] = None


class ClassGPARead(BaseModel):
    student_id: int
    class_id: int
    class_code: str | None = None
    class_title: str | None = None
    percentage: float
    letter_grade: str
    gpa: float
    total_items: int
    completed_items: int
    missed_items: int
    total_points_possible: float
    total_points_earned: float
    items: list[ItemScoreRead] = []

    class Config:
        from_attributes = True


class CumulativeGPARead(BaseModel):
    student_id: int
    cumulative_gpa: float
    classes_taken: int
    per_class_details: list[ClassGPARead] = []

    class Config:
        from_attributes = True
