from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GradeRecordRead(BaseModel):
    id: int
    student_id: int
    item_id: int
    score: float
    max_score: float
    percentage: float
    letter_grade: str
    published: bool
    source: str  # "zero_fill" | "graded"
    created_at: datetime
    graded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GradeCreate(BaseModel):
    student_id: int
    item_id: int
    score: float = Field(ge=0)


class ReconcileSummary(BaseModel):
    succeeded: int
    skipped: int
    failed: int
    aborted: bool = False
    errors: list[str] = []

    class Config:
        from_attributes = True
