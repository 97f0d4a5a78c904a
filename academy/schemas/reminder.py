from datetime import datetime

from pydantic import BaseModel


class ReminderCandidateRead(BaseModel):
    user_id: int
    item_id: int
    item_kind: str
    due_at: datetime
    already_reminded: bool
    title: str
    class_id: int | None = None

    class Config:
        from_attributes = True


class DispatchSummary(BaseModel):
    sent: int
    skipped: int
    failed: int
    aborted: bool = False
    errors: list[str] = []

    class Config:
        from_attributes = True
