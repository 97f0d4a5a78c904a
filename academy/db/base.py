from academy.db.base_class import Base  # noqa: F401

# import models so SQLAlchemy registers them on Base.metadata
from academy.models import (  # noqa: F401
    class_batch,
    enrollment,
    grade_record,
    gradable_item,
    notification,
    quiz_attempt,
    reminder_log,
    submission,
    user,
)
