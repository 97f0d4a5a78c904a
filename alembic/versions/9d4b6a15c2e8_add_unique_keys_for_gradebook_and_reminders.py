"""add unique keys for gradebook and reminder windows

Revision ID: 9d4b6a15c2e8
Revises: 1c7e2f90ab31
Create Date: 2026-10-14 16:41:37.902115

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9d4b6a15c2e8'
down_revision: Union[str, Sequence[str], None] = '1c7e2f90ab31'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    with op.batch_alter_table("grade_records", recreate="always") as batch_op:
        batch_op.create_unique_constraint(
            "uq_grade_records_student_item",
            ["student_id", "item_id"],
        )

    op.create_table(
        "reminder_windows",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("gradable_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("notification_type", sa.String(50), nullable=False),
        sa.Column("window_started_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "user_id", "item_id", "notification_type", name="uq_reminder_windows_key"
        ),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("reminder_windows")
    with op.batch_alter_table("grade_records", recreate="always") as batch_op:
        batch_op.drop_constraint(
            "uq_grade_records_student_item",
            type_="unique",
        )
