"""Create calendar_categories and calendar_events tables.

Revision ID: 104_calendar_events
Revises: 103_cron_job_logs
Create Date: 2026-03-16
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "104_calendar_events"
down_revision: Union[str, None] = "103_cron_job_logs"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    inspector = sa.inspect(op.get_bind())

    if not inspector.has_table("calendar_categories"):
        op.create_table(
            "calendar_categories",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("card_color", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )

    if not inspector.has_table("calendar_events"):
        op.create_table(
            "calendar_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("tool_id", sa.Integer(), sa.ForeignKey("tools.id", ondelete="CASCADE"), nullable=True),
            sa.Column(
                "category_id", sa.Integer(),
                sa.ForeignKey("calendar_categories.id", ondelete="SET NULL"), nullable=True,
            ),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("time", sa.String(), nullable=True),
            sa.Column("frequency", sa.String(), nullable=False),
            sa.Column("days_of_week", sa.JSON(), nullable=True),
            sa.Column("day_of_month", sa.Integer(), nullable=True),
            sa.Column("add_to_dashboard", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_calendar_events_user_id", "calendar_events", ["user_id"])
        op.create_index("ix_calendar_events_tool_id", "calendar_events", ["tool_id"])


def downgrade() -> None:
    op.drop_table("calendar_events")
    op.drop_table("calendar_categories")
