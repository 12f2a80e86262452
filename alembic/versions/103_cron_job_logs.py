"""Create cron_job_logs table.

Revision ID: 103_cron_job_logs
Revises: 102_billing_tables
Create Date: 2026-03-09
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "103_cron_job_logs"
down_revision: Union[str, None] = "102_billing_tables"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if sa.inspect(op.get_bind()).has_table("cron_job_logs"):
        return
    op.create_table(
        "cron_job_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("job_name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("error_details", sa.Text(), nullable=True),
        sa.Column("execution_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_cron_job_logs_job_name", "cron_job_logs", ["job_name"])
    op.create_index("ix_cron_job_logs_status", "cron_job_logs", ["status"])
    op.create_index("ix_cron_job_logs_started_at", "cron_job_logs", ["started_at"])


def downgrade() -> None:
    op.drop_table("cron_job_logs")
