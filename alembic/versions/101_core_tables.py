"""Create users, tools, subscriptions and settings tables.

Revision ID: 101_core_tables
Revises:
Create Date: 2026-03-02

Idempotent: each table is only created when missing, so repeated deploys are safe.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "101_core_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _has_table(name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(name)


def upgrade() -> None:
    if not _has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False, unique=True),
            sa.Column("first_name", sa.String(), nullable=False),
            sa.Column("last_name", sa.String(), nullable=True),
            sa.Column("user_status", sa.String(), nullable=False, server_default="user"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_users_email", "users", ["email"])

    if not _has_table("tools"):
        op.create_table(
            "tools",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("short_name", sa.String(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("status", sa.String(), nullable=False, server_default="available"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if not _has_table("subscriptions"):
        op.create_table(
            "subscriptions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("tool_id", sa.Integer(), sa.ForeignKey("tools.id", ondelete="CASCADE"), nullable=False),
            sa.Column("status", sa.String(), nullable=False, server_default="trial"),
            sa.Column("price", sa.Numeric(10, 2), nullable=False),
            sa.Column("trial_start_date", sa.DateTime(), nullable=True),
            sa.Column("trial_end_date", sa.DateTime(), nullable=True),
            sa.Column("has_used_trial", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("cancellation_effective_date", sa.Date(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
        op.create_index("ix_subscriptions_tool_id", "subscriptions", ["tool_id"])
        op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    if not _has_table("settings"):
        op.create_table(
            "settings",
            sa.Column("key", sa.String(), primary_key=True),
            sa.Column("value", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.bulk_insert(
            sa.table("settings", sa.column("key", sa.String()), sa.column("value", sa.JSON())),
            [{"key": "platform_fee", "value": {"amount": 5.00}}],
        )


def downgrade() -> None:
    """Keep billing data for safety; no-op downgrade."""
    pass
