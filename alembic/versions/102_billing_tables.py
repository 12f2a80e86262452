"""Create billing_active and billing_history tables.

Revision ID: 102_billing_tables
Revises: 101_core_tables
Create Date: 2026-03-02

billing_history.billing_active_id is unique so a retried nightly archive can
skip rows it already copied.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "102_billing_tables"
down_revision: Union[str, None] = "101_core_tables"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _billing_columns():
    return [
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("billing_period_start", sa.Date(), nullable=False),
        sa.Column("billing_period_end", sa.Date(), nullable=False),
        sa.Column("billing_date", sa.Date(), nullable=False),
        sa.Column("item_type", sa.String(), nullable=False),
        sa.Column("tool_id", sa.Integer(), sa.ForeignKey("tools.id", ondelete="SET NULL"), nullable=True),
        sa.Column("tool_name", sa.String(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column(
            "subscription_id", sa.Integer(),
            sa.ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True,
        ),
    ]


def upgrade() -> None:
    inspector = sa.inspect(op.get_bind())

    if not inspector.has_table("billing_active"):
        op.create_table(
            "billing_active",
            sa.Column("id", sa.Integer(), primary_key=True),
            *_billing_columns(),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_billing_active_user_id", "billing_active", ["user_id"])
        op.create_index("ix_billing_active_billing_date", "billing_active", ["billing_date"])

    if not inspector.has_table("billing_history"):
        op.create_table(
            "billing_history",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("billing_active_id", sa.Integer(), nullable=False, unique=True),
            *_billing_columns(),
            sa.Column("processed_at", sa.DateTime(), nullable=True),
            sa.Column("payment_intent_id", sa.String(), nullable=True),
            sa.Column("invoice_id", sa.String(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_billing_history_user_id", "billing_history", ["user_id"])


def downgrade() -> None:
    """Keep billing history for safety; no-op downgrade."""
    pass
