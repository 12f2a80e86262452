"""
Billing line items.

billing_active holds the pending charges of the current period and is rebuilt
on every sync. billing_history is the append-only archive the nightly job
writes once a charge's billing_date has passed.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Numeric, Text
from datetime import datetime
from app.db.base import Base

ITEM_TOOL_SUBSCRIPTION = "tool_subscription"
ITEM_PLATFORM_FEE = "platform_fee"

ACTIVE_STATUS_PENDING = "pending"
HISTORY_STATUS_PROCESSED = "processed"


class BillingActive(Base):
    __tablename__ = "billing_active"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_period_start = Column(Date, nullable=False)
    billing_period_end = Column(Date, nullable=False)
    billing_date = Column(Date, nullable=False, index=True)
    item_type = Column(String, nullable=False)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="SET NULL"), nullable=True)
    tool_name = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default=ACTIVE_STATUS_PENDING)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    def __repr__(self):
        return (
            f"<BillingActive(id={self.id}, user_id={self.user_id}, item_type={self.item_type}, "
            f"amount={self.amount}, billing_date={self.billing_date})>"
        )


class BillingHistory(Base):
    __tablename__ = "billing_history"

    id = Column(Integer, primary_key=True, index=True)
    # Source billing_active row; unique so a retried archive never duplicates a charge
    billing_active_id = Column(Integer, nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_period_start = Column(Date, nullable=False)
    billing_period_end = Column(Date, nullable=False)
    billing_date = Column(Date, nullable=False)
    item_type = Column(String, nullable=False)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="SET NULL"), nullable=True)
    tool_name = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    payment_intent_id = Column(String, nullable=True)
    invoice_id = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)  # Carried over from the billing_active row
    updated_at = Column(DateTime, default=datetime.now, nullable=False)
