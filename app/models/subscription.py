from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Numeric, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from app.db.base import Base

STATUS_TRIAL = "trial"
STATUS_ACTIVE = "active"
STATUS_PENDING_CANCELLATION = "pending_cancellation"
STATUS_INACTIVE = "inactive"

SUBSCRIPTION_STATUSES = (STATUS_TRIAL, STATUS_ACTIVE, STATUS_PENDING_CANCELLATION, STATUS_INACTIVE)


class Subscription(Base):
    """
    One user's subscription to one tool.

    trial -> active (trial expiry or admin) -> pending_cancellation (user cancel,
    billable until the next billing date) -> inactive (nightly job, once the
    billing date has passed).
    """

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tool_id = Column(Integer, ForeignKey("tools.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False, default=STATUS_TRIAL, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    trial_start_date = Column(DateTime, nullable=True)
    trial_end_date = Column(DateTime, nullable=True)
    has_used_trial = Column(Boolean, nullable=False, default=False)
    cancellation_effective_date = Column(Date, nullable=True)  # Next billing date at the time of cancel
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    tool = relationship("Tool", lazy="joined")

    def __repr__(self):
        return f"<Subscription(id={self.id}, user_id={self.user_id}, tool_id={self.tool_id}, status={self.status})>"
