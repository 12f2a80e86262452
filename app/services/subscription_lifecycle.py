"""
Subscription lifecycle: purchase (trial), trial expiry, cancellation and
admin status changes. Every change re-syncs the user's billing_active rows.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import TRIAL_LENGTH_DAYS
from app.core.exceptions import InvalidSubscriptionStateError, SubscriptionNotFoundError
from app.db.session import transaction
from app.models.subscription import (
    Subscription,
    SUBSCRIPTION_STATUSES,
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_PENDING_CANCELLATION,
    STATUS_TRIAL,
)
from app.repositories.subscriptions import SubscriptionRepository
from app.repositories.tools import ToolRepository
from app.services.billing_period import calculate_billing_period
from app.services.billing_sync import (
    BILLABLE_STATUSES,
    get_user_billing_day,
    remove_subscription_billing_records,
    sync_user_billing_active,
)

logger = logging.getLogger(__name__)

PURCHASABLE_TOOL_STATUSES = ("available", "active")
VISIBLE_STATUSES = (STATUS_ACTIVE, STATUS_TRIAL, STATUS_PENDING_CANCELLATION)


def _resync(db: Session, user_id: int, reference_date=None) -> None:
    result = sync_user_billing_active(db, user_id, reference_date=reference_date)
    if not result.success:
        # The status change is already committed; the nightly run re-syncs every user
        logger.warning("[Billing] Re-sync after subscription change failed for user %s: %s", user_id, result.error)


def _start_trial(subscription: Subscription, now: datetime) -> None:
    subscription.status = STATUS_TRIAL
    subscription.trial_start_date = now
    subscription.trial_end_date = now + timedelta(days=TRIAL_LENGTH_DAYS)
    subscription.has_used_trial = True


def start_subscription(db: Session, user_id: int, tool_id: int, now: Optional[datetime] = None) -> Subscription:
    """Buy a tool. First purchase starts a trial; re-purchases reactivate without one."""
    now = now or datetime.now()
    tool = ToolRepository(db).get(tool_id)
    if not tool:
        raise SubscriptionNotFoundError(f"Tool {tool_id} not found")
    if tool.status not in PURCHASABLE_TOOL_STATUSES:
        raise InvalidSubscriptionStateError("Tool is not available for purchase")

    repo = SubscriptionRepository(db)
    with transaction(db, "subscriptions"):
        subscription = repo.get_by_tool(user_id, tool_id)
        if subscription is None:
            subscription = Subscription(user_id=user_id, tool_id=tool_id, price=tool.price, created_at=now)
            _start_trial(subscription, now)
            repo.insert([subscription])
            logger.info("[Subscriptions] User %s started a trial of tool %s", user_id, tool_id)
        elif subscription.status in (STATUS_ACTIVE, STATUS_TRIAL):
            return subscription
        else:
            if subscription.status == STATUS_INACTIVE and not subscription.has_used_trial:
                _start_trial(subscription, now)
            else:
                subscription.status = STATUS_ACTIVE
            subscription.price = tool.price
            subscription.cancellation_effective_date = None
            repo.flush()
            logger.info("[Subscriptions] User %s reactivated tool %s as %s", user_id, tool_id, subscription.status)

    _resync(db, user_id, now)
    return subscription


def expire_trials(db: Session, user_id: Optional[int] = None, now: Optional[datetime] = None) -> int:
    """Convert trials whose end date has passed into active subscriptions."""
    now = now or datetime.now()
    repo = SubscriptionRepository(db)
    with transaction(db, "subscriptions"):
        expired = repo.expired_trials(now, user_id)
        for subscription in expired:
            subscription.status = STATUS_ACTIVE
        repo.flush()
    if expired:
        logger.info("[Subscriptions] Converted %s expired trial(s) to active", len(expired))
    return len(expired)


def list_user_subscriptions(db: Session, user_id: int) -> List[Subscription]:
    return SubscriptionRepository(db).for_user(user_id, VISIBLE_STATUSES)


def cancel_subscription(
    db: Session,
    user_id: int,
    subscription_id: int,
    today: Optional[date] = None,
) -> Subscription:
    """
    A trial ends immediately (inactive). An active subscription moves to
    pending_cancellation and stays billable until the user's next billing date.
    """
    repo = SubscriptionRepository(db)
    subscription = repo.get_for_user(user_id, subscription_id)
    if subscription is None:
        raise SubscriptionNotFoundError("Subscription not found or access denied")

    if subscription.status == STATUS_TRIAL:
        with transaction(db, "subscriptions"):
            subscription.status = STATUS_INACTIVE
            subscription.trial_start_date = None
            subscription.trial_end_date = None
            repo.flush()
        result = remove_subscription_billing_records(db, user_id, subscription_id, reference_date=today)
        if not result.success:
            logger.warning("[Billing] Could not clear billing for cancelled trial %s: %s", subscription_id, result.error)
        return subscription

    if subscription.status != STATUS_ACTIVE:
        raise InvalidSubscriptionStateError(f"Subscription is already {subscription.status}")

    billing_day = get_user_billing_day(db, user_id, BILLABLE_STATUSES)
    effective = calculate_billing_period(billing_day, today).billing_date if billing_day else today or date.today()
    with transaction(db, "subscriptions"):
        subscription.status = STATUS_PENDING_CANCELLATION
        subscription.cancellation_effective_date = effective
        repo.flush()
    logger.info("[Subscriptions] Subscription %s pending cancellation until %s", subscription_id, effective)

    _resync(db, user_id, today)
    return subscription


def set_subscription_status(
    db: Session,
    user_id: int,
    subscription_id: int,
    status: str,
    now: Optional[datetime] = None,
) -> Subscription:
    """Admin override of a subscription's status."""
    if status not in SUBSCRIPTION_STATUSES:
        raise InvalidSubscriptionStateError(
            f"Invalid status. Must be one of: {', '.join(SUBSCRIPTION_STATUSES)}"
        )
    now = now or datetime.now()
    repo = SubscriptionRepository(db)
    subscription = repo.get_for_user(user_id, subscription_id)
    if subscription is None:
        raise SubscriptionNotFoundError("Subscription not found or does not belong to this user")

    with transaction(db, "subscriptions"):
        previous = subscription.status
        if status == STATUS_TRIAL and previous != STATUS_TRIAL:
            _start_trial(subscription, now)
        else:
            subscription.status = status
            if previous == STATUS_TRIAL and status == STATUS_INACTIVE:
                subscription.trial_start_date = None
                subscription.trial_end_date = None
        if status != STATUS_PENDING_CANCELLATION:
            subscription.cancellation_effective_date = None
        repo.flush()
    logger.info("[Subscriptions] Admin set subscription %s from %s to %s", subscription_id, previous, status)

    _resync(db, user_id, now)
    return subscription
