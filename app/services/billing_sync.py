"""
Billing sync: keeps a user's billing_active rows consistent with their
subscriptions.

Line items for a period are never patched. Each sync deletes the user's rows
for the computed period, plus any not-yet-due rows left over from an earlier
billing day, and inserts a fresh set in the same transaction, so running it
twice yields the same rows. Rows already due stay put for the nightly archive.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from app.core.config import BILLING_DAY_OFFSET_DAYS, BILLING_SYNC_MAX_WORKERS
from app.core.exceptions import DataAccessError, ValidationError
from app.db.session import transaction
from app.models.billing import BillingActive, ITEM_PLATFORM_FEE, ITEM_TOOL_SUBSCRIPTION, ACTIVE_STATUS_PENDING
from app.models.subscription import Subscription, STATUS_ACTIVE, STATUS_TRIAL
from app.repositories.billing import BillingActiveRepository
from app.repositories.subscriptions import SubscriptionRepository
from app.services.billing_period import BillingPeriod, as_reference_date, calculate_billing_period
from app.services.platform_fee import PlatformFeeProvider

logger = logging.getLogger(__name__)

BILLABLE_STATUSES = (STATUS_ACTIVE, STATUS_TRIAL)


@dataclass
class SyncResult:
    success: bool
    user_id: int
    error: Optional[str] = None
    period: Optional[BillingPeriod] = None
    records_created: int = 0


@dataclass
class SyncBatchResult:
    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "errors": list(self.errors),
        }


def get_user_billing_day(
    db: Session,
    user_id: int,
    statuses: Iterable[str] = BILLABLE_STATUSES,
) -> Optional[int]:
    """
    Billing day of month for a user, anchored on their oldest subscription in
    `statuses`. A trial bills on the day its trial ends; anything else bills
    BILLING_DAY_OFFSET_DAYS after it was created. None if no subscription matches.
    """
    oldest = SubscriptionRepository(db).oldest_for_user(user_id, statuses)
    if oldest is None:
        return None

    if oldest.status == STATUS_TRIAL and oldest.trial_end_date:
        anchor = oldest.trial_end_date
    else:
        anchor = oldest.created_at + timedelta(days=BILLING_DAY_OFFSET_DAYS)
    return anchor.day


def _should_bill(subscription: Subscription, billing_date: date) -> bool:
    if subscription.status == STATUS_ACTIVE:
        return True
    if subscription.status == STATUS_TRIAL and subscription.trial_end_date:
        # A trial is charged only once it ends on or before the billing date
        return subscription.trial_end_date.date() <= billing_date
    return False


def _build_line_items(
    user_id: int,
    period: BillingPeriod,
    subscriptions: List[Subscription],
    platform_fee: Decimal,
) -> List[BillingActive]:
    common = {
        "user_id": user_id,
        "billing_period_start": period.start,
        "billing_period_end": period.end,
        "billing_date": period.billing_date,
        "status": ACTIVE_STATUS_PENDING,
    }
    records = [
        BillingActive(
            item_type=ITEM_TOOL_SUBSCRIPTION,
            tool_id=sub.tool_id,
            tool_name=sub.tool.name if sub.tool else "Unknown Tool",
            amount=Decimal(sub.price),
            subscription_id=sub.id,
            **common,
        )
        for sub in subscriptions
    ]
    if records:
        records.append(
            BillingActive(
                item_type=ITEM_PLATFORM_FEE,
                tool_id=None,
                tool_name=None,
                amount=platform_fee,
                subscription_id=None,
                **common,
            )
        )
    return records


def _clear_user(db: Session, user_id: int) -> SyncResult:
    with transaction(db, "billing_active"):
        removed = BillingActiveRepository(db).delete_for_user(user_id)
    if removed:
        logger.info("[Billing] User %s has no billable subscriptions, removed %s line item(s)", user_id, removed)
    return SyncResult(success=True, user_id=user_id)


def sync_user_billing_active(
    db: Session,
    user_id: int,
    fee_provider=None,
    reference_date: Optional[Union[date, datetime]] = None,
) -> SyncResult:
    """Rebuild one user's pending line items for the current billing period."""
    try:
        billing_day = get_user_billing_day(db, user_id)
        if billing_day is None:
            return _clear_user(db, user_id)

        period = calculate_billing_period(billing_day, reference_date)

        subscriptions = SubscriptionRepository(db).for_user(user_id, BILLABLE_STATUSES)
        if not subscriptions:
            return _clear_user(db, user_id)

        provider = fee_provider or PlatformFeeProvider(db)
        platform_fee = provider.get_amount()

        billable = [sub for sub in subscriptions if _should_bill(sub, period.billing_date)]
        records = _build_line_items(user_id, period, billable, platform_fee)

        billing_active = BillingActiveRepository(db)
        with transaction(db, "billing_active"):
            billing_active.delete_for_period(user_id, period.start, period.end)
            # A shifted billing day leaves rows for a period that no longer exists
            stale = billing_active.delete_upcoming(user_id, as_reference_date(reference_date))
            billing_active.insert(records)

        logger.info(
            "[Billing] Synced user %s: %s line item(s) for %s..%s, billing on %s",
            user_id, len(records), period.start, period.end, period.billing_date,
        )
        if stale:
            logger.info("[Billing] Dropped %s upcoming line item(s) from a previous billing day for user %s", stale, user_id)
        return SyncResult(success=True, user_id=user_id, period=period, records_created=len(records))

    except (DataAccessError, ValidationError) as e:
        db.rollback()
        logger.error("[Billing] Sync failed for user %s: %s", user_id, e)
        return SyncResult(success=False, user_id=user_id, error=str(e))


def remove_subscription_billing_records(
    db: Session,
    user_id: int,
    subscription_id: int,
    reference_date: Optional[Union[date, datetime]] = None,
) -> SyncResult:
    """Drop one subscription's pending charges, then re-sync so the platform fee is recomputed."""
    try:
        with transaction(db, "billing_active"):
            BillingActiveRepository(db).delete_for_subscription(user_id, subscription_id)
    except DataAccessError as e:
        logger.error("[Billing] Failed to remove billing records for subscription %s: %s", subscription_id, e)
        return SyncResult(success=False, user_id=user_id, error=str(e))
    return sync_user_billing_active(db, user_id, reference_date=reference_date)


def _sync_in_own_session(session_factory: Callable[[], Session], user_id: int, reference_date) -> SyncResult:
    db = session_factory()
    try:
        return sync_user_billing_active(db, user_id, reference_date=reference_date)
    finally:
        db.close()


def sync_users_billing_active(
    user_ids: Iterable[int],
    session_factory: Callable[[], Session],
    max_workers: int = BILLING_SYNC_MAX_WORKERS,
    reference_date: Optional[Union[date, datetime]] = None,
) -> SyncBatchResult:
    """
    Sync many users with at most `max_workers` running at once. Each worker has
    its own session; one user's failure (even an unexpected exception) is
    recorded and never stops the others.
    """
    user_ids = list(user_ids)
    batch = SyncBatchResult(total=len(user_ids))
    if not user_ids:
        return batch

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        futures = {
            pool.submit(_sync_in_own_session, session_factory, user_id, reference_date): user_id
            for user_id in user_ids
        }
        for future in as_completed(futures):
            user_id = futures[future]
            try:
                result = future.result()
            except Exception as e:
                logger.exception("[Billing] Unexpected error syncing user %s", user_id)
                result = SyncResult(success=False, user_id=user_id, error=str(e) or type(e).__name__)

            if result.success:
                batch.successful += 1
            else:
                batch.failed += 1
                batch.errors.append({"user_id": user_id, "error": result.error or "Unknown error"})

    batch.errors.sort(key=lambda err: err["user_id"])
    return batch
