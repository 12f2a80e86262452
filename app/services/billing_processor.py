"""
Nightly billing run.

Triggered once a day by the scheduler (GET /api/cron/billing-process or
scripts/run_billing_process.py). Phases, each logged separately:

1. sync          - rebuild billing_active for every user with a live subscription
2. archive       - copy due billing_active rows into billing_history, then delete them
3. cancellations - demote pending_cancellation subscriptions whose billing date has passed

A phase failure is recorded in the summary and the remaining phases still run.
Only failing to load the candidate users aborts the run (BillingRunError).
The job is safe to re-invoke: sync is idempotent and archiving skips rows
already present in billing_history.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import BILLING_SYNC_MAX_WORKERS
from app.core.exceptions import BillingRunError, DataAccessError, ValidationError
from app.db.session import SessionLocal, transaction
from app.models.billing import BillingActive, BillingHistory, HISTORY_STATUS_PROCESSED
from app.models.subscription import (
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_PENDING_CANCELLATION,
    STATUS_TRIAL,
)
from app.repositories.billing import BillingActiveRepository, BillingHistoryRepository
from app.repositories.subscriptions import SubscriptionRepository
from app.services.billing_period import billing_date_in_month
from app.services.billing_sync import SyncBatchResult, get_user_billing_day, sync_users_billing_active

logger = logging.getLogger(__name__)

JOB_NAME = "billing-process"

SYNC_CANDIDATE_STATUSES = (STATUS_ACTIVE, STATUS_TRIAL, STATUS_PENDING_CANCELLATION)

RUN_SUCCESS = "success"
RUN_WARNING = "warning"
RUN_ERROR = "error"


@dataclass
class PhaseError:
    phase: str
    message: str
    user_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"phase": self.phase, "message": self.message, "user_ids": list(self.user_ids)}


@dataclass
class BillingRunSummary:
    date: date
    status: str = RUN_SUCCESS
    sync: SyncBatchResult = field(default_factory=SyncBatchResult)
    archived_count: int = 0
    archived_records: List[dict] = field(default_factory=list)
    skipped_already_archived: int = 0
    demoted_user_ids: List[int] = field(default_factory=list)
    demoted_count: int = 0
    errors: List[PhaseError] = field(default_factory=list)

    def record_error(self, phase: str, message: str, user_ids: Optional[List[int]] = None) -> None:
        self.errors.append(PhaseError(phase, message, list(user_ids or [])))
        self.status = RUN_ERROR

    def record_warning(self, phase: str, message: str, user_ids: Optional[List[int]] = None) -> None:
        self.errors.append(PhaseError(phase, message, list(user_ids or [])))
        if self.status != RUN_ERROR:
            self.status = RUN_WARNING

    @property
    def message(self) -> str:
        return (
            f"Synced {self.sync.successful}/{self.sync.total} user(s), "
            f"archived {self.archived_count} billing record(s), "
            f"demoted {self.demoted_count} pending cancellation(s)"
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "status": self.status,
            "message": self.message,
            "sync": self.sync.to_dict(),
            "count": self.archived_count,
            "records": list(self.archived_records),
            "skipped_already_archived": self.skipped_already_archived,
            "demoted_count": self.demoted_count,
            "demoted_user_ids": list(self.demoted_user_ids),
            "errors": [error.to_dict() for error in self.errors],
        }


def _to_history(record: BillingActive, now: datetime) -> BillingHistory:
    return BillingHistory(
        billing_active_id=record.id,
        user_id=record.user_id,
        billing_period_start=record.billing_period_start,
        billing_period_end=record.billing_period_end,
        billing_date=record.billing_date,
        item_type=record.item_type,
        tool_id=record.tool_id,
        tool_name=record.tool_name,
        amount=record.amount,
        # TODO: set from the payment provider's charge outcome once charging is wired into this job
        status=HISTORY_STATUS_PROCESSED,
        subscription_id=record.subscription_id,
        processed_at=now,
        created_at=record.created_at or now,
        updated_at=now,
        payment_intent_id=None,
        invoice_id=None,
        notes=None,
    )


def archive_due_records(db: Session, summary: BillingRunSummary, today: date, now: datetime) -> None:
    """Move billing_active rows with billing_date <= today into billing_history."""
    active_repo = BillingActiveRepository(db)
    history_repo = BillingHistoryRepository(db)

    try:
        due = active_repo.due(today)
    except DataAccessError as e:
        db.rollback()
        logger.error("[Billing] Failed to fetch due billing records: %s", e)
        summary.record_error("archive", f"Failed to fetch billing records: {e}")
        return

    if not due:
        logger.info("[Billing] No billing records due on or before %s", today)
        return

    due_ids = [record.id for record in due]
    user_ids = sorted({record.user_id for record in due})
    archived_records = [
        {"id": r.id, "user_id": r.user_id, "item_type": r.item_type, "amount": float(r.amount)}
        for r in due
    ]

    # Insert history first; billing_active rows are only deleted once history is committed
    try:
        with transaction(db, "billing_history"):
            already_archived = history_repo.archived_source_ids(due_ids)
            history_repo.insert(_to_history(r, now) for r in due if r.id not in already_archived)
    except DataAccessError as e:
        logger.error("[Billing] Failed to insert billing history for users %s: %s", user_ids, e)
        summary.record_error("archive", f"Failed to insert billing history: {e}", user_ids)
        return

    summary.skipped_already_archived = len(already_archived)
    if already_archived:
        logger.warning(
            "[Billing] %s record(s) were already in billing_history from an earlier run: %s",
            len(already_archived), sorted(already_archived),
        )

    try:
        with transaction(db, "billing_active"):
            active_repo.delete_ids(due_ids)
    except DataAccessError as e:
        logger.error("[Billing] Records %s archived but not removed from billing_active: %s", due_ids, e)
        summary.record_warning(
            "archive",
            f"Records were moved to history but not removed from active table: {e}",
            user_ids,
        )
        return

    summary.archived_count = len(due)
    summary.archived_records = archived_records
    logger.info("[Billing] Archived %s billing record(s) for %s user(s)", len(due), len(user_ids))


def finalize_pending_cancellations(db: Session, summary: BillingRunSummary, today: date) -> None:
    """
    Demote a user's pending_cancellation subscriptions to inactive once this
    month's billing date (anchored on their oldest active/trial/pending
    subscription) is on or before today. Subscriptions with a
    cancellation_effective_date still in the future keep waiting.
    """
    subs_repo = SubscriptionRepository(db)
    try:
        pending = subs_repo.pending_cancellations()
    except DataAccessError as e:
        db.rollback()
        logger.error("[Billing] Failed to fetch pending cancellations: %s", e)
        summary.record_error("cancellations", f"Failed to fetch pending cancellations: {e}")
        return

    by_user = defaultdict(list)
    for sub in pending:
        by_user[sub.user_id].append(sub)

    failed_users = []
    for user_id, subs in by_user.items():
        try:
            billing_day = get_user_billing_day(db, user_id, SYNC_CANDIDATE_STATUSES)
            if billing_day is None:
                continue
            this_month_billing = billing_date_in_month(today.year, today.month, billing_day)
            if today < this_month_billing:
                continue

            due = [
                sub for sub in subs
                if sub.cancellation_effective_date is None or sub.cancellation_effective_date <= today
            ]
            if not due:
                continue

            with transaction(db, "subscriptions"):
                for sub in due:
                    sub.status = STATUS_INACTIVE
                subs_repo.flush()

            summary.demoted_count += len(due)
            summary.demoted_user_ids.append(user_id)
            logger.info("[Billing] Demoted %s pending cancellation(s) for user %s", len(due), user_id)
        except ValidationError as e:
            logger.warning("[Billing] Skipping pending cancellations for user %s: %s", user_id, e)
        except DataAccessError as e:
            logger.error("[Billing] Failed to demote pending cancellations for user %s: %s", user_id, e)
            failed_users.append(user_id)

    if failed_users:
        summary.record_error("cancellations", "Failed to demote pending cancellations", failed_users)


def process_nightly_billing(
    session_factory: Callable[[], Session] = SessionLocal,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    max_workers: int = BILLING_SYNC_MAX_WORKERS,
) -> BillingRunSummary:
    now = now or datetime.now()
    today = today or now.date()
    summary = BillingRunSummary(date=today)

    db = session_factory()
    try:
        logger.info("[Billing] Nightly run started for %s", today)

        # Phase 1: sync
        try:
            user_ids = SubscriptionRepository(db).user_ids_with_status(SYNC_CANDIDATE_STATUSES)
        except DataAccessError as e:
            logger.error("[Billing] Could not load users to sync: %s", e)
            raise BillingRunError("sync", str(e)) from e
        db.rollback()  # release the read transaction before workers start writing

        summary.sync = sync_users_billing_active(user_ids, session_factory, max_workers, reference_date=today)
        logger.info(
            "[Billing] Sync phase: %s total, %s succeeded, %s failed",
            summary.sync.total, summary.sync.successful, summary.sync.failed,
        )
        if summary.sync.failed:
            summary.record_warning(
                "sync",
                f"{summary.sync.failed} user sync(s) failed",
                [err["user_id"] for err in summary.sync.errors],
            )

        # Phase 2: archive
        archive_due_records(db, summary, today, now)

        # Phase 3: cancellations
        finalize_pending_cancellations(db, summary, today)

        logger.info("[Billing] Nightly run finished with status %s: %s", summary.status, summary.message)
        return summary
    finally:
        db.close()
