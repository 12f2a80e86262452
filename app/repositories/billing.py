from datetime import date
from typing import Iterable, List, Set

from app.models.billing import BillingActive, BillingHistory, ACTIVE_STATUS_PENDING
from app.repositories.base import Repository


class BillingActiveRepository(Repository):
    model = BillingActive
    entity = "billing_active"

    def for_user(self, user_id: int) -> List[BillingActive]:
        return self.find(BillingActive.user_id == user_id, order_by=BillingActive.id.asc())

    def delete_for_user(self, user_id: int) -> int:
        return self.delete_where(BillingActive.user_id == user_id)

    def delete_for_period(self, user_id: int, start: date, end: date) -> int:
        return self.delete_where(
            BillingActive.user_id == user_id,
            BillingActive.billing_period_start == start,
            BillingActive.billing_period_end == end,
        )

    def delete_upcoming(self, user_id: int, today: date) -> int:
        """Pending rows not yet due (billing_date after today)."""
        return self.delete_where(
            BillingActive.user_id == user_id,
            BillingActive.billing_date > today,
            BillingActive.status == ACTIVE_STATUS_PENDING,
        )

    def delete_for_subscription(self, user_id: int, subscription_id: int) -> int:
        return self.delete_where(
            BillingActive.user_id == user_id,
            BillingActive.subscription_id == subscription_id,
        )

    def due(self, today: date) -> List[BillingActive]:
        return self.find(
            BillingActive.billing_date <= today,
            BillingActive.status == ACTIVE_STATUS_PENDING,
            order_by=BillingActive.id.asc(),
        )

    def delete_ids(self, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        return self.delete_where(BillingActive.id.in_(ids))


class BillingHistoryRepository(Repository):
    model = BillingHistory
    entity = "billing_history"

    def archived_source_ids(self, billing_active_ids: Iterable[int]) -> Set[int]:
        ids = list(billing_active_ids)
        if not ids:
            return set()
        return set(self.distinct(BillingHistory.billing_active_id, BillingHistory.billing_active_id.in_(ids)))

    def for_user(self, user_id: int) -> List[BillingHistory]:
        return self.find(BillingHistory.user_id == user_id, order_by=BillingHistory.id.asc())
