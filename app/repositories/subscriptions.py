from datetime import datetime
from typing import Iterable, List, Optional

from app.models.subscription import Subscription, STATUS_PENDING_CANCELLATION, STATUS_TRIAL
from app.repositories.base import Repository


class SubscriptionRepository(Repository):
    model = Subscription
    entity = "subscriptions"

    def for_user(self, user_id: int, statuses: Iterable[str]) -> List[Subscription]:
        return self.find(
            Subscription.user_id == user_id,
            Subscription.status.in_(list(statuses)),
            order_by=Subscription.created_at.asc(),
        )

    def oldest_for_user(self, user_id: int, statuses: Iterable[str]) -> Optional[Subscription]:
        return self.first(
            Subscription.user_id == user_id,
            Subscription.status.in_(list(statuses)),
            order_by=Subscription.created_at.asc(),
        )

    def get_for_user(self, user_id: int, subscription_id: int) -> Optional[Subscription]:
        return self.first(Subscription.id == subscription_id, Subscription.user_id == user_id)

    def get_by_tool(self, user_id: int, tool_id: int) -> Optional[Subscription]:
        return self.first(Subscription.user_id == user_id, Subscription.tool_id == tool_id)

    def user_ids_with_status(self, statuses: Iterable[str]) -> List[int]:
        return self.distinct(Subscription.user_id, Subscription.status.in_(list(statuses)))

    def pending_cancellations(self) -> List[Subscription]:
        return self.find(
            Subscription.status == STATUS_PENDING_CANCELLATION,
            order_by=Subscription.user_id.asc(),
        )

    def expired_trials(self, now: datetime, user_id: Optional[int] = None) -> List[Subscription]:
        criteria = [
            Subscription.status == STATUS_TRIAL,
            Subscription.trial_end_date.isnot(None),
            Subscription.trial_end_date < now,
        ]
        if user_id is not None:
            criteria.append(Subscription.user_id == user_id)
        return self.find(*criteria)
