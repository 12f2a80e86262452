from datetime import date, datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import DataAccessError, InvalidSubscriptionStateError, SubscriptionNotFoundError
from app.models import BillingActive, Subscription
from app.models.subscription import (
    STATUS_ACTIVE,
    STATUS_INACTIVE,
    STATUS_PENDING_CANCELLATION,
    STATUS_TRIAL,
)
from app.services.subscription_lifecycle import (
    cancel_subscription,
    expire_trials,
    list_user_subscriptions,
    set_subscription_status,
    start_subscription,
)


def _billing_rows(db, user_id):
    db.expire_all()
    return db.query(BillingActive).filter(BillingActive.user_id == user_id).all()


def test_first_purchase_starts_trial(db, make_user, make_tool):
    user = make_user()
    tool = make_tool(price="10.00")
    now = datetime.now()

    subscription = start_subscription(db, user.id, tool.id, now=now)

    assert subscription.status == STATUS_TRIAL
    assert subscription.has_used_trial is True
    assert subscription.trial_start_date == now
    assert subscription.trial_end_date == now + timedelta(days=7)
    # The trial is charged on the day it ends, which is the user's next billing date
    assert len(_billing_rows(db, user.id)) == 2


def test_purchase_unknown_or_retired_tool(db, make_user, make_tool):
    user = make_user()
    retired = make_tool(status="retired")

    with pytest.raises(SubscriptionNotFoundError):
        start_subscription(db, user.id, 9999)
    with pytest.raises(InvalidSubscriptionStateError):
        start_subscription(db, user.id, retired.id)


def test_repurchase_after_trial_is_active(db, make_user, make_tool, make_subscription):
    user = make_user()
    tool = make_tool()
    existing = make_subscription(user, tool, status=STATUS_INACTIVE, has_used_trial=True)

    subscription = start_subscription(db, user.id, tool.id)

    assert subscription.id == existing.id
    assert subscription.status == STATUS_ACTIVE
    assert subscription.cancellation_effective_date is None


def test_purchase_of_live_subscription_is_a_no_op(db, make_user, make_tool, make_subscription):
    user = make_user()
    tool = make_tool()
    existing = make_subscription(user, tool, status=STATUS_ACTIVE)

    subscription = start_subscription(db, user.id, tool.id)

    assert subscription.id == existing.id
    assert subscription.status == STATUS_ACTIVE
    assert db.query(Subscription).count() == 1


def test_expire_trials(db, make_user, make_tool, make_subscription):
    user = make_user()
    now = datetime(2025, 3, 10, 12, 0)
    expired = make_subscription(
        user, make_tool("Pets"), status=STATUS_TRIAL, trial_end_date=now - timedelta(hours=1),
    )
    running = make_subscription(
        user, make_tool("Goals"), status=STATUS_TRIAL, trial_end_date=now + timedelta(days=2),
    )

    assert expire_trials(db, user_id=user.id, now=now) == 1

    db.expire_all()
    assert db.get(Subscription, expired.id).status == STATUS_ACTIVE
    assert db.get(Subscription, running.id).status == STATUS_TRIAL


def test_cancel_trial_ends_immediately(db, make_user, make_tool):
    user = make_user()
    subscription = start_subscription(db, user.id, make_tool().id)

    cancelled = cancel_subscription(db, user.id, subscription.id)

    assert cancelled.status == STATUS_INACTIVE
    assert cancelled.trial_start_date is None
    assert cancelled.trial_end_date is None
    assert _billing_rows(db, user.id) == []


def test_cancel_active_waits_for_next_billing_date(db, make_user, make_tool, make_subscription):
    user = make_user()
    subscription = make_subscription(user, make_tool(), status=STATUS_ACTIVE)

    cancelled = cancel_subscription(db, user.id, subscription.id, today=date(2025, 3, 10))

    # Billing day 8: the next charge after March 10th is April 8th
    assert cancelled.status == STATUS_PENDING_CANCELLATION
    assert cancelled.cancellation_effective_date == date(2025, 4, 8)
    assert [s.id for s in list_user_subscriptions(db, user.id)] == [subscription.id]


def test_cancel_errors(db, make_user, make_tool, make_subscription):
    user, other = make_user(), make_user()
    pending = make_subscription(user, make_tool(), status=STATUS_PENDING_CANCELLATION)

    with pytest.raises(InvalidSubscriptionStateError):
        cancel_subscription(db, user.id, pending.id)
    with pytest.raises(SubscriptionNotFoundError):
        cancel_subscription(db, other.id, pending.id)


def test_admin_status_changes(db, make_user, make_tool, make_subscription):
    user = make_user()
    subscription = make_subscription(user, make_tool(), status=STATUS_INACTIVE)
    now = datetime(2025, 3, 10, 9, 0)

    updated = set_subscription_status(db, user.id, subscription.id, STATUS_TRIAL, now=now)
    assert updated.status == STATUS_TRIAL
    assert updated.trial_end_date == now + timedelta(days=7)

    updated = set_subscription_status(db, user.id, subscription.id, STATUS_ACTIVE)
    assert updated.status == STATUS_ACTIVE

    with pytest.raises(InvalidSubscriptionStateError):
        set_subscription_status(db, user.id, subscription.id, "paused")
    with pytest.raises(SubscriptionNotFoundError):
        set_subscription_status(db, user.id, 9999, STATUS_ACTIVE)


def test_resync_uses_the_given_clock(db, make_user, make_tool):
    user = make_user()
    now = datetime(2025, 3, 10, 9, 0)

    start_subscription(db, user.id, make_tool(price="10.00").id, now=now)

    # Trial ends March 17th, so the rebuilt period is the one open on March 10th
    rows = _billing_rows(db, user.id)
    assert len(rows) == 2
    assert {(row.billing_period_start, row.billing_date) for row in rows} == {(date(2025, 2, 17), date(2025, 3, 17))}


def test_tool_lookup_failure_is_a_data_access_error(db, make_user, monkeypatch):
    user = make_user()

    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT tools", {}, Exception("server closed the connection"))

    monkeypatch.setattr(db, "query", broken_query)

    with pytest.raises(DataAccessError) as excinfo:
        start_subscription(db, user.id, 1)
    assert excinfo.value.entity == "tools"
