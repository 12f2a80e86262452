from datetime import date

from app.models import CalendarCategory, CalendarEvent, CronJobLog, Setting
from app.models.subscription import STATUS_ACTIVE

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}


def test_cron_requires_secret(client, db):
    assert client.get("/api/cron/billing-process").status_code == 401
    response = client.get("/api/cron/billing-process", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401


def test_cron_billing_process_runs_and_is_logged(client, db):
    response = client.get("/api/cron/billing-process", headers=CRON_HEADERS)

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "success"
    assert payload["count"] == 0
    assert payload["records"] == []
    assert payload["sync"]["total"] == 0

    db.expire_all()
    log = db.query(CronJobLog).one()
    assert log.job_name == "billing-process"
    assert log.status == "success"


def test_platform_fee_default_and_setting(client, db):
    assert client.get("/api/billing/platform-fee").json() == {"amount": 5.0}

    db.add(Setting(key="platform_fee", value={"amount": 7.25}))
    db.commit()
    assert client.get("/api/billing/platform-fee").json() == {"amount": 7.25}


def test_admin_routes_require_superadmin(client, make_user, login):
    assert client.get("/api/admin/cron-logs").status_code == 401

    login(make_user())
    assert client.get("/api/admin/cron-logs").status_code == 403


def test_admin_cron_logs(client, make_user, login):
    login(make_user(user_status="superadmin"))
    client.get("/api/cron/billing-process", headers=CRON_HEADERS)

    response = client.get("/api/admin/cron-logs", params={"limit": 1000})

    assert response.status_code == 200
    body = response.json()
    assert body["pagination"] == {"total": 1, "limit": 500, "offset": 0, "hasMore": False}
    assert body["logs"][0]["job_name"] == "billing-process"


def test_admin_sync_all(client, make_user, make_tool, make_subscription, login):
    tool = make_tool()
    for _ in range(2):
        make_subscription(make_user(), tool)
    login(make_user(user_status="superadmin"))

    response = client.get("/api/admin/billing/sync-all")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["successful"] == 2
    assert body["failed"] == 0


def test_admin_sets_subscription_status(client, make_user, make_tool, make_subscription, login):
    user = make_user()
    subscription = make_subscription(user, make_tool(), status="inactive")
    login(make_user(user_status="superadmin"))

    response = client.put(
        f"/api/admin/users/{user.id}/subscriptions",
        json={"subscription_id": subscription.id, "status": STATUS_ACTIVE},
    )
    assert response.status_code == 200
    assert response.json()["status"] == STATUS_ACTIVE

    response = client.put(
        f"/api/admin/users/{user.id}/subscriptions",
        json={"subscription_id": subscription.id, "status": "paused"},
    )
    assert response.status_code == 400


def test_my_tools_purchase_list_and_cancel(client, make_user, make_tool, login):
    login(make_user())
    tool = make_tool(name="Documents", price="4.00")

    response = client.post("/api/my-tools", json={"tool_id": tool.id})
    assert response.status_code == 201
    subscription = response.json()
    assert subscription["status"] == "trial"
    assert subscription["tool"]["name"] == "Documents"

    listed = client.get("/api/my-tools").json()
    assert [s["id"] for s in listed] == [subscription["id"]]

    response = client.put("/api/my-tools", json={"subscription_id": subscription["id"]})
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"
    assert client.get("/api/my-tools").json() == []

    assert client.post("/api/my-tools", json={"tool_id": 9999}).status_code == 404


def test_calendar_occurrences(client, db, make_user, login):
    user = make_user()
    category = CalendarCategory(user_id=user.id, name="Chores", card_color="#22c55e")
    db.add(category)
    db.flush()
    db.add_all([
        CalendarEvent(
            user_id=user.id, category_id=category.id, title="Bins out", date=date(2025, 1, 1),
            frequency="Weekly", days_of_week=[3], time="19:00",
        ),
        CalendarEvent(
            user_id=user.id, title="Hidden", date=date(2025, 3, 3), frequency="One Time", add_to_dashboard=False,
        ),
    ])
    db.commit()
    login(user)

    response = client.get("/api/dashboard/items/calendar-events", params={"month": "2025-03"})

    assert response.status_code == 200
    items = response.json()["items"]
    assert [item["scheduled_date"] for item in items] == [
        "2025-03-05T19:00:00", "2025-03-12T19:00:00", "2025-03-19T19:00:00", "2025-03-26T19:00:00",
    ]
    assert items[0]["metadata"]["categoryName"] == "Chores"
    assert items[0]["metadata"]["categoryColor"] == "#22c55e"
    assert items[0]["type"] == "calendar_event"
    assert items[0]["tools"] is None


def test_calendar_rejects_bad_month(client, make_user, login):
    login(make_user())

    assert client.get("/api/dashboard/items/calendar-events", params={"month": "2025-13"}).status_code == 400
    assert client.get("/api/dashboard/items/calendar-events", params={"month": "March"}).status_code == 400
