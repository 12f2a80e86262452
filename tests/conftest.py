import itertools
import os
from datetime import datetime
from decimal import Decimal

# Configure before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["BILLING_SYNC_MAX_WORKERS"] = "1"

import pytest
from fastapi.testclient import TestClient

from app.core import config
from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.main import app
from app.models import Subscription, Tool, User
from app.models.subscription import STATUS_ACTIVE
from app.utils.auth import create_session_token


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(user_status="user", **kwargs):
        n = next(counter)
        user = User(
            email=f"user{n}@example.com",
            first_name=f"User{n}",
            user_status=user_status,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_tool(db):
    def _make(name="Pet Care", price="10.00", status="available"):
        tool = Tool(name=name, price=Decimal(price), status=status)
        db.add(tool)
        db.commit()
        db.refresh(tool)
        return tool

    return _make


@pytest.fixture
def make_subscription(db):
    def _make(user, tool, status=STATUS_ACTIVE, created_at=None, price=None, **kwargs):
        subscription = Subscription(
            user_id=user.id,
            tool_id=tool.id,
            status=status,
            price=Decimal(price) if price is not None else tool.price,
            created_at=created_at or datetime(2025, 1, 1, 10, 0),
            **kwargs,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    return _make


@pytest.fixture
def login(client):
    """Attach a session cookie for `user` to the test client."""

    def _login(user):
        client.cookies.set(config.SESSION_COOKIE_NAME, create_session_token(user.id))
        return client

    return _login
