"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against TEST_DATABASE_URL, or in-memory SQLite when it is unset.
    Flask-SQLAlchemy gives in-memory SQLite a single shared connection, so
    every session in a test sees the same data.
  - The app is created once per session using create_app("testing") and the
    tables are created once with db.create_all().
  - Between tests, all rows are deleted in FK-safe order.
  - `services` swaps in a ServiceRegistry whose dispatcher records events,
    so tests can assert on notifications without a log capture.

Helper functions (not fixtures) build rows directly through the ORM:
  - make_user(session, name)              → User
  - make_group(session, name)             → Group
  - make_tenant(session, user, group)     → Tenant
  - make_household(session, *names)       → (Group, [Tenant, ...])
  - token_for(user_id)                    → signed bearer token
  - auth_headers(token)                   → {"Authorization": "Bearer <token>"}
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlalchemy import delete

from roomledger.app import create_app
from roomledger.app.extensions import db as _db
from roomledger.app.models.expense import Expense
from roomledger.app.models.group import Group
from roomledger.app.models.notification import Notification
from roomledger.app.models.split import Split
from roomledger.app.models.tenant import Tenant
from roomledger.app.models.user import User
from roomledger.app.registry import EXTENSION_KEY, build_services
from roomledger.app.services.notification_service import NotificationDispatch


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes all rows after every test, children before parents."""
    yield

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        for model in (Notification, Split, Expense, Tenant, Group, User):
            _db.session.execute(delete(model))
        _db.session.commit()
        _db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    """An app context for tests that call services directly."""
    with app.app_context():
        yield _db.session
        _db.session.remove()


# ═══════════════════════════════════════════════════════════════════════════
# Notification recording
# ═══════════════════════════════════════════════════════════════════════════

class RecordingDispatch(NotificationDispatch):
    """Keeps every event; optionally fails like a broken backend."""

    def __init__(self) -> None:
        self.events = []
        self.error: Exception | None = None

    def notify(self, event) -> None:
        if self.error is not None:
            raise self.error
        self.events.append(event)

    def of_kind(self, kind) -> list:
        return [e for e in self.events if e.kind == kind]


@pytest.fixture
def recorder():
    return RecordingDispatch()


@pytest.fixture
def services(app, recorder):
    """
    Replaces the app's ServiceRegistry with one that records notifications.
    HTTP requests made during the test go through the same registry.
    """
    original = app.extensions[EXTENSION_KEY]
    registry = build_services(_db.session, recorder)
    app.extensions[EXTENSION_KEY] = registry
    yield registry
    app.extensions[EXTENSION_KEY] = original


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def make_user(session, name: str = "Alice") -> User:
    user = User(full_name=name, email=f"{name.lower().replace(' ', '.')}@example.com")
    session.add(user)
    session.commit()
    return user


def make_group(session, name: str = "Flat 4B") -> Group:
    group = Group(name=name)
    session.add(group)
    session.commit()
    return group


def make_tenant(session, user: User, group: Group | None = None) -> Tenant:
    tenant = Tenant(user_id=user.id, group_id=group.id if group else None)
    session.add(tenant)
    session.commit()
    return tenant


def make_household(session, *names: str, group_name: str = "Flat 4B"):
    """Creates a group and one user + tenant per name, all in that group."""
    group = make_group(session, group_name)
    tenants = [make_tenant(session, make_user(session, n), group) for n in names]
    return group, tenants


def token_for(user_id: int, expires_in: timedelta = timedelta(minutes=15)) -> str:
    """Signs a token the way the account service would."""
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"sub": str(user_id), "iat": now, "exp": now + expires_in},
        "testing-secret",
        algorithm="HS256",
    )


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
