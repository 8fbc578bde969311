"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against TestingConfig: in-memory SQLite unless TEST_DATABASE_URL
    points at a real PostgreSQL database.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)     → asserts 201
  - login(client, ...)        → {"access": "...", "refresh": "..."}
  - auth_headers(token)       → {"Authorization": "Bearer <token>"}
  - create_user(app, ...)     → user id, inserted directly (any role)

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import delete

from backend.app import create_app
from backend.app.container import get_services
from backend.app.extensions import db as _db
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.user import Role, User

PASSWORD = "Password1"


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
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
    """
    Deletes all rows between tests.

    authentications rows go first; the CASCADE would remove them with their
    users on PostgreSQL, but SQLite does not enforce foreign keys by default.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test
        _db.session.execute(delete(RefreshToken))
        _db.session.execute(delete(User))
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client and cookie jar."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = PASSWORD,
    name: str | None = None,
):
    """Registers a USER account and returns the HTTP response (asserted 201)."""
    if email is None:
        email = f"{username}@test.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={
            "name": name or username.capitalize(),
            "username": username,
            "email": email,
            "password": password,
        },
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp


def login(client, username: str, password: str = PASSWORD) -> dict:
    """
    Logs in a user and returns both tokens.
    Returns: {"access": "...", "refresh": "..."}

    The refresh token is also kept in the client's cookie jar, so follow-up
    requests on the same client carry it automatically.
    """
    resp = client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 201, f"login failed: {resp.get_json()}"
    cookie = client.get_cookie("refresh")
    assert cookie is not None, "login did not set the refresh cookie"
    return {
        "access": resp.get_json()["data"]["access"],
        "refresh": cookie.value,
    }


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def create_user(
    app,
    username: str,
    role: Role = Role.USER,
    password: str = PASSWORD,
) -> str:
    """
    Inserts a user of any role through UserService and commits.
    Registration over HTTP only ever creates USER accounts.
    """
    with app.app_context():
        user = get_services().users.create(
            name=username.capitalize(),
            username=username,
            email=f"{username}@test.com",
            password=password,
            role=role,
            session=_db.session,
        )
        _db.session.commit()
        return user.id


def token_version_of(app, user_id: str) -> int:
    with app.app_context():
        return _db.session.get(User, user_id).token_version
