"""
tests/integration/test_cli.py — `flask seed-super`.
"""

from __future__ import annotations

import pytest

from backend.app.container import get_services
from backend.app.extensions import db
from backend.app.models.user import Role


@pytest.fixture
def super_env(monkeypatch):
    monkeypatch.setenv("SUPER_NAME", "Root")
    monkeypatch.setenv("SUPER_USERNAME", "root")
    monkeypatch.setenv("SUPER_EMAIL", "root@test.com")
    monkeypatch.setenv("SUPER_PASSWORD", "RootPassword1")


def test_seed_super_creates_super_user(app, super_env):
    result = app.test_cli_runner().invoke(args=["seed-super"])

    assert result.exit_code == 0
    assert "Created super user 'root'" in result.output
    with app.app_context():
        user = get_services().users.get_by_username("root", db.session)
        assert user is not None
        assert user.role == Role.SUPER
        assert get_services().hasher.verify("RootPassword1", user.password_hash)


def test_seed_super_is_idempotent(app, super_env):
    runner = app.test_cli_runner()
    runner.invoke(args=["seed-super"])
    result = runner.invoke(args=["seed-super"])

    assert result.exit_code == 0
    assert "already exists" in result.output
    with app.app_context():
        assert len(get_services().users.list_users(db.session, role=Role.SUPER)) == 1


def test_seeded_super_can_log_in(app, client, super_env):
    app.test_cli_runner().invoke(args=["seed-super"])
    resp = client.post("/api/v1/auth/login", json={
        "username": "root", "password": "RootPassword1",
    })
    assert resp.status_code == 201
