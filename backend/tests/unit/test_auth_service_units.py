"""
Unit tests for SessionService with the store, hasher and user lookups mocked.

What this file proves:
  - authenticate() fails with one generic error for unknown user and wrong password
  - refresh() revokes the old token (conditionally) before storing the new one,
    and stores nothing when the revoke fails
  - store errors propagate unchanged
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, call

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import Role
from backend.app.services.auth_service import SessionService
from backend.app.services.token_codec import JWTSignPayload, TokenCodec, TokenKind


def _codec() -> TokenCodec:
    return TokenCodec(
        access_secret="unit-access-secret",
        access_ttl=timedelta(minutes=1),
        refresh_secret="unit-refresh-secret",
        refresh_ttl=timedelta(minutes=5),
    )


def _payload() -> JWTSignPayload:
    return JWTSignPayload(
        id="user-1",
        name="Alice",
        username="alice",
        email="alice@example.com",
        role=Role.USER,
        token_version=0,
    )


def _user(**overrides):
    values = {
        "id": "user-1",
        "name": "Alice",
        "username": "alice",
        "email": "alice@example.com",
        "role": Role.USER,
        "token_version": 3,
        "password_hash": "hashed",
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 2, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def service():
    return SessionService(
        codec=_codec(),
        store=MagicMock(),
        hasher=MagicMock(),
        users=MagicMock(),
    )


# ═══════════════════════════════════════════════════════════════════════════
# authenticate
# ═══════════════════════════════════════════════════════════════════════════

class TestAuthenticate:

    def test_returns_payload_for_valid_credentials(self, service):
        service.users.get_by_username.return_value = _user()
        service.hasher.verify.return_value = True

        payload = service.authenticate("alice", "Password1", session=MagicMock())

        assert payload.id == "user-1"
        assert payload.token_version == 3
        assert payload.role == Role.USER
        service.hasher.verify.assert_called_once_with("Password1", "hashed")

    def test_unknown_user_raises_invalid_credentials(self, service):
        service.users.get_by_username.return_value = None

        with pytest.raises(AppError) as exc_info:
            service.authenticate("ghost", "Password1", session=MagicMock())

        assert exc_info.value.code == ErrorCode.INVALID_CREDENTIALS
        assert exc_info.value.http_status == 401
        service.hasher.verify.assert_not_called()

    def test_wrong_password_raises_same_error_as_unknown_user(self, service):
        service.users.get_by_username.return_value = None
        with pytest.raises(AppError) as unknown:
            service.authenticate("ghost", "Password1", session=MagicMock())

        service.users.get_by_username.return_value = _user()
        service.hasher.verify.return_value = False
        with pytest.raises(AppError) as wrong:
            service.authenticate("alice", "WrongPass1", session=MagicMock())

        assert unknown.value.to_dict() == wrong.value.to_dict()
        assert unknown.value.http_status == wrong.value.http_status


# ═══════════════════════════════════════════════════════════════════════════
# login / refresh / logout
# ═══════════════════════════════════════════════════════════════════════════

class TestTokens:

    def test_login_stores_issued_refresh_token(self, service):
        session = MagicMock()
        pair = service.login(_payload(), session)

        service.store.add.assert_called_once_with("user-1", pair.refresh, pair.expires_at, session)

    def test_login_issues_tokens_of_each_kind(self, service):
        pair = service.login(_payload(), MagicMock())

        assert service.codec.decode(pair.access, TokenKind.ACCESS).payload == _payload()
        decoded = service.codec.decode(pair.refresh, TokenKind.REFRESH)
        assert decoded.expires_at == pair.expires_at

    def test_refresh_revokes_old_token_before_adding_new(self, service):
        session = MagicMock()
        pair = service.refresh("old-token", _payload(), session)

        assert service.store.method_calls == [
            call.revoke("old-token", session, only_active=True),
            call.add("user-1", pair.refresh, pair.expires_at, session),
        ]

    def test_refresh_propagates_revoke_failure_and_adds_nothing(self, service):
        service.store.revoke.side_effect = AppError(
            ErrorCode.REFRESH_TOKEN_NOT_FOUND, "invalid or expired token", 403
        )

        with pytest.raises(AppError) as exc_info:
            service.refresh("reused-token", _payload(), MagicMock())

        assert exc_info.value.code == ErrorCode.REFRESH_TOKEN_NOT_FOUND
        service.store.add.assert_not_called()

    def test_refresh_propagates_add_conflict(self, service):
        service.store.add.side_effect = AppError(
            ErrorCode.REFRESH_TOKEN_CONFLICT, "conflict", 500
        )

        with pytest.raises(AppError) as exc_info:
            service.refresh("old-token", _payload(), MagicMock())

        assert exc_info.value.code == ErrorCode.REFRESH_TOKEN_CONFLICT

    def test_logout_revokes_unconditionally(self, service):
        session = MagicMock()
        service.logout("some-token", session)
        service.store.revoke.assert_called_once_with("some-token", session)

    def test_register_creates_user_role_account(self, service):
        service.users.create.return_value = _user(id="new-id")
        session = MagicMock()

        user_id = service.register("Alice", "alice", "alice@example.com", "Password1", session)

        assert user_id == "new-id"
        assert service.users.create.call_args.kwargs["role"] == Role.USER

    def test_revoke_all_by_user_id_returns_store_count(self, service):
        service.store.revoke_all_by_user_id.return_value = 2
        session = MagicMock()

        assert service.revoke_all_by_user_id("user-1", session) == 2
        service.store.revoke_all_by_user_id.assert_called_once_with("user-1", session)
