"""
Unit tests for user_service branches that need no database.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from backend.app.errors import AppError, ErrorCode
from backend.app.services.user_service import UserService, _conflict_from_integrity_error


def _integrity_error(detail: str) -> IntegrityError:
    return IntegrityError("UPDATE users ...", {}, Exception(detail))


# ═══════════════════════════════════════════════════════════════════════════
# Constraint → field mapping
# ═══════════════════════════════════════════════════════════════════════════

class TestConflictMapping:

    @pytest.mark.parametrize("detail", [
        'duplicate key value violates unique constraint "uq_users_username"',
        "UNIQUE constraint failed: users.username",
    ])
    def test_username_violation(self, detail):
        err = _conflict_from_integrity_error(_integrity_error(detail))
        assert err.code == ErrorCode.DUPLICATE_USERNAME
        assert err.http_status == 400
        assert err.field == "username"

    @pytest.mark.parametrize("detail", [
        'duplicate key value violates unique constraint "uq_users_email"',
        "UNIQUE constraint failed: users.email",
    ])
    def test_email_violation(self, detail):
        err = _conflict_from_integrity_error(_integrity_error(detail))
        assert err.code == ErrorCode.DUPLICATE_EMAIL
        assert err.field == "email"

    def test_unrelated_violation_is_reraised(self):
        exc = _integrity_error('null value in column "name" violates not-null constraint')
        with pytest.raises(IntegrityError):
            _conflict_from_integrity_error(exc)


# ═══════════════════════════════════════════════════════════════════════════
# Credential changes
# ═══════════════════════════════════════════════════════════════════════════

class TestCredentialChecks:

    def _service(self, user, verify_results):
        hasher = MagicMock()
        hasher.verify.side_effect = verify_results
        service = UserService(hasher, revoke_tokens=MagicMock())
        service.get_by_id = MagicMock(return_value=user)
        return service

    def test_wrong_password_raises_before_any_revocation(self):
        user = SimpleNamespace(id="user-1", password_hash="hashed")
        service = self._service(user, [False])

        with pytest.raises(AppError) as exc_info:
            service.change_email("user-1", "WrongPass1", "new@example.com", MagicMock())

        assert exc_info.value.code == ErrorCode.PASSWORD_INCORRECT
        assert exc_info.value.field == "password"
        service.revoke_tokens.assert_not_called()

    def test_unchanged_password_raises_before_any_revocation(self):
        user = SimpleNamespace(id="user-1", password_hash="hashed")
        service = self._service(user, [True, True])

        with pytest.raises(AppError) as exc_info:
            service.change_password("user-1", "Password1", "Password1", MagicMock())

        assert exc_info.value.code == ErrorCode.PASSWORD_UNCHANGED
        service.revoke_tokens.assert_not_called()

    def test_unknown_user_raises_user_not_found(self):
        service = self._service(None, [])

        with pytest.raises(AppError) as exc_info:
            service.change_username("ghost", "Password1", "newname", MagicMock())

        assert exc_info.value.code == ErrorCode.USER_NOT_FOUND
        assert exc_info.value.http_status == 404

    def test_change_returns_revoked_count(self):
        user = SimpleNamespace(id="user-1", password_hash="hashed")
        service = self._service(user, [True])
        service.revoke_tokens.return_value = 3
        session = MagicMock()

        assert service.change_username("user-1", "Password1", "newname", session) == 3
        service.revoke_tokens.assert_called_once_with("user-1", session)
        session.execute.assert_called_once()
