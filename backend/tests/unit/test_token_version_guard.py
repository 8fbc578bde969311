"""
Unit tests for TokenVersionGuard with the user lookup mocked.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import Role
from backend.app.services.token_codec import JWTSignPayload
from backend.app.services.token_version_guard import TokenVersionGuard


def _payload(token_version: int) -> JWTSignPayload:
    return JWTSignPayload(
        id="user-1",
        name="Alice",
        username="alice",
        email="alice@example.com",
        role=Role.USER,
        token_version=token_version,
    )


def _guard(user) -> TokenVersionGuard:
    users = MagicMock()
    users.get_by_id.return_value = user
    return TokenVersionGuard(users)


def test_matching_version_returns_current_user():
    user = SimpleNamespace(id="user-1", token_version=2)
    assert _guard(user).check(_payload(2), session=MagicMock()) is user


def test_bumped_version_raises_stale():
    user = SimpleNamespace(id="user-1", token_version=3)
    with pytest.raises(AppError) as exc_info:
        _guard(user).check(_payload(2), session=MagicMock())

    err = exc_info.value
    assert err.code == ErrorCode.TOKEN_VERSION_STALE
    assert err.http_status == 401
    assert err.message == "token expired, please log in again."


def test_newer_token_than_row_is_also_stale():
    user = SimpleNamespace(id="user-1", token_version=0)
    with pytest.raises(AppError) as exc_info:
        _guard(user).check(_payload(1), session=MagicMock())
    assert exc_info.value.code == ErrorCode.TOKEN_VERSION_STALE


def test_missing_user_raises_token_invalid():
    with pytest.raises(AppError) as exc_info:
        _guard(None).check(_payload(0), session=MagicMock())

    err = exc_info.value
    assert err.code == ErrorCode.TOKEN_INVALID
    assert err.http_status == 401


def test_user_is_looked_up_by_id():
    guard = _guard(SimpleNamespace(id="user-1", token_version=0))
    session = MagicMock()
    guard.check(_payload(0), session)
    guard.users.get_by_id.assert_called_once_with("user-1", session)
