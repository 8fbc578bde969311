"""
services/token_version_guard.py — stale-token rejection.

JWTs cannot be revoked by signature alone. Every token embeds the user's
token_version at signing time; credential changes bump the stored value.
Comparing the two on every authenticated request turns "log out everywhere"
into one integer comparison, with no access-token denylist.

The user row is re-read on each call. There is no cache, so a credential
change is observed by the first request that starts after its commit.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from backend.app.errors import (
    STALE_TOKEN_MESSAGE,
    UNAUTHORIZED_MESSAGE,
    AppError,
    ErrorCode,
)
from backend.app.models.user import User
from backend.app.services.token_codec import JWTSignPayload
from backend.app.services.user_service import UserService


class TokenVersionGuard:

    def __init__(self, users: UserService) -> None:
        self.users = users

    def check(self, payload: JWTSignPayload, session: Session) -> User:
        """
        Returns the current user row when the token is still current.

        Raises:
          AppError(TOKEN_INVALID, 401)       — user deleted or never existed
          AppError(TOKEN_VERSION_STALE, 401) — version bumped since signing
        """
        user = self.users.get_by_id(payload.id, session)
        if user is None:
            raise AppError(ErrorCode.TOKEN_INVALID, UNAUTHORIZED_MESSAGE, 401)

        if payload.token_version != user.token_version:
            raise AppError(ErrorCode.TOKEN_VERSION_STALE, STALE_TOKEN_MESSAGE, 401)

        return user
