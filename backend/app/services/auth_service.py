"""
services/auth_service.py — session lifecycle: register, authenticate, login,
refresh, logout.

Responsibilities:
  - Registration (delegates the insert to UserService)
  - Credential verification with a single, generic failure
  - Access + refresh token issuance (TokenCodec)
  - Refresh token persistence, rotation and revocation (RefreshTokenStore)

Refresh token states:
  issued → valid → revoked. No token ever returns to valid.

Token design:
  - Access token: JWT signed with JWT_ACCESS_SECRET_KEY, short TTL.
  - Refresh token: JWT signed with JWT_REFRESH_SECRET_KEY, long TTL, and
    persisted in the authentications table. Every rotation revokes the old
    row and inserts the new one in the same unit of work, so a refresh token
    is redeemable at most once.

Layer rules:
  - No Flask imports. The service is constructed once per app by
    build_services() and reused across requests; it holds no per-request state.
  - Store and codec errors propagate as typed AppErrors. Nothing is caught and
    swallowed here; a failure inside refresh() leaves both the revoke and the
    insert uncommitted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from backend.app.errors import INVALID_CREDENTIALS_MESSAGE, AppError, ErrorCode
from backend.app.models.refresh_token import RefreshToken
from backend.app.models.user import Role
from backend.app.services.password_hasher import PasswordHasher
from backend.app.services.refresh_token_store import RefreshTokenStore
from backend.app.services.token_codec import JWTSignPayload, TokenCodec, TokenKind
from backend.app.services.user_service import UserService


@dataclass(frozen=True)
class TokenPair:
    access: str
    refresh: str
    expires_at: datetime


class SessionService:

    def __init__(
            self,
            codec: TokenCodec,
            store: RefreshTokenStore,
            hasher: PasswordHasher,
            users: UserService,
    ) -> None:
        self.codec = codec
        self.store = store
        self.hasher = hasher
        self.users = users

    # ── Accounts ───────────────────────────────────────────────────────────

    def register(
            self,
            name: str,
            username: str,
            email: str,
            password: str,
            session: Session,
    ) -> str:
        """
        Creates a USER account. Field shape is validated by RegisterSchema
        before this is called.

        Raises:
          AppError(DUPLICATE_USERNAME, 400) / AppError(DUPLICATE_EMAIL, 400)

        Returns the new user id.
        """
        user = self.users.create(
            name=name,
            username=username,
            email=email,
            password=password,
            role=Role.USER,
            session=session,
        )
        return user.id

    def authenticate(self, username: str, password: str, session: Session) -> JWTSignPayload:
        """
        Checks a username/password pair.

        Raises:
          AppError(INVALID_CREDENTIALS, 401) — unknown username or wrong
            password. Both cases produce the same code and message so the
            response does not reveal which usernames exist.
        """
        user = self.users.get_by_username(username, session)

        if user is None or not self.hasher.verify(password, user.password_hash):
            raise AppError(ErrorCode.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE, 401)

        return JWTSignPayload.from_user(user)

    # ── Tokens ─────────────────────────────────────────────────────────────

    def login(self, payload: JWTSignPayload, session: Session) -> TokenPair:
        """
        Issues a fresh access/refresh pair for an authenticated payload and
        persists the refresh token. The only path that creates a refresh
        token row without revoking another.
        """
        pair = self._issue(payload)
        self.store.add(payload.id, pair.refresh, pair.expires_at, session)
        return pair

    def refresh(self, old_refresh: str, payload: JWTSignPayload, session: Session) -> TokenPair:
        """
        Rotates a refresh token.

        The conditional revoke of `old_refresh` and the insert of its
        successor are flushed on the same session and committed together by
        the route. If the old token was already revoked (a replay, or a
        concurrent rotation that won the row) the revoke matches nothing and
        raises before anything is inserted.

        Raises:
          AppError(REFRESH_TOKEN_NOT_FOUND, 403) — old token unknown or revoked
        """
        pair = self._issue(payload)
        self.store.revoke(old_refresh, session, only_active=True)
        self.store.add(payload.id, pair.refresh, pair.expires_at, session)
        return pair

    def logout(self, refresh: str, session: Session) -> None:
        """
        Revokes `refresh`.

        Raises:
          AppError(REFRESH_TOKEN_NOT_FOUND, 403) — token never issued. An
            already-revoked token is revoked again without error.
        """
        self.store.revoke(refresh, session)

    def get(self, refresh: str, session: Session) -> RefreshToken:
        """
        Liveness check independent of the JWT signature: the token must be
        persisted, not revoked and not expired.

        Raises:
          AppError(REFRESH_TOKEN_NOT_FOUND, 403)
        """
        return self.store.get(refresh, session)

    def revoke_all_by_user_id(self, user_id: str, session: Session) -> int:
        """
        Revokes every live refresh token of the user; used by credential
        changes and account deletion. Returns how many were revoked.
        """
        return self.store.revoke_all_by_user_id(user_id, session)

    # ── Private helpers ────────────────────────────────────────────────────

    def _issue(self, payload: JWTSignPayload) -> TokenPair:
        access = self.codec.sign(payload, TokenKind.ACCESS)
        refresh = self.codec.sign(payload, TokenKind.REFRESH)
        decoded = self.codec.decode(refresh, TokenKind.REFRESH)
        return TokenPair(access=access, refresh=refresh, expires_at=decoded.expires_at)
