"""
services/user_service.py — user accounts: lookup, creation, profile and
credential mutations.

Lookups return `User | None` for active (non-deleted) users; callers branch on
the value instead of catching a not-found exception.

Credential mutations (email, username, password) and the soft delete bump
token_version in SQL and revoke every refresh token of the user inside the
same unit of work. If either statement fails the route never commits and the
error handler rolls the session back, so the change and the revocation are
applied together or not at all.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import Role, User
from backend.app.services.password_hasher import PasswordHasher


# ── Private helpers ────────────────────────────────────────────────────────

def _conflict_from_integrity_error(exc: IntegrityError) -> AppError:
    """
    Maps a unique-constraint violation on users to a field-scoped 400.

    Duplicates are detected from the storage constraint, never pre-checked,
    so two concurrent registrations cannot both pass a lookup and both insert.
    Postgres reports the constraint name (uq_users_username), SQLite the
    column (users.username); both are matched.
    """
    detail = str(exc.orig)
    if "uq_users_username" in detail or "users.username" in detail:
        return AppError(
            ErrorCode.DUPLICATE_USERNAME,
            "username already exists",
            400,
            field="username",
        )
    if "uq_users_email" in detail or "users.email" in detail:
        return AppError(
            ErrorCode.DUPLICATE_EMAIL,
            "email already exists",
            400,
            field="email",
        )
    raise exc


def _user_not_found(user_id: str) -> AppError:
    return AppError(ErrorCode.USER_NOT_FOUND, f"User {user_id} not found.", 404)


class UserService:

    def __init__(
            self,
            hasher: PasswordHasher,
            revoke_tokens: Callable[[str, Session], int],
    ) -> None:
        """
        revoke_tokens(user_id, session) revokes every refresh token of the
        user and returns how many; build_services() passes
        SessionService.revoke_all_by_user_id.
        """
        self.hasher = hasher
        self.revoke_tokens = revoke_tokens

    # ── Lookups ────────────────────────────────────────────────────────────

    def get_by_id(self, user_id: str, session: Session) -> User | None:
        return session.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        ).scalar_one_or_none()

    def get_by_username(self, username: str, session: Session) -> User | None:
        return session.execute(
            select(User).where(User.username == username, User.deleted_at.is_(None))
        ).scalar_one_or_none()

    def get_profile(self, user_id: str, session: Session) -> User:
        user = self.get_by_id(user_id, session)
        if user is None:
            raise _user_not_found(user_id)
        return user

    def list_users(self, session: Session, role: Role | None = None) -> list[User]:
        stmt = select(User).where(User.deleted_at.is_(None))
        if role is not None:
            stmt = stmt.where(User.role == role)
        return list(session.execute(stmt.order_by(User.created_at.asc())).scalars().all())

    # ── Creation / profile ─────────────────────────────────────────────────

    def create(
            self,
            name: str,
            username: str,
            email: str,
            password: str,
            session: Session,
            role: Role = Role.USER,
    ) -> User:
        """
        Hashes the password and inserts the user.

        Raises:
          AppError(DUPLICATE_USERNAME, 400) / AppError(DUPLICATE_EMAIL, 400)
        """
        user = User(
            name=name,
            username=username,
            email=email,
            password_hash=self.hasher.hash(password),
            role=role,
        )
        session.add(user)
        try:
            session.flush()
        except IntegrityError as exc:
            raise _conflict_from_integrity_error(exc)
        return user

    def edit_profile(self, user_id: str, name: str, session: Session) -> User:
        user = self.get_profile(user_id, session)
        user.name = name
        session.flush()
        return user

    def delete_user(self, user_id: str, session: Session) -> int:
        """
        Soft-deletes the user and revokes all of their refresh tokens.
        Returns the number of revoked tokens.
        """
        self.get_profile(user_id, session)
        revoked = self.revoke_tokens(user_id, session)
        session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                deleted_at=datetime.now(timezone.utc),
                token_version=User.token_version + 1,
            )
        )
        return revoked

    # ── Credential mutations ───────────────────────────────────────────────

    def change_email(self, user_id: str, password: str, email: str, session: Session) -> int:
        """
        Raises:
          AppError(USER_NOT_FOUND, 404)
          AppError(PASSWORD_INCORRECT, 400)
          AppError(DUPLICATE_EMAIL, 400)
        Returns the number of revoked refresh tokens.
        """
        self._require_password(user_id, password, session)
        return self._mutate_credentials(user_id, session, email=email)

    def change_username(self, user_id: str, password: str, username: str, session: Session) -> int:
        """
        Raises:
          AppError(USER_NOT_FOUND, 404)
          AppError(PASSWORD_INCORRECT, 400)
          AppError(DUPLICATE_USERNAME, 400)
        Returns the number of revoked refresh tokens.
        """
        self._require_password(user_id, password, session)
        return self._mutate_credentials(user_id, session, username=username)

    def change_password(
            self,
            user_id: str,
            old_password: str,
            new_password: str,
            session: Session,
    ) -> int:
        """
        Raises:
          AppError(USER_NOT_FOUND, 404)
          AppError(PASSWORD_INCORRECT, 400) — old password does not match
          AppError(PASSWORD_UNCHANGED, 400) — new password equals the old one
        Returns the number of revoked refresh tokens.
        """
        user = self._require_password(
            user_id, old_password, session, message="old password incorrect"
        )
        if self.hasher.verify(new_password, user.password_hash):
            raise AppError(
                ErrorCode.PASSWORD_UNCHANGED,
                "new password cannot be the same as the old password",
                400,
                field="new_password",
            )
        return self._mutate_credentials(
            user_id, session, password_hash=self.hasher.hash(new_password)
        )

    def _require_password(
            self,
            user_id: str,
            password: str,
            session: Session,
            message: str = "password incorrect",
    ) -> User:
        user = self.get_profile(user_id, session)
        if not self.hasher.verify(password, user.password_hash):
            raise AppError(ErrorCode.PASSWORD_INCORRECT, message, 400, field="password")
        return user

    def _mutate_credentials(self, user_id: str, session: Session, **values) -> int:
        # Revocation and the credential update share the caller's transaction.
        revoked = self.revoke_tokens(user_id, session)
        try:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(token_version=User.token_version + 1, **values)
            )
        except IntegrityError as exc:
            raise _conflict_from_integrity_error(exc)
        return revoked
