"""
services/refresh_token_store.py — persistence of issued refresh tokens.

The store owns the `authentications` table. It never deletes rows; revocation
flips `revoked` to TRUE and is irreversible.

Failure semantics:
  Every operation addressed at a single token fails loudly when that token is
  unknown (REFRESH_TOKEN_NOT_FOUND, 403). Callers rely on this to detect reuse
  of an already-rotated or forged token, so a miss is never a silent no-op.

Layer rules:
  - No Flask imports. Every method takes the SQLAlchemy session.
  - Only flush here; the route commits the unit of work.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import FlushError

from backend.app.errors import AppError, ErrorCode
from backend.app.models.refresh_token import RefreshToken


def _not_found() -> AppError:
    return AppError(
        ErrorCode.REFRESH_TOKEN_NOT_FOUND,
        "invalid or expired token",
        403,
    )


class RefreshTokenStore:

    def add(
            self,
            user_id: str,
            token: str,
            expires_at: datetime,
            session: Session,
    ) -> RefreshToken:
        """
        Inserts a new, non-revoked record.

        Raises:
          AppError(REFRESH_TOKEN_CONFLICT, 500) — the token value already
            exists. The existing row is left untouched.
        """
        record = RefreshToken(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            revoked=False,
        )
        session.add(record)
        try:
            # flush so a primary-key collision surfaces here, not at commit
            session.flush()
        except (IntegrityError, FlushError):
            raise AppError(
                ErrorCode.REFRESH_TOKEN_CONFLICT,
                "A refresh token with the same value already exists.",
                500,
            )
        return record

    def get(self, token: str, session: Session) -> RefreshToken:
        """
        Returns the live record for `token`.

        Raises:
          AppError(REFRESH_TOKEN_NOT_FOUND, 403) — never issued, revoked,
            or past its expires_at.
        """
        now = datetime.now(timezone.utc)
        record = session.execute(
            select(RefreshToken).where(
                RefreshToken.token == token,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > now,
            )
        ).scalar_one_or_none()

        if record is None:
            raise _not_found()
        return record

    def revoke(self, token: str, session: Session, only_active: bool = False) -> None:
        """
        Marks `token` as revoked.

        With only_active=False the update matches the row whatever its state,
        so revoking twice leaves revoked=TRUE and succeeds both times.

        With only_active=True the update is conditional on revoked=FALSE. The
        database serialises concurrent updates of the same row, so of two
        callers racing on one token exactly one matches; the other sees zero
        affected rows and fails. Rotation uses this form.

        Raises:
          AppError(REFRESH_TOKEN_NOT_FOUND, 403) — no row matched.
        """
        stmt = update(RefreshToken).where(RefreshToken.token == token)
        if only_active:
            stmt = stmt.where(RefreshToken.revoked.is_(False))
        stmt = stmt.values(revoked=True).execution_options(synchronize_session=False)

        result = session.execute(stmt)
        if result.rowcount == 0:
            raise _not_found()

    def revoke_all_by_user_id(self, user_id: str, session: Session) -> int:
        """Revokes every non-revoked token of the user. Returns how many."""
        result = session.execute(
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
