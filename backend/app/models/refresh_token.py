"""
models/refresh_token.py — persisted refresh tokens ("authentications" table).

No business logic. No imports from services or routes.

Rows are append-only: the application never deletes them, it only flips
`revoked` to TRUE (logout, rotation, credential change). A row is valid only
while revoked is FALSE and expires_at is in the future.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class RefreshToken(db.Model):
    __tablename__ = "authentications"

    # The signed refresh JWT itself. Each token embeds iat and a random jti,
    # so two issued tokens never collide.
    token: Mapped[str] = mapped_column(Text, primary_key=True)

    # ON DELETE CASCADE: token is destroyed when its owning user is deleted.
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    revoked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    user: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="refresh_tokens",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<RefreshToken user_id={self.user_id} "
            f"expires_at={self.expires_at} "
            f"revoked={self.revoked}>"
        )
