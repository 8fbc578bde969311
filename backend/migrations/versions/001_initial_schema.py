"""Initial schema — users, authentications, role enum.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  1. PostgreSQL enum type role_enum
  2. users
  3. authentications (refresh tokens) and its user index

ON DELETE policies:
  authentications.user_id → CASCADE (token owned by user). Users are normally
  soft-deleted (deleted_at), so the cascade only fires on a hard delete.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    """
    Apply the initial schema.

    The enum type is created via op.execute() so the SQL is explicit and
    reviewable; the column references it with create_type=False.
    """

    # ── Step 1: role enum ──────────────────────────────────────────────────

    op.execute("""
        CREATE TYPE role_enum AS ENUM ('SUPER', 'ADMIN', 'USER')
    """)

    # ── Step 2: users ──────────────────────────────────────────────────────
    # username / email UNIQUE under named constraints; user_service maps a
    # violation back to the field through these names.

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            postgresql.ENUM("SUPER", "ADMIN", "USER", name="role_enum", create_type=False),
            nullable=False,
            server_default="USER",
        ),
        sa.Column(
            "token_version",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("token_version >= 0", name="ck_users_token_version_nonnegative"),
    )

    # ── Step 3: authentications ────────────────────────────────────────────
    # Append-only except for `revoked`.

    op.create_table(
        "authentications",
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_authentications_user"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "revoked",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("token", name="pk_authentications"),
    )

    op.create_index(
        "ix_authentications_user_id",
        "authentications",
        ["user_id"],
    )


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.
    Local development reset only; production uses corrective migrations.
    """
    op.drop_index("ix_authentications_user_id", table_name="authentications")

    op.drop_table("authentications")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS role_enum")
