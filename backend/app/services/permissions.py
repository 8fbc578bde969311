"""
services/permissions.py — role → permission mapping.

Roles form a closed enum (models.user.Role). Endpoints never test role
membership directly; they name the Permission they need and
`has_permission` answers from the table below.
"""

from __future__ import annotations

import enum

from backend.app.models.user import Role


class Permission(str, enum.Enum):
    VIEW_USERS    = "view_users"
    DELETE_USERS  = "delete_users"
    MANAGE_ADMINS = "manage_admins"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SUPER: frozenset(Permission),
    Role.ADMIN: frozenset({Permission.VIEW_USERS, Permission.DELETE_USERS}),
    Role.USER:  frozenset(),
}


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS[Role(role)]
