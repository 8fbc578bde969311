"""
routes/users.py — profile, credential changes and user administration.

Every credential change (email, username, password) bumps the user's
token_version and revokes all of their refresh tokens in the same commit, so
every access and refresh token issued before the change stops working. The
response clears the refresh cookie; the client must log in again.

Endpoints (url_prefix=/api/v1/users):
  GET    /users/profile   → 200
  PUT    /users/profile   → 200
  PATCH  /users/email     → 200  (password + live refresh cookie)
  PATCH  /users/username  → 200  (password + live refresh cookie)
  PATCH  /users/password  → 200  (old + new password)
  GET    /users           → 200  (VIEW_USERS)
  DELETE /users/<id>      → 200  (DELETE_USERS; MANAGE_ADMINS for non-USER targets)
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.container import get_services
from backend.app.errors import AppError, ErrorCode
from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_auth, require_permission
from backend.app.models.user import Role
from backend.app.schemas.user_schema import (
    ChangeEmailSchema,
    ChangePasswordSchema,
    ChangeUsernameSchema,
    EditProfileSchema,
    UserProfileSchema,
)
from backend.app.services.permissions import Permission, has_permission
from backend.utils.cookies import clear_refresh_cookie, refresh_cookie_name

users_bp = Blueprint("users", __name__)


def _require_live_refresh_cookie() -> None:
    """
    The caller's refresh token must still be live and belong to them before
    an email or username change. Raises REFRESH_TOKEN_NOT_FOUND / FORBIDDEN (403)
    and clears the unusable cookie.
    """
    raw_token = request.cookies.get(refresh_cookie_name(), "")
    try:
        record = get_services().sessions.get(raw_token, db.session)
        if record.user_id != g.user_id:
            raise AppError(
                ErrorCode.FORBIDDEN,
                "The refresh token does not belong to the authenticated user.",
                403,
            )
    except AppError:
        g.clear_refresh_cookie = True
        raise


def _credentials_changed(what: str, revoked: int):
    db.session.commit()
    current_app.logger.info(
        "User %s changed %s; revoked %d refresh token(s)", g.user_id, what, revoked
    )
    return clear_refresh_cookie(jsonify({"status": "success"}))


@users_bp.route("/profile", methods=["GET"])
@require_auth
def get_profile():
    user = get_services().users.get_profile(g.user_id, db.session)
    return jsonify({"status": "success", "data": UserProfileSchema().dump(user)}), 200


@users_bp.route("/profile", methods=["PUT"])
@require_auth
def edit_profile():
    data = EditProfileSchema().load(request.get_json(silent=True) or {})
    get_services().users.edit_profile(g.user_id, data["name"], db.session)
    db.session.commit()
    return jsonify({"status": "success"}), 200


@users_bp.route("/email", methods=["PATCH"])
@require_auth
def change_email():
    data = ChangeEmailSchema().load(request.get_json(silent=True) or {})
    _require_live_refresh_cookie()
    revoked = get_services().users.change_email(
        g.user_id, data["password"], data["email"], db.session
    )
    return _credentials_changed("email", revoked)


@users_bp.route("/username", methods=["PATCH"])
@require_auth
def change_username():
    data = ChangeUsernameSchema().load(request.get_json(silent=True) or {})
    _require_live_refresh_cookie()
    revoked = get_services().users.change_username(
        g.user_id, data["password"], data["username"], db.session
    )
    return _credentials_changed("username", revoked)


@users_bp.route("/password", methods=["PATCH"])
@require_auth
def change_password():
    data = ChangePasswordSchema().load(request.get_json(silent=True) or {})
    revoked = get_services().users.change_password(
        g.user_id, data["old_password"], data["new_password"], db.session
    )
    return _credentials_changed("password", revoked)


@users_bp.route("", methods=["GET"])
@require_auth
@require_permission(Permission.VIEW_USERS)
def list_users():
    users = get_services().users.list_users(db.session, role=Role.USER)
    return jsonify({
        "status": "success",
        "data": UserProfileSchema(many=True).dump(users),
    }), 200


@users_bp.route("/<string:user_id>", methods=["DELETE"])
@require_auth
@require_permission(Permission.DELETE_USERS)
def delete_user(user_id: str):
    services = get_services()
    target = services.users.get_profile(user_id, db.session)

    if target.role != Role.USER and not has_permission(g.current_user.role, Permission.MANAGE_ADMINS):
        raise AppError(
            ErrorCode.FORBIDDEN,
            "You do not have permission to delete this account.",
            403,
        )

    revoked = services.users.delete_user(user_id, db.session)
    db.session.commit()
    current_app.logger.info(
        "User %s deleted user %s; revoked %d refresh token(s)", g.user_id, user_id, revoked
    )
    return jsonify({"status": "success"}), 200
