"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body / cookie
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call the session service
  - Commit the DB session exactly once
  - Return {"status": "success", ...} and set / clear the refresh cookie

AppError propagates to the global error handler in app/__init__.py — routes
never catch it, except logout, which treats an unknown token as success, and
refresh, which reports a rotation lost to a concurrent request as 401.

Endpoints (url_prefix=/api/v1/auth):
  POST   /auth/register  → 201
  POST   /auth/login     → 201, sets refresh cookie
  POST   /auth/refresh   → 201, rotates refresh cookie
  POST   /auth/logout    → 201, clears refresh cookie
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from backend.app.container import get_services
from backend.app.errors import UNAUTHORIZED_MESSAGE, AppError, ErrorCode
from backend.app.extensions import db
from backend.app.middleware.auth_middleware import require_refresh_token
from backend.app.schemas.auth_schema import LoginSchema, RegisterSchema
from backend.app.services.token_codec import JWTSignPayload
from backend.utils.cookies import clear_refresh_cookie, set_refresh_cookie

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create a USER account. (No auth required.)"""
    data = RegisterSchema().load(request.get_json(silent=True) or {})
    user_id = get_services().sessions.register(
        name=data["name"],
        username=data["username"],
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    current_app.logger.info("Registered user %s (%s)", user_id, data["username"])
    return jsonify({"status": "success"}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Check credentials; return access token, set refresh cookie."""
    data = LoginSchema().load(request.get_json(silent=True) or {})
    sessions = get_services().sessions

    try:
        payload = sessions.authenticate(data["username"], data["password"], db.session)
    except AppError as err:
        if err.code == ErrorCode.INVALID_CREDENTIALS:
            current_app.logger.info("Failed login for username %r", data["username"])
        raise

    pair = sessions.login(payload, db.session)
    db.session.commit()
    current_app.logger.info("User %s logged in", payload.id)

    response = jsonify({"status": "success", "data": {"access": pair.access}})
    response.status_code = 201
    return set_refresh_cookie(response, pair.refresh)


@auth_bp.route("/refresh", methods=["POST"])
@require_refresh_token()
def refresh():
    """POST /auth/refresh — Rotate the refresh cookie; return a new access token."""
    payload = JWTSignPayload.from_user(g.current_user)
    try:
        pair = get_services().sessions.refresh(g.refresh_token, payload, db.session)
    except AppError as err:
        if err.code != ErrorCode.REFRESH_TOKEN_NOT_FOUND:
            raise
        # A concurrent rotation revoked the row after the liveness read.
        current_app.logger.info("Lost refresh rotation for user %s", payload.id)
        g.clear_refresh_cookie = True
        raise AppError(ErrorCode.REFRESH_TOKEN_INVALID, UNAUTHORIZED_MESSAGE, 401) from err
    db.session.commit()
    current_app.logger.info("Rotated refresh token for user %s", payload.id)

    response = jsonify({"status": "success", "data": {"access": pair.access}})
    response.status_code = 201
    return set_refresh_cookie(response, pair.refresh)


@auth_bp.route("/logout", methods=["POST"])
@require_refresh_token(live=False)
def logout():
    """POST /auth/logout — Revoke the refresh cookie's token and clear it."""
    try:
        get_services().sessions.logout(g.refresh_token, db.session)
    except AppError as err:
        if err.code != ErrorCode.REFRESH_TOKEN_NOT_FOUND:
            raise
        current_app.logger.info("Logout with unknown refresh token for user %s", g.user_id)
    db.session.commit()
    current_app.logger.info("User %s logged out", g.user_id)

    response = jsonify({"status": "success"})
    response.status_code = 201
    return clear_refresh_cookie(response)
