"""
middleware/auth_middleware.py — JWT authentication decorators.

@require_auth (access token, Authorization header):
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Verifies signature and expiry with the access context of TokenCodec
  3. Re-reads the user and compares token_version (TokenVersionGuard)
  4. Attaches the fresh user row and the token payload to flask.g

@require_refresh_token (refresh token, `refresh` cookie):
  Same sequence with the refresh context. With live=True the token must also
  be present and unrevoked in the store. Any failure marks the response so the
  error handler clears the cookie instead of leaving a stale one behind.

@require_permission(Permission.X):
  Runs after require_auth; 403 when the user's role lacks the permission.

Middleware = authentication (401). Permission check = authorization (403).

Error codes:
  TOKEN_MISSING         (401) — no Authorization header
  TOKEN_INVALID         (401) — malformed header, bad signature, unknown user
  TOKEN_EXPIRED         (401) — exp claim is in the past
  TOKEN_VERSION_STALE   (401) — credentials changed since the token was signed
  REFRESH_TOKEN_INVALID (401) — refresh cookie missing, invalid, revoked
  FORBIDDEN             (403) — role lacks the permission
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import current_app, g, request

from backend.app.container import get_services
from backend.app.errors import (
    STALE_TOKEN_MESSAGE,
    UNAUTHORIZED_MESSAGE,
    AppError,
    ErrorCode,
)
from backend.app.extensions import db
from backend.app.services.permissions import Permission, has_permission
from backend.app.services.token_codec import TokenKind
from backend.utils.cookies import refresh_cookie_name


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces access-token authentication.

    Attaches g.current_user (User), g.user_id (str) and g.token_payload.
    Raises AppError for all auth failures — the global error handler converts
    these to the JSON response. Routes never catch AppError.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_refresh_token(live: bool = True) -> Callable:
    """
    Route decorator factory for endpoints driven by the `refresh` cookie.

    Attaches g.refresh_token (raw string), g.token_payload and g.current_user.

    live=True additionally requires the token to be persisted and unrevoked.
    Logout uses live=False so that logging out twice is not an error.
    """
    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            try:
                _authenticate_refresh_cookie(live)
            except AppError:
                g.clear_refresh_cookie = True
                raise
            return f(*args, **kwargs)

        return decorated

    return decorator


def require_permission(permission: Permission) -> Callable:
    """
    Route decorator enforcing a role permission. Must be applied below
    @require_auth so g.current_user is populated.
    """
    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = g.current_user
            if not has_permission(user.role, permission):
                raise AppError(
                    ErrorCode.FORBIDDEN,
                    "You do not have permission to perform this action.",
                    403,
                )
            return f(*args, **kwargs)

        return decorated

    return decorator


def _authenticate_request() -> None:
    """
    Performs the access-token sequence and populates flask.g.

    Separated from the decorator wrapper so tests can call it directly.
    """
    auth_header = request.headers.get("Authorization", "")

    # ── Step 1: Require Authorization header ──────────────────────────────
    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    # ── Step 2: Parse "Bearer <token>" format ─────────────────────────────
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    services = get_services()

    # ── Step 3: Verify signature and expiry ───────────────────────────────
    decoded = services.codec.decode(parts[1], TokenKind.ACCESS)

    # ── Step 4: Compare token_version with the stored user ────────────────
    user = _check_version(decoded.payload)

    g.current_user = user
    g.user_id = user.id
    g.token_payload = decoded.payload


def _authenticate_refresh_cookie(live: bool) -> None:
    raw_token = request.cookies.get(refresh_cookie_name())
    if not raw_token:
        raise AppError(ErrorCode.REFRESH_TOKEN_INVALID, UNAUTHORIZED_MESSAGE, 401)

    services = get_services()

    try:
        decoded = services.codec.decode(raw_token, TokenKind.REFRESH)
    except AppError as err:
        raise AppError(ErrorCode.REFRESH_TOKEN_INVALID, UNAUTHORIZED_MESSAGE, 401) from err

    user = _check_version(decoded.payload)

    if live:
        try:
            services.sessions.get(raw_token, db.session)
        except AppError as err:
            if err.code != ErrorCode.REFRESH_TOKEN_NOT_FOUND:
                raise
            current_app.logger.info(
                "Rejected refresh token for user %s: not live in store", user.id
            )
            raise AppError(ErrorCode.REFRESH_TOKEN_INVALID, UNAUTHORIZED_MESSAGE, 401) from err

    g.current_user = user
    g.user_id = user.id
    g.token_payload = decoded.payload
    g.refresh_token = raw_token


def _check_version(payload):
    try:
        return get_services().guard.check(payload, db.session)
    except AppError as err:
        if err.code == ErrorCode.TOKEN_VERSION_STALE:
            current_app.logger.info(
                "Stale token for user %s (version %s): %s",
                payload.id, payload.token_version, STALE_TOKEN_MESSAGE,
            )
        raise
