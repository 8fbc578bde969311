"""
errors.py — AppError base class and error code registry.

Every error returned by the API uses a code defined here. Services and
middleware raise AppError; the global handler in app/__init__.py renders it.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):
    """
    A failure with a stable code and the HTTP status it maps to.

    `field` names the request field at fault, when there is one; clients use
    it to attach the message to a form input.
    """

    def __init__(self, code: str, message: str, http_status: int, field: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.field = field

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.field is not None:
            error["field"] = self.field
        return {"error": error}

    def __repr__(self) -> str:
        field = f", field={self.field!r}" if self.field else ""
        return f"AppError({self.code}, {self.http_status}, {self.message!r}{field})"


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    PASSWORD_INCORRECT         = "PASSWORD_INCORRECT"
    PASSWORD_UNCHANGED         = "PASSWORD_UNCHANGED"

    # ── Conflict Errors (400, field-scoped) ────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"      # 401
    TOKEN_MISSING              = "TOKEN_MISSING"            # 401
    TOKEN_INVALID              = "TOKEN_INVALID"            # 401
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"            # 401
    TOKEN_VERSION_STALE        = "TOKEN_VERSION_STALE"      # 401
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"    # 401
    REFRESH_TOKEN_NOT_FOUND    = "REFRESH_TOKEN_NOT_FOUND"  # 403, store miss
    FORBIDDEN                  = "FORBIDDEN"                # 403

    # ── System Errors (500) ────────────────────────────────────────────────
    REFRESH_TOKEN_CONFLICT     = "REFRESH_TOKEN_CONFLICT"
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Messages shared by several raise sites ─────────────────────────────────
# Login failures must be indistinguishable whether the user exists or not.

INVALID_CREDENTIALS_MESSAGE = "username or password incorrect"
STALE_TOKEN_MESSAGE         = "token expired, please log in again."
UNAUTHORIZED_MESSAGE        = "Unauthorized"
