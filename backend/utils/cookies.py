"""
utils/cookies.py — the `refresh` cookie.

Attributes come from config:
  - HttpOnly always
  - SameSite=Strict and not Secure outside production
  - SameSite=None and Secure in production (front end on another origin)
  - Max-Age equal to the refresh token lifetime

Clearing uses the same attributes; browsers only drop a cookie when
path/SameSite/Secure match the ones it was set with.
"""

from __future__ import annotations

from flask import Response, current_app


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": current_app.config["REFRESH_COOKIE_SECURE"],
        "samesite": current_app.config["REFRESH_COOKIE_SAMESITE"],
        "path": "/",
    }


def refresh_cookie_name() -> str:
    return current_app.config.get("REFRESH_COOKIE_NAME", "refresh")


def set_refresh_cookie(response: Response, token: str) -> Response:
    max_age = int(current_app.config["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds())
    response.set_cookie(
        refresh_cookie_name(),
        token,
        max_age=max_age,
        **_cookie_options(),
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    response.delete_cookie(refresh_cookie_name(), **_cookie_options())
    return response
