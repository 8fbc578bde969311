"""
app/__init__.py — Flask application factory.

    app = create_app("testing")

Nothing is initialised at import time. Every call builds an independent app
with its own config, extensions binding and service graph, so tests, the
flask CLI and Alembic can each create one without serving requests.

Order inside create_app():
  1. config_by_name[config_name], plus the production guard
  2. SQLAlchemy / Marshmallow via init_app(), model modules imported
  3. Services built from app.config and stored on app.extensions
  4. Blueprints under /api/v1
  5. Error handlers and dev CORS
  6. CLI commands (seed-super)
"""

from __future__ import annotations

import os
import traceback

from flask import Flask, g, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config

_MISSING_FIELD_PREFIX = "Missing data for required field"


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str | None = None) -> Flask:
    """
    Args:
        config_name: "development", "testing" or "production". Defaults to
                     FLASK_ENV; unknown names fall back to development.
    """
    config_name = config_name or os.getenv("FLASK_ENV", "development")
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    app.config.from_object(config_by_name.get(config_name, config_by_name["development"]))
    if config_name == "production":
        validate_production_config(app)  # ValueError on a bad deployment

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # ── Extensions and models ──────────────────────────────────────────────
    # Imported here rather than at module top to avoid circular imports.
    from backend.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # Populates db.metadata for create_all() and Alembic autogenerate.
    from backend.app.models import refresh_token, user  # noqa: F401

    # ── Services ───────────────────────────────────────────────────────────
    from backend.app.container import EXTENSION_KEY, build_services
    app.extensions[EXTENSION_KEY] = build_services(app.config)

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    from backend.app.cli import register_commands
    register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    # Route files declare paths relative to their resource; the prefix lives here.
    from backend.app.routes.auth import auth_bp
    from backend.app.routes.users import users_bp

    app.register_blueprint(auth_bp,  url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")


def _validation_error_body(messages) -> dict:
    """
    Envelope for a marshmallow ValidationError.

    code    MISSING_FIELD if any field is absent, else INVALID_FIELD
    message first message of the first failing field
    field   that field's name (omitted for schema-level errors)
    details every field's messages, as marshmallow reported them
    """
    from backend.app.errors import ErrorCode

    if isinstance(messages, dict):
        per_field = list(messages.items())
    else:
        per_field = [("_schema", messages)]

    def _as_list(value) -> list:
        return value if isinstance(value, list) else [value]

    field_name, first_errors = per_field[0] if per_field else ("_schema", [])
    first_errors = _as_list(first_errors)

    missing = any(
        str(msg).startswith(_MISSING_FIELD_PREFIX)
        for _, errs in per_field
        for msg in _as_list(errs)
    )

    error = {
        "code": ErrorCode.MISSING_FIELD if missing else ErrorCode.INVALID_FIELD,
        "message": str(first_errors[0]) if first_errors else "Invalid input.",
        "details": messages,
    }
    if field_name != "_schema":
        error["field"] = field_name
    return {"error": error}


def _register_error_handlers(app: Flask) -> None:
    """
    AppError        → its own code and status
    ValidationError → 400 MISSING_FIELD / INVALID_FIELD
    HTTPException   → werkzeug's status (unknown route, wrong method)
    Exception       → 500 INTERNAL_ERROR, traceback logged

    Each handler rolls back db.session first, so a failed request never
    commits part of its unit of work. When an auth decorator flagged the
    refresh cookie as unusable the response also clears it.
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.extensions import db
    from backend.utils.cookies import clear_refresh_cookie

    def _respond(body: dict, status: int):
        db.session.rollback()
        response = jsonify(body)
        response.status_code = status
        if g.get("clear_refresh_cookie"):
            clear_refresh_cookie(response)
        return response

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        if error.http_status >= 500:
            app.logger.error("%r on %s %s", error, request.method, request.path)
        return _respond(error.to_dict(), error.http_status)

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        return _respond(_validation_error_body(error.messages), 400)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return _respond({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        # Details stay in the log; the client only sees the generic message.
        app.logger.error("Unhandled exception: %s\n%s", error, traceback.format_exc())
        return _respond({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }, 500)


def _register_cors(app: Flask) -> None:
    """
    Reflects the request Origin with credentials allowed, in DEBUG or
    TESTING only, so a front end on another local port can send the
    refresh cookie.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and (app.config.get("DEBUG") or app.config.get("TESTING")):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Vary"] = "Origin"
        return response
