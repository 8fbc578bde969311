"""
container.py — construction of the auth service graph.

build_services() runs once inside create_app(); the result is stored on
app.extensions["services"] and shared by every request. The services are
stateless between calls (each call receives the request's SQLAlchemy session),
so sharing them is safe.

    from backend.app.container import get_services
    services = get_services()
    services.sessions.login(payload, db.session)
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from backend.app.services.auth_service import SessionService
from backend.app.services.password_hasher import PasswordHasher
from backend.app.services.refresh_token_store import RefreshTokenStore
from backend.app.services.token_codec import TokenCodec
from backend.app.services.token_version_guard import TokenVersionGuard
from backend.app.services.user_service import UserService

EXTENSION_KEY = "services"


@dataclass(frozen=True)
class Services:
    hasher: PasswordHasher
    codec: TokenCodec
    store: RefreshTokenStore
    users: UserService
    sessions: SessionService
    guard: TokenVersionGuard


def build_services(config) -> Services:
    hasher = PasswordHasher(rounds=config.get("BCRYPT_LOG_ROUNDS", 10))
    codec = TokenCodec.from_config(config)
    store = RefreshTokenStore()

    # UserService revokes through the session service, which needs UserService
    # for registration; the closure resolves `sessions` at call time.
    def revoke_tokens(user_id, session):
        return sessions.revoke_all_by_user_id(user_id, session)

    users = UserService(hasher, revoke_tokens)
    sessions = SessionService(codec, store, hasher, users)
    return Services(
        hasher=hasher,
        codec=codec,
        store=store,
        users=users,
        sessions=sessions,
        guard=TokenVersionGuard(users),
    )


def get_services() -> Services:
    """Returns the Services of the active application."""
    return current_app.extensions[EXTENSION_KEY]
