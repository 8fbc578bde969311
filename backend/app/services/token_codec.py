"""
services/token_codec.py — signing and decoding of access and refresh JWTs.

Two independent signing contexts (TokenKind):
  - ACCESS:  short TTL, JWT_ACCESS_SECRET_KEY, checked on every request
  - REFRESH: long TTL,  JWT_REFRESH_SECRET_KEY, exchanged at /auth/refresh

Both carry the same JWTSignPayload claims plus iat, exp, jti and a `type`
claim naming the context. A token never decodes under the other context:
the secrets differ and the type claim is checked as well.

Decoding fails closed: every failure is raised as a 401 AppError
(TOKEN_EXPIRED or TOKEN_INVALID). Callers never see a PyJWT exception.
"""

from __future__ import annotations

import enum
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import Role, User


class TokenKind(str, enum.Enum):
    ACCESS  = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class JWTSignPayload:
    """Identity claims embedded in every issued token."""

    id: str
    name: str
    username: str
    email: str
    role: Role
    token_version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "JWTSignPayload":
        return cls(
            id=user.id,
            name=user.name,
            username=user.username,
            email=user.email,
            role=Role(user.role),
            token_version=user.token_version,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def to_claims(self) -> dict[str, Any]:
        claims: dict[str, Any] = {
            "sub": self.id,
            "name": self.name,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "token_version": self.token_version,
        }
        if self.created_at is not None:
            claims["created_at"] = self.created_at.isoformat()
        if self.updated_at is not None:
            claims["updated_at"] = self.updated_at.isoformat()
        return claims

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "JWTSignPayload":
        """Raises KeyError / ValueError / TypeError on a malformed claim set."""
        token_version = claims["token_version"]
        if not isinstance(token_version, int) or isinstance(token_version, bool):
            raise TypeError("token_version must be an integer")
        return cls(
            id=str(claims["sub"]),
            name=claims["name"],
            username=claims["username"],
            email=claims["email"],
            role=Role(claims["role"]),
            token_version=token_version,
            created_at=_parse_optional_datetime(claims.get("created_at")),
            updated_at=_parse_optional_datetime(claims.get("updated_at")),
        )


@dataclass(frozen=True)
class DecodedToken:
    payload: JWTSignPayload
    expires_at_epoch: int

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at_epoch, tz=timezone.utc)


def _parse_optional_datetime(value: str | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class TokenCodec:

    def __init__(
            self,
            access_secret: str,
            access_ttl: timedelta,
            refresh_secret: str,
            refresh_ttl: timedelta,
            algorithm: str = "HS256",
    ) -> None:
        self.algorithm = algorithm
        self._contexts: dict[TokenKind, tuple[str, timedelta]] = {
            TokenKind.ACCESS:  (access_secret, access_ttl),
            TokenKind.REFRESH: (refresh_secret, refresh_ttl),
        }

    @classmethod
    def from_config(cls, config) -> "TokenCodec":
        return cls(
            access_secret=config["JWT_ACCESS_SECRET_KEY"],
            access_ttl=config["JWT_ACCESS_TOKEN_EXPIRES"],
            refresh_secret=config["JWT_REFRESH_SECRET_KEY"],
            refresh_ttl=config["JWT_REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )

    def ttl(self, kind: TokenKind) -> timedelta:
        return self._contexts[kind][1]

    def sign(self, payload: JWTSignPayload, kind: TokenKind) -> str:
        secret, ttl = self._contexts[kind]
        now = datetime.now(timezone.utc)
        claims = payload.to_claims()
        claims.update({
            "type": kind.value,
            "iat": now,
            "exp": now + ttl,
            # Guarantees each issued token is unique even if generated in the same second.
            "jti": secrets.token_hex(8),
        })
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def decode(self, token: str, kind: TokenKind) -> DecodedToken:
        """
        Verifies signature and expiry and returns the embedded payload.

        Raises:
          AppError(TOKEN_EXPIRED, 401) — valid signature, exp in the past
          AppError(TOKEN_INVALID, 401) — anything else: bad signature,
                                         malformed token, missing claims,
                                         token of the other kind
        """
        secret, _ = self._contexts[kind]
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AppError(
                ErrorCode.TOKEN_EXPIRED,
                f"The {kind.value} token has expired.",
                401,
            )
        except jwt.InvalidTokenError:
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                f"The {kind.value} token is invalid or has been tampered with.",
                401,
            )

        if claims.get("type") != kind.value:
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                f"The presented token is not a {kind.value} token.",
                401,
            )

        try:
            payload = JWTSignPayload.from_claims(claims)
        except (KeyError, TypeError, ValueError):
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                f"The {kind.value} token is missing required claims.",
                401,
            )

        return DecodedToken(payload=payload, expires_at_epoch=int(claims["exp"]))
