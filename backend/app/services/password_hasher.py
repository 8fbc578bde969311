"""
services/password_hasher.py — bcrypt password hashing and verification.

The raw password is never stored and never logged. The cost factor comes from
config BCRYPT_LOG_ROUNDS (default 10, 4 under TestingConfig).
"""

from __future__ import annotations

import bcrypt


class PasswordHasher:

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(
            plaintext.encode("utf-8"),
            bcrypt.gensalt(rounds=self.rounds),
        ).decode("utf-8")

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Returns True when `plaintext` matches `hashed`.

        A malformed stored hash is reported as a mismatch rather than an
        error, so callers only ever branch on the boolean.
        """
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
