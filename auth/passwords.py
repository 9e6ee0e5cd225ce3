"""
auth/passwords.py -- Salted, deterministic password hashing.

Security design decisions:
  bcrypt with an explicit salt. bcrypt.hashpw(password, salt) is deterministic
       for a given salt, which is exactly what verification-by-recomputation
       needs: the stored salt is fed back in and the result compared with the
       stored secret. Salts come from generate_salt() only -- bcrypt.gensalt()
       gives 128 random bits in a fixed "$2b$<rounds>$<22 chars>" format.

  SHA-256 pre-hash. bcrypt 4.x+ rejects inputs longer than 72 bytes. The
       plaintext is reduced to a base64 SHA-256 digest (44 bytes) first so
       passwords of any length are accepted and no two long passwords collide
       through truncation.

  Constant-time comparison. matches() uses hmac.compare_digest on the
       recomputed secret.

Using bcrypt directly rather than passlib[bcrypt]: passlib's wrap-bug
detection trips over bcrypt 4.x, and direct usage has no compatibility shim.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

import bcrypt

from auth.errors import HashingFailure


class PasswordHasher:
    """Hash and verify passwords against a caller-supplied salt.

    Usage:
        hasher = PasswordHasher(rounds=12)
        salt = hasher.generate_salt()
        secret = hasher.hash("g0t0m@rs", salt)
        hasher.matches("g0t0m@rs", salt, secret)  # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def generate_salt(self) -> str:
        return bcrypt.gensalt(rounds=self.rounds).decode("ascii")

    def hash(self, plaintext: str, salt: str) -> str:
        """Return the secret for plaintext under salt. Same inputs, same output.

        Raises HashingFailure if the salt is not a valid bcrypt salt or the
        inputs are not strings.
        """
        try:
            digest = base64.b64encode(hashlib.sha256(plaintext.encode("utf-8")).digest())
            return bcrypt.hashpw(digest, salt.encode("ascii")).decode("ascii")
        except (ValueError, TypeError, AttributeError, UnicodeError) as exc:
            raise HashingFailure() from exc

    def matches(self, plaintext: str, salt: str, secret: str) -> bool:
        """Return True if plaintext hashes to secret under salt."""
        return hmac.compare_digest(self.hash(plaintext, salt).encode("ascii"), secret.encode("ascii"))
