"""
auth/service.py -- The operations the HTTP layer calls into.

AuthService is a thin orchestration facade over CredentialValidator,
TokenIssuer, TokenVerifier and a CredentialStore:

    log_in(login_key, password)                     -> token
    register(name, password, email=None)            -> token
    change_password(login_key, password, new_pw)    -> token
    authenticate(bearer_token)                      -> VerifiedIdentity | None

Writes happen here and only here, after every check has passed. The clock is
injectable so tests can pin "now".

build_auth_service() is the single place Settings values are turned into
components; nothing in auth/ reads configuration on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from auth.credentials import CredentialValidator
from auth.errors import CredentialExists, InvalidCredentials, PasswordUnchanged, TokenError
from auth.models import VerifiedIdentity
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenIssuer, TokenVerifier
from auth.validation import validate_password

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("habit.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        validator: CredentialValidator,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.validator = validator
        self.issuer = issuer
        self.verifier = verifier
        self.clock = clock

    @property
    def token_ttl_seconds(self) -> int:
        return self.issuer.ttl_seconds

    def log_in(self, login_key: str, password: str) -> str:
        try:
            credential = self.validator.validate(login_key, password)
        except InvalidCredentials:
            logger.info("Failed login attempt")
            raise
        return self.issuer.issue(credential, self.clock())

    def register(self, name: str, password: str, email: str | None = None) -> str:
        now = self.clock()
        credential = self.validator.create_credential(name, password, email=email, now=now)
        try:
            saved = self.store.save(credential)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration, or the email is taken.
            raise CredentialExists() from exc
        logger.info("Registered credential id=%s", saved.id)
        return self.issuer.issue(saved, now)

    def change_password(self, login_key: str, password: str, new_password: str) -> str:
        """Rotate the password and return a fresh token.

        Every token issued before this call is stale afterwards. Rejections
        (PasswordUnchanged, ValidationFailure, InvalidCredentials) happen
        before the store is written. A wrong current password is logged like a
        failed login.
        """
        if new_password == password:
            raise PasswordUnchanged()
        validate_password(new_password)
        try:
            credential = self.validator.validate(login_key, password)
        except InvalidCredentials:
            logger.info("Failed login attempt")
            raise

        now = self.clock()
        rotated = self.validator.rotate_credential(credential, password, new_password, now=now)
        if not self.store.update(rotated, expected_epoch=credential.last_password_update):
            # Deleted, or another password change won the race.
            raise InvalidCredentials()
        logger.info("Password changed for credential id=%s", rotated.id)
        return self.issuer.issue(rotated, now)

    def authenticate(self, bearer_token: str) -> VerifiedIdentity | None:
        """Return the identity for a bearer token, or None if it is not acceptable."""
        try:
            return self.verifier.verify(bearer_token, self.clock())
        except TokenError as exc:
            logger.debug("Token rejected: %s", type(exc).__name__)
            return None


def build_auth_service(
    settings: Settings,
    store: CredentialStore,
    clock: Callable[[], datetime] = _utcnow,
) -> AuthService:
    """Wire every auth component from one Settings instance."""
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    validator = CredentialValidator(store, hasher, login_field=settings.login_field)
    return AuthService(
        store=store,
        validator=validator,
        issuer=TokenIssuer(settings.secret_key, ttl_seconds=settings.token_ttl_seconds),
        verifier=TokenVerifier(settings.secret_key, validator),
        clock=clock,
    )
