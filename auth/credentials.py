"""
auth/credentials.py -- Credential validation, creation and rotation.

CredentialValidator is read-only: it looks records up and builds new record
values, but it never writes. Persistence belongs to AuthService, which calls
store.save() / store.update() only after every check here has passed. That is
what lets a rejected password change guarantee "no storage write".

Timing equalization [C1]: validate() always runs the hasher, even when the
login key does not exist, so response time does not reveal which login keys
are registered.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Literal

from auth.errors import (
    CredentialExists,
    InvalidCredentials,
    PasswordUnchanged,
    StaleToken,
    UnknownSubject,
    ValidationFailure,
)
from auth.models import Credential, Credentials, PasswordCredentials, TokenCredentials, epoch_seconds
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.validation import validate_email, validate_name, validate_password


class CredentialValidator:
    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        login_field: Literal["name", "email"] = "name",
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.login_field = login_field
        # Salt for the dummy hash on unknown login keys; generated once so the
        # first miss costs the same as every later one.
        self._dummy_salt = hasher.generate_salt()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, credentials: Credentials) -> Credential:
        """Resolve credentials of either kind to the live stored record."""
        if credentials.kind == "password":
            return self._authenticate_password(credentials)
        if credentials.kind == "token":
            return self._authenticate_token(credentials)
        raise InvalidCredentials()

    def validate(self, login_key: str, password: str) -> Credential:
        """Return the record for login_key if password is correct.

        An unknown login key and a wrong password raise the same
        InvalidCredentials -- callers must not be able to tell them apart.
        """
        return self.authenticate(PasswordCredentials(login_key=login_key, password=password))

    def _authenticate_password(self, credentials: PasswordCredentials) -> Credential:
        credential = self.store.find_by_login_key(credentials.login_key)
        if credential is None:
            # Equalize timing -- do NOT return before hashing [C1]
            self.hasher.hash(credentials.password, self._dummy_salt)
            raise InvalidCredentials()
        if not self.hasher.matches(credentials.password, credential.salt, credential.secret):
            raise InvalidCredentials()
        return credential

    def _authenticate_token(self, credentials: TokenCredentials) -> Credential:
        credential = self.store.find_by_id(credentials.subject_id)
        if credential is None:
            raise UnknownSubject()
        # Any password change after issuance fences the token out.
        if credential.last_password_update > credentials.password_epoch:
            raise StaleToken()
        return credential

    # ------------------------------------------------------------------
    # Creation and rotation (values only -- the caller persists)
    # ------------------------------------------------------------------

    def create_credential(
        self,
        name: str,
        password: str,
        email: str | None = None,
        now: datetime | None = None,
    ) -> Credential:
        """Validate the inputs and build a new, unsaved credential record.

        Raises ValidationFailure for format problems and CredentialExists if
        the login key is already registered.
        """
        validate_name(name)
        if email is not None:
            validate_email(email)
        elif self.login_field == "email":
            raise ValidationFailure("Email is missing.")
        validate_password(password)

        login_key = email if self.login_field == "email" else name
        if self.store.find_by_login_key(login_key) is not None:
            raise CredentialExists()

        salt = self.hasher.generate_salt()
        return Credential(
            name=name,
            email=email,
            salt=salt,
            secret=self.hasher.hash(password, salt),
            last_password_update=epoch_seconds(now),
        )

    def rotate_credential(
        self,
        credential: Credential,
        current_password: str,
        new_password: str,
        now: datetime | None = None,
    ) -> Credential:
        """Return credential with a new salt, secret and password epoch.

        The epoch always moves forward by at least one second, even when two
        changes land in the same second; otherwise a token minted before the
        second change would still carry an epoch equal to the live one.
        """
        if new_password == current_password:
            raise PasswordUnchanged()
        validate_password(new_password)
        salt = self.hasher.generate_salt()
        return replace(
            credential,
            salt=salt,
            secret=self.hasher.hash(new_password, salt),
            last_password_update=max(epoch_seconds(now), credential.last_password_update + 1),
        )
