"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost zero logic). Stores and
services do the work; these classes only own the shape.

Credentials is a closed tagged union. CredentialValidator.authenticate()
switches on the `kind` tag, so adding a new credential type means adding a
new dataclass here and a new case there -- nothing inspects runtime types.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Union


def epoch_seconds(now: datetime | None = None) -> int:
    """Whole seconds since the Unix epoch for now (default: current UTC time).

    Password epochs and token iat/exp all use this unit.
    """
    return int((now or datetime.now(timezone.utc)).timestamp())


@dataclass(frozen=True)
class Credential:
    """A stored identity plus its salted password hash.

    id is None until the store saves the record. It is an opaque string --
    UserStore stringifies its integer primary key.

    salt, secret and last_password_update only ever change together (see
    CredentialValidator.rotate_credential). The dataclass is frozen so a
    half-updated record cannot exist in memory either.
    """

    name: str
    salt: str
    secret: str = field(repr=False)
    last_password_update: int  # seconds since epoch
    email: str | None = None
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenPayload:
    """Claims carried by an access token. Ephemeral -- never persisted."""

    subject_id: str
    issued_at: int
    expires_at: int
    password_epoch: int

    def to_claims(self) -> dict:
        return {
            "user": {
                "id": self.subject_id,
                "last_password_update": self.password_epoch,
            },
            "iat": self.issued_at,
            "exp": self.expires_at,
        }


@dataclass(frozen=True)
class PasswordCredentials:
    login_key: str
    password: str = field(repr=False)
    kind: Literal["password"] = "password"


@dataclass(frozen=True)
class TokenCredentials:
    """Identity claim extracted from a token whose signature and expiry already checked out."""

    subject_id: str
    password_epoch: int
    kind: Literal["token"] = "token"


Credentials = Union[PasswordCredentials, TokenCredentials]


@dataclass(frozen=True)
class VerifiedIdentity:
    """Result of a successful token verification.

    credential is the live record resolved during verification, so protected
    handlers can use it without a second lookup.
    """

    subject_id: str
    password_epoch: int
    credential: Credential
