"""
auth/errors.py -- Exception taxonomy for the credential and token lifecycle.

Every error carries the HTTP rendering it should get (code, status_code,
message) so api/main.py can turn any AuthError into the standard error
envelope with a single exception handler.

Token errors are the exception: they are raised by TokenVerifier so tests and
logs can see the exact rejection reason, but AuthService.authenticate()
collapses all of them into "no identity". They never reach a client.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all errors raised by the auth package."""

    code = "auth_error"
    status_code = 400
    message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Input and credential errors -- rendered to the caller
# ---------------------------------------------------------------------------


class ValidationFailure(AuthError):
    """A name, email or password failed format validation.

    The message is descriptive ("Password must be at least 8 characters.") --
    unlike credential errors there is nothing to hide here.
    """

    code = "validation_error"
    message = "Validation failed."


class InvalidCredentials(AuthError):
    """Unknown login key OR wrong password OR missing/rejected identity.

    One type with one message for every case. Callers cannot enumerate
    accounts.
    """

    code = "invalid_credentials"
    status_code = 401
    message = "Invalid credentials."


class CredentialExists(AuthError):
    code = "credential_exists"
    status_code = 409
    message = "User exists."


class PasswordUnchanged(AuthError):
    code = "password_unchanged"
    message = "New password must be different."


# ---------------------------------------------------------------------------
# Token errors -- never rendered, collapsed to anonymous by the gate
# ---------------------------------------------------------------------------


class TokenError(AuthError):
    code = "invalid_credentials"
    status_code = 401
    message = "Invalid credentials."


class MalformedToken(TokenError):
    pass


class InvalidSignature(TokenError):
    pass


class TokenExpired(TokenError):
    pass


class UnknownSubject(TokenError):
    pass


class StaleToken(TokenError):
    """Token predates the subject's most recent password change."""


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------


class HashingFailure(AuthError):
    code = "hashing_failure"
    status_code = 500
    message = "Password hashing failed."


class SigningFailure(AuthError):
    """Token could not be signed. Almost always a missing SECRET_KEY."""

    code = "signing_failure"
    status_code = 500
    message = "Token signing failed."
