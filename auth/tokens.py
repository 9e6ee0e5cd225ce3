"""
auth/tokens.py -- Access token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. One shared SECRET_KEY signs and verifies.
       Tokens carry the subject id and its password epoch under a "user"
       claim group plus standard "iat" / "exp" claims:

           {"user": {"id": "1", "last_password_update": 1700000000},
            "iat": 1700000000, "exp": 1700000600}

  Verification is staged so every rejection has its own reason
  (MalformedToken, InvalidSignature, TokenExpired, UnknownSubject,
  StaleToken). The route layer never sees these -- AuthService.authenticate()
  collapses them to "anonymous" -- but tests and debug logs do.

  Expiry is checked against an explicit `now` instead of letting jose read
  the wall clock, so the acceptance window [iat, exp) is testable exactly.

  Staleness: the token's password epoch is compared with the live record.
  A password change bumps the live epoch and fences out every older token.
"""

from __future__ import annotations

from datetime import datetime

from jose import jws, jwt
from jose.exceptions import JOSEError

from auth.credentials import CredentialValidator
from auth.errors import InvalidSignature, MalformedToken, SigningFailure, TokenExpired
from auth.models import Credential, TokenCredentials, TokenPayload, VerifiedIdentity, epoch_seconds

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 600


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TokenIssuer:
    """Mint signed, time-bounded access tokens.

    A missing key is a configuration error, so it is raised at construction
    (startup), not on the first login.
    """

    def __init__(self, secret_key: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        if not secret_key:
            raise SigningFailure("Token signing key is not configured.")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds

    def build_payload(self, credential: Credential, now: datetime | None = None) -> TokenPayload:
        if not credential.id:
            raise SigningFailure("Cannot issue a token for an unsaved credential.")
        issued_at = epoch_seconds(now)
        return TokenPayload(
            subject_id=str(credential.id),
            issued_at=issued_at,
            expires_at=issued_at + self.ttl_seconds,
            password_epoch=credential.last_password_update,
        )

    def issue(self, credential: Credential, now: datetime | None = None) -> str:
        """Return a signed token string for credential, valid for ttl_seconds from now."""
        payload = self.build_payload(credential, now)
        try:
            return jwt.encode(payload.to_claims(), self._secret_key, algorithm=ALGORITHM)
        except JOSEError as exc:
            raise SigningFailure() from exc


class TokenVerifier:
    """Check a token end to end and resolve it to a live identity."""

    def __init__(self, secret_key: str, validator: CredentialValidator) -> None:
        if not secret_key:
            raise SigningFailure("Token signing key is not configured.")
        self._secret_key = secret_key
        self.validator = validator

    def verify(self, token: str, now: datetime | None = None) -> VerifiedIdentity:
        """Return the VerifiedIdentity for token or raise the specific TokenError.

        Steps (any failure rejects):
          1. parse              -> MalformedToken
          2. HS256 signature    -> InvalidSignature
          3. now < exp          -> TokenExpired
          4. user claim group   -> MalformedToken
          5. subject exists     -> UnknownSubject
          6. epoch not stale    -> StaleToken
        """
        # 1. Structure
        if not isinstance(token, str) or not token:
            raise MalformedToken()
        try:
            claims = jwt.get_unverified_claims(token)
        except JOSEError as exc:
            raise MalformedToken() from exc

        # 2. Signature. Parsing already succeeded, so any failure here is the
        #    signature or a disallowed "alg" header -- both mean "not ours".
        try:
            jws.verify(token, self._secret_key, algorithms=[ALGORITHM])
        except JOSEError as exc:
            raise InvalidSignature() from exc

        # 3. Expiry
        expires_at = claims.get("exp")
        if not _is_int(expires_at):
            raise MalformedToken()
        if epoch_seconds(now) >= expires_at:
            raise TokenExpired()

        # 4. Identity claims
        user = claims.get("user")
        if not isinstance(user, dict):
            raise MalformedToken()
        subject_id = user.get("id")
        password_epoch = user.get("last_password_update")
        if not isinstance(subject_id, str) or not subject_id or not _is_int(password_epoch):
            raise MalformedToken()

        # 5 + 6. Live record and staleness
        credential = self.validator.authenticate(
            TokenCredentials(subject_id=subject_id, password_epoch=password_epoch)
        )
        return VerifiedIdentity(subject_id=subject_id, password_epoch=password_epoch, credential=credential)
