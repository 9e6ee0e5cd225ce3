"""
API request and response models for Habit REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only check presence and an upper length bound. Format rules
(name characters, email shape, password length) live in auth/validation.py so
every path into the core enforces them, and they come back as 400
validation_error rather than 422.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Credential

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/log_in.

    `name` carries the login key -- the username, or the email address when
    the deployment runs with LOGIN_FIELD=email.
    """

    name: str = Field(max_length=255)
    password: str = Field(max_length=1024)


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    No whitespace stripping: passwords are taken byte for byte, and a name
    with surrounding spaces is rejected by the format rules instead.
    """

    name: str = Field(max_length=255)
    password: str = Field(max_length=1024)
    email: Optional[str] = Field(default=None, max_length=255)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/update_password."""

    name: str = Field(max_length=255)
    password: str = Field(max_length=1024)
    new_password: str = Field(max_length=1024)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    """Returned by every endpoint that mints a token."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    """Public view of a credential record. Salt, secret and epoch never leave the core."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: Optional[str] = None

    @classmethod
    def from_credential(cls, credential: Credential) -> "MeResponse":
        return cls(id=credential.id, name=credential.name, email=credential.email)


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
