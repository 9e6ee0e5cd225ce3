"""
api/routes/v1/auth.py -- Credential endpoints.

Routes:
  POST /api/v1/auth/log_in            -- password login; returns a bearer token
  POST /api/v1/auth/register          -- create a credential; returns a bearer token
  POST /api/v1/auth/update_password   -- rotate password; returns a fresh token,
                                         every older token becomes stale

Security:
  [H2] POST /log_in and POST /update_password both check a password, so each
       is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  [C1] AuthService.log_in() goes through CredentialValidator.validate(), which
       equalizes timing for unknown login keys -- never inline a store lookup.
  [M5] Cache-Control: no-store on every response that carries a token.

All three handlers are plain `def`: the credential store and bcrypt both
block, so FastAPI runs them in its threadpool.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import ChangePasswordRequest, LoginRequest, RegisterRequest, TokenResponse
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/log_in:           public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/register:         public
# - POST /api/v1/auth/update_password:  public -- the current password is the proof of identity
router = APIRouter()


def _token_response(service: AuthService, token: str, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=TokenResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=service.token_ttl_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/log_in", response_model=TokenResponse)
@limiter.limit(login_rate_limit)  # [H2] must sit BELOW @router so the registered endpoint is the limited one
def log_in(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with login key and password; return a bearer token.

    Wrong password and unknown login key produce the identical 401
    invalid_credentials response.
    """
    service: AuthService = request.app.state.auth_service
    token = service.log_in(body.name, body.password)
    return _token_response(service, token)


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a credential and return a token for it.

    409 credential_exists if the login key (or email) is taken; 400
    validation_error if a field fails its format rules.
    """
    service: AuthService = request.app.state.auth_service
    token = service.register(body.name, body.password, email=body.email)
    return _token_response(service, token, status_code=201)


@router.post("/auth/update_password", response_model=TokenResponse)
@limiter.limit(login_rate_limit)  # [H2] checks the current password, so it is limited like log_in
def update_password(request: Request, body: ChangePasswordRequest) -> JSONResponse:
    """Rotate the password for `name` and return a fresh token.

    Tokens issued before this call stop working immediately, even if they have
    not expired.
    """
    service: AuthService = request.app.state.auth_service
    token = service.change_password(body.name, body.password, body.new_password)
    return _token_response(service, token)
