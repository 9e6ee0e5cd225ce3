"""
api/main.py -- FastAPI application entry point for Habit.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. log_requests       -- one access log line per request
  2. CORSMiddleware     -- adds CORS headers for allowed browser origins
  3. AuthGate           -- verifies any bearer token, fills request.state.identity

Rate limits are applied per route by the @limiter.limit() decorator (see
api/limiter.py). There is no SlowAPIMiddleware: the login limit is read from
Settings when evaluated, and only the decorator evaluates such limits.

Lifespan builds the credential store and the AuthService from Settings on
startup and closes the store on shutdown. Nothing in auth/ reads global
configuration; this is where it is handed over.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.dependencies import require_identity
from auth.errors import AuthError
from auth.gate import AuthGate
from auth.models import VerifiedIdentity
from auth.service import build_auth_service
from auth.store import UserStore
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("habit.api")

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build application-level resources and tear them down symmetrically.

    get_settings() raises on a missing SECRET_KEY in production mode, so a
    misconfigured deployment fails here, before serving a single request.
    """
    settings = get_settings()
    logger.info("Habit API starting up")
    app.state.user_store = UserStore(settings.database_url, login_field=settings.login_field)
    app.state.auth_service = build_auth_service(settings, app.state.user_store)
    logger.info(
        "Auth initialized (login_field=%s, token_ttl=%ds)",
        settings.login_field,
        settings.token_ttl_seconds,
    )

    yield

    app.state.user_store.close()
    logger.info("Habit API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Habit API",
    description="Credential and access-token service.",
    version=__version__,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced by identity-protected routes below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the current stack, so the LAST registered middleware
# is the OUTERMOST. Registered innermost-first: AuthGate -> CORS.
# ---------------------------------------------------------------------------

app.add_middleware(AuthGate)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

# The @limiter.limit() decorator looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Registered with the decorator after the stack above, so it sits outermost
# and its latency figure covers token verification too.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Identity-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(identity: VerifiedIdentity = Depends(require_identity)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Habit API")


@app.get("/redoc", include_in_schema=False)
async def redoc(identity: VerifiedIdentity = Depends(require_identity)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Habit API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error leaves the API as {"error": {code, message, detail}} so clients
# parse one schema regardless of status code.
# ---------------------------------------------------------------------------


def error_response(
    status_code: int,
    code: str,
    message: str,
    detail: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any auth-core error with the status, code and message it carries.

    Server-side failures (hashing, signing) are logged with the traceback but
    rendered with their fixed generic message only.
    """
    if exc.status_code >= 500:
        logger.error("Auth failure on %s %s: %s", request.method, request.url.path, type(exc).__name__, exc_info=exc)
    return error_response(exc.status_code, exc.code, exc.message)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded limit's window (60 for "10/minute").

    An upper bound on the wait: the current window may already be part over.
    """
    return exc.limit.limit.get_expiry()


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    client = request.client.host if request.client else "unknown"
    logger.warning("Rate limit hit on %s from %s", request.url.path, client)
    return error_response(
        429,
        "rate_limited",
        "Too many requests.",
        detail=str(exc.detail),
        headers={"Retry-After": str(_retry_after_seconds(exc))},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or mistyped body fields. Format rules on present fields are 400s from auth/."""
    return error_response(422, "validation_error", "Request validation failed.", detail=str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors (storage failures included).

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit and no identity requirement -- load balancers must reach it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and a database round-trip check."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except Exception:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
