"""
auth/gate.py -- AuthGate middleware: optimistic token decode on every request.

Two-stage design:
  Stage 1 (this module): every request gets a per-request identity slot,
      request.state.identity. If an "Authorization: Bearer <token>" header is
      present, the token is verified and, on success, the VerifiedIdentity is
      stored in the slot. On any failure -- or no header at all -- the slot
      stays None and the request continues. The gate never rejects.

  Stage 2 (auth/dependencies.py): protected routes depend on
      require_identity(), which turns an empty slot into the generic
      "invalid credentials" response.

Public routes simply do not declare the dependency, so one verification path
serves both kinds of route.

The gate looks up AuthService on app.state at request time rather than at
construction, so the lifespan (or a test) decides which service is live.
"""

from __future__ import annotations

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from auth.models import VerifiedIdentity

_BEARER_PREFIX = "bearer "


def bearer_token(request: Request) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" header, if any."""
    header = request.headers.get("Authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


class AuthGate(BaseHTTPMiddleware):
    """Attach an authenticated-or-anonymous identity to every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        identity: VerifiedIdentity | None = None
        token = bearer_token(request)
        if token is not None:
            service = request.app.state.auth_service
            # Verification hits the credential store, which blocks.
            identity = await run_in_threadpool(service.authenticate, token)
        request.state.identity = identity
        return await call_next(request)
