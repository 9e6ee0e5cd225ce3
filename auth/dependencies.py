"""
auth/dependencies.py -- FastAPI Depends() helpers: the enforcement point.

AuthGate (auth/gate.py) has already verified any bearer token and filled
request.state.identity. These helpers only read that slot:

get_current_identity() is the soft variant (returns None when anonymous).
require_identity() raises InvalidCredentials, which api/main.py renders as the
same 401 "invalid_credentials" envelope a failed login gets -- a caller
cannot tell a bad token from a missing one.

Layer rule: may import from fastapi (Request) because this module is part of
the FastAPI dependency injection system; no imports from api/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import InvalidCredentials
from auth.models import VerifiedIdentity


def get_current_identity(request: Request) -> VerifiedIdentity | None:
    """Return the identity AuthGate attached, or None for anonymous requests."""
    return getattr(request.state, "identity", None)


def require_identity(request: Request) -> VerifiedIdentity:
    """Require an authenticated identity.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: VerifiedIdentity = Depends(require_identity)): ...
    """
    identity = get_current_identity(request)
    if identity is None:
        raise InvalidCredentials()
    return identity
