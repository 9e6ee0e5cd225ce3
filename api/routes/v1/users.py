"""
api/routes/v1/users.py -- Identity endpoints (all protected).

Routes:
  GET /api/v1/users/me   -- the credential behind the presented bearer token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import MeResponse
from auth.dependencies import require_identity
from auth.models import VerifiedIdentity

router = APIRouter()


@router.get("/users/me", response_model=MeResponse)
async def me(identity: VerifiedIdentity = Depends(require_identity)) -> MeResponse:
    """Return the public fields of the authenticated credential.

    The record was resolved by the gate during token verification, so no
    further store access is needed here.
    """
    return MeResponse.from_credential(identity.credential)
