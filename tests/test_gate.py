"""Tests for auth/gate.py and auth/dependencies.py.

Covers:
- bearer_token(): scheme is case-insensitive, other schemes and empty tokens ignored
- AuthGate fills request.state.identity for good tokens and leaves None otherwise
- the gate never rejects a request on its own; public routes stay public
"""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from auth.dependencies import get_current_identity
from auth.gate import AuthGate, bearer_token
from auth.models import VerifiedIdentity
from auth.service import AuthService
from conftest import TEST_NAME, TEST_PASSWORD, FrozenClock


def _request(authorization: str | None) -> Request:
    headers = [] if authorization is None else [(b"authorization", authorization.encode())]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


class TestBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc.def.ghi", "abc.def.ghi"),
            ("bearer abc", "abc"),
            ("BEARER abc", "abc"),
            ("Bearer   abc  ", "abc"),
            ("Bearer ", None),
            ("Basic dXNlcjpwYXNz", None),
            ("abc.def.ghi", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parsing(self, header: str | None, expected: str | None) -> None:
        assert bearer_token(_request(header)) == expected


@pytest.fixture
def gated_client(service: AuthService):
    """Minimal app with only the gate, so identity handling is tested in isolation."""
    app = FastAPI()
    app.state.auth_service = service
    app.add_middleware(AuthGate)

    @app.get("/whoami")
    def whoami(identity: VerifiedIdentity | None = Depends(get_current_identity)):
        return {"subject_id": identity.subject_id if identity else None}

    with TestClient(app) as client:
        yield client


class TestAuthGate:
    def test_anonymous_without_header(self, gated_client: TestClient) -> None:
        resp = gated_client.get("/whoami")
        assert resp.status_code == 200
        assert resp.json() == {"subject_id": None}

    def test_identity_for_valid_token(self, gated_client: TestClient, service: AuthService) -> None:
        token = service.register(TEST_NAME, TEST_PASSWORD)
        resp = gated_client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert resp.json() == {"subject_id": "1"}

    def test_anonymous_for_garbage_token(self, gated_client: TestClient) -> None:
        resp = gated_client.get("/whoami", headers={"Authorization": "Bearer invalid"})
        assert resp.status_code == 200
        assert resp.json() == {"subject_id": None}

    def test_anonymous_for_expired_token(
        self, gated_client: TestClient, service: AuthService, clock: FrozenClock
    ) -> None:
        token = service.register(TEST_NAME, TEST_PASSWORD)
        clock.advance(600)
        resp = gated_client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert resp.json() == {"subject_id": None}

    def test_anonymous_for_stale_token(self, gated_client: TestClient, service: AuthService) -> None:
        token = service.register(TEST_NAME, TEST_PASSWORD)
        service.change_password(TEST_NAME, TEST_PASSWORD, "g0t0v3nus")
        resp = gated_client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert resp.json() == {"subject_id": None}
