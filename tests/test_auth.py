"""
Tests for authentication endpoints: registration, login, Google sign-in and role admin.
"""

import time
from datetime import timedelta

import httpx
import pytest
from httpx import AsyncClient

from campus_ops.core.config import get_settings
from campus_ops.core.security import create_access_token
from campus_ops.services import google_verifier
from tests.conftest import headers_for


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns a token and the USER role."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "New@Campus.edu",
        "name": "New Person",
        "password": "securepassword123",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "new@campus.edu"
    assert data["user"]["roles"] == ["USER"]
    assert "hashed_password" not in data["user"]  # Never expose password hash

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
    assert me.status_code == 200
    assert me.json()["name"] == "New Person"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Duplicate email returns 409."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "student@campus.edu",
        "name": "Someone Else",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "ALREADY_EXISTS"


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 8 chars returns 422."""
    response = await client.post("/api/v1/auth/register", json={
        "email": "weak@campus.edu",
        "name": "Weak",
        "password": "short",
    })
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Valid credentials return JWT token."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "student@campus.edu",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    assert response.json()["access_token"]
    assert response.json()["user"]["id"] == test_user.id


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    """Wrong password returns 401."""
    response = await client.post("/api/v1/auth/login", json={
        "email": "student@campus.edu",
        "password": "wrongpassword",
    })
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_login_disabled_account(client: AsyncClient, db_session, test_user):
    test_user.enabled = False
    await db_session.commit()

    response = await client.post("/api/v1/auth/login", json={
        "email": "student@campus.edu",
        "password": "testpassword123",
    })
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_protected_routes_need_valid_token(client: AsyncClient, test_user):
    assert (await client.get("/api/v1/auth/me")).status_code == 401
    garbage = {"Authorization": "Bearer not-a-jwt"}
    assert (await client.get("/api/v1/auth/me", headers=garbage)).status_code == 401

    expired = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(minutes=-5))
    response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def _claims(email: str, sub: str, /, name: str = "Google User", **overrides) -> dict:
    claims = {
        "aud": get_settings().GOOGLE_CLIENT_ID,
        "iss": "https://accounts.google.com",
        "exp": str(int(time.time()) + 3600),
        "email": email,
        "email_verified": "true",
        "name": name,
        "picture": "https://example.com/a.png",
        "sub": sub,
    }
    claims.update(overrides)
    return claims


@pytest.fixture
def google_tokens(monkeypatch) -> dict:
    """credential -> tokeninfo claims; unknown credentials get Google's 400."""
    tokens: dict[str, dict] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        claims = tokens.get(request.url.params.get("id_token"))
        if claims is None:
            return httpx.Response(400, json={"error_description": "Invalid Value"})
        return httpx.Response(200, json=claims)

    monkeypatch.setattr(google_verifier, "_transport", httpx.MockTransport(handler))
    return tokens


@pytest.mark.asyncio
async def test_google_sign_in_creates_then_reuses_account(client: AsyncClient, google_tokens):
    google_tokens["first"] = _claims("g.user@campus.edu", "google-123")
    google_tokens["renamed"] = _claims("g.user@campus.edu", "google-123", name="Renamed")

    first = await client.post("/api/v1/auth/google", json={"credential": "first"})
    assert first.status_code == 200
    assert first.json()["user"]["provider"] == "GOOGLE"
    assert first.json()["user"]["roles"] == ["USER"]

    second = await client.post("/api/v1/auth/google/verify", json={"credential": "renamed"})
    assert second.json()["user"]["id"] == first.json()["user"]["id"]
    assert second.json()["user"]["name"] == "Renamed"

    # No local password, so password login cannot succeed
    login = await client.post("/api/v1/auth/login", json={"email": "g.user@campus.edu", "password": "whatever1"})
    assert login.status_code == 401


@pytest.mark.asyncio
async def test_google_sign_in_rejects_bare_profile_for_existing_admin(client: AsyncClient, google_tokens, admin_user):
    """A client-supplied profile is not a credential; no token is issued for the admin."""
    response = await client.post("/api/v1/auth/google", json={
        "email": admin_user.email,
        "name": "Mallory",
        "provider_id": "made-up",
    })
    assert response.status_code == 422

    forged = await client.post("/api/v1/auth/google", json={"credential": "forged-token"})
    assert forged.status_code == 401
    assert "access_token" not in forged.json()


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"aud": "someone-elses-client.apps.googleusercontent.com"},
    {"iss": "https://evil.example.com"},
    {"exp": "1000"},
    {"email_verified": "false"},
    {"email": ""},
])
async def test_google_sign_in_rejects_bad_claims(client: AsyncClient, google_tokens, admin_user, overrides):
    google_tokens["bad"] = _claims(admin_user.email, "google-999", **overrides)
    response = await client.post("/api/v1/auth/google", json={"credential": "bad"})
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_google_sign_in_unreachable_verifier(client: AsyncClient, monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    monkeypatch.setattr(google_verifier, "_transport", httpx.MockTransport(handler))
    response = await client.post("/api/v1/auth/google", json={"credential": "anything"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_admin_manages_roles(client: AsyncClient, auth_headers, admin_headers, test_user, admin_user):
    assert (await client.get("/api/v1/auth/users", headers=auth_headers)).status_code == 403

    users = await client.get("/api/v1/auth/users", headers=admin_headers)
    assert {u["email"] for u in users.json()} == {"student@campus.edu", "admin@campus.edu"}

    promoted = await client.put(
        f"/api/v1/auth/users/{test_user.id}/roles", json={"roles": ["TECHNICIAN"]}, headers=admin_headers
    )
    assert promoted.status_code == 200
    assert sorted(promoted.json()["roles"]) == ["TECHNICIAN", "USER"]

    # Roles are read from the database per request, so the existing token picks them up
    tickets = await client.get("/api/v1/tickets/", headers=auth_headers)
    assert tickets.status_code == 200

    demote_self = await client.put(
        f"/api/v1/auth/users/{admin_user.id}/roles", json={"roles": ["USER"]}, headers=admin_headers
    )
    assert demote_self.status_code == 403


@pytest.mark.asyncio
async def test_manager_role_is_assignable_but_grants_nothing(client: AsyncClient, admin_headers, test_user):
    response = await client.put(
        f"/api/v1/auth/users/{test_user.id}/roles", json={"roles": ["MANAGER"]}, headers=admin_headers
    )
    assert response.status_code == 200

    manager_headers = headers_for(test_user)
    assert (await client.get("/api/v1/bookings/", headers=manager_headers)).status_code == 403
