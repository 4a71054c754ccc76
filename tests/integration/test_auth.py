"""
Integration tests for authentication endpoints.
Tests register, login, refresh, logout and the bearer token dependency.
"""
import pytest
from httpx import AsyncClient

from conftest import PASSWORD, auth_header
from eventhub.core.security import create_refresh_token, token_claims


@pytest.mark.integration
class TestAuthEndpoints:
    """Test authentication API endpoints."""

    async def test_register_success(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": "newuser@example.com",
                "password": PASSWORD,
                "first_name": "New",
                "last_name": "User",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["role"] == "attendee"
        assert data["approval_status"] == "approved"
        assert "id" in data
        assert "hashed_password" not in data

    async def test_register_organizer_is_pending(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "org@example.com", "password": PASSWORD, "role": "organizer"},
        )

        assert response.status_code == 201
        assert response.json()["approval_status"] == "pending_approval"

    async def test_register_privileged_role_forbidden(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "boss@example.com", "password": PASSWORD, "role": "admin"},
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"

    async def test_register_weak_password(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "user@example.com", "password": "weak"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"
        assert "password" in response.json()["detail"].lower()

    async def test_register_duplicate_email(self, client: AsyncClient, attendee):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": attendee.email, "password": PASSWORD},
        )

        assert response.status_code == 400
        assert "already registered" in response.json()["detail"].lower()

    async def test_register_malformed_body(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"

    async def test_login_success(self, client: AsyncClient, attendee):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": attendee.email, "password": PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    async def test_login_wrong_password(self, client: AsyncClient, attendee):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": attendee.email, "password": "Wrong123!@#"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_login_suspended_account(self, client: AsyncClient, make_user):
        suspended = await make_user(is_active=False)

        response = await client.post(
            "/api/v1/auth/login",
            json={"email": suspended.email, "password": PASSWORD},
        )

        assert response.status_code == 401

    async def test_refresh_token(self, client: AsyncClient, attendee):
        refresh = create_refresh_token(token_claims(attendee))

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})

        assert response.status_code == 200
        assert "access_token" in response.json()

    async def test_refresh_rejects_access_token(self, client: AsyncClient, attendee_headers):
        access = attendee_headers["Authorization"].split()[1]

        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": access})

        assert response.status_code == 401

    async def test_me(self, client: AsyncClient, organizer, organizer_headers):
        response = await client.get("/api/v1/auth/me", headers=organizer_headers)

        assert response.status_code == 200
        assert response.json()["id"] == str(organizer.id)
        assert response.json()["role"] == "organizer"

    async def test_missing_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["code"] == "unauthenticated"

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    async def test_logout_revokes_token(self, client: AsyncClient, attendee_headers):
        response = await client.post("/api/v1/auth/logout", headers=attendee_headers)
        assert response.status_code == 204

        response = await client.get("/api/v1/auth/me", headers=attendee_headers)
        assert response.status_code == 401
        assert "revoked" in response.json()["detail"].lower()

    async def test_suspended_user_token_forbidden(self, client: AsyncClient, make_user):
        suspended = await make_user(is_active=False)

        response = await client.get("/api/v1/auth/me", headers=auth_header(suspended))

        assert response.status_code == 403
        assert response.json()["reason"] == "forbidden-role"
