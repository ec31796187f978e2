"""
Integration tests for authentication endpoints.
Tests registration (with its approval request), login, refresh, logout and
role checks against a real database.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select

from memberhub.core.security import decode_token
from memberhub.db.models import AccountApproval, RoleEnum, SenderRole


REGISTRATION = {
    "email": "newuser@example.com",
    "password": "Test123!@#",
    "first_name": "New",
    "last_name": "User",
    "phone_number": " 555-0100 ",
    "location": "Springfield",
    "how_did_you_hear": "friend",
    "referred_by": "Mary Member",
}


@pytest.mark.integration
@pytest.mark.asyncio
class TestAuthEndpoints:
    """Test authentication API endpoints."""

    async def test_register_opens_approval_request(self, client: AsyncClient, db_session, published_events):
        """A new account is a pending member with a pending approval request."""
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["role"] == "member"
        assert data["status"] == "pending"
        assert "hashed_password" not in data

        approval = (await db_session.execute(select(AccountApproval))).scalars().one()
        assert str(approval.user_id) == data["id"]
        assert approval.phone == "555-0100"
        assert approval.referred_by == "Mary Member"
        assert approval.awaiting_response_from == SenderRole.admin
        assert [key for key, _ in published_events] == ["approval.submitted"]

    async def test_register_weak_password(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "password": "weak"})

        assert response.status_code == 400
        assert "password" in response.json()["detail"].lower()

    async def test_register_duplicate_email(self, client: AsyncClient, test_member):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "email": test_member.email})

        assert response.status_code == 400
        assert "already registered" in response.json()["detail"].lower()

    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "email": "not-an-email"})

        assert response.status_code == 422

    async def test_login_success(self, client: AsyncClient, test_member):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": test_member.email, "password": "Test123!@#"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]

    async def test_pending_member_can_log_in(self, client: AsyncClient, pending_member):
        """Review status does not block login, only RSVPs and payments."""
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": pending_member.email, "password": "Test123!@#"},
        )

        assert response.status_code == 200

    async def test_login_wrong_password(self, client: AsyncClient, test_member):
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": test_member.email, "password": "Wrong123!@#"},
        )

        assert response.status_code == 401

    async def test_refresh_token_success(self, client: AsyncClient, test_member):
        login = await client.post(
            "/api/v1/auth/login",
            json={"email": test_member.email, "password": "Test123!@#"},
        )
        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": login.json()["refresh_token"]},
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["id"] == str(test_member.id)

    async def test_refresh_picks_up_role_change(self, client: AsyncClient, db_session, test_member):
        """A member promoted after login gets the admin role on the next refresh."""
        login = await client.post(
            "/api/v1/auth/login",
            json={"email": test_member.email, "password": "Test123!@#"},
        )
        test_member.role = RoleEnum.admin
        db_session.add(test_member)
        await db_session.commit()

        response = await client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": login.json()["refresh_token"]},
        )

        assert decode_token(response.json()["access_token"])["role"] == "admin"

    async def test_refresh_with_access_token_fails(self, client: AsyncClient, member_token):
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": member_token})

        assert response.status_code == 401

    async def test_logout_revokes_token(self, client: AsyncClient, member_token):
        """After logout the same token is refused."""
        headers = {"Authorization": f"Bearer {member_token}"}

        response = await client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 204

        response = await client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401
        assert "revoked" in response.json()["detail"].lower()

    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code in (401, 403)

    async def test_me_with_invalid_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer invalid.token.here"})

        assert response.status_code == 401

    async def test_admin_only_endpoint_as_member(self, client: AsyncClient, member_token):
        response = await client.get("/api/v1/approvals/", headers={"Authorization": f"Bearer {member_token}"})

        assert response.status_code == 403

    async def test_admin_only_endpoint_as_admin(self, client: AsyncClient, admin_token):
        response = await client.get("/api/v1/approvals/", headers={"Authorization": f"Bearer {admin_token}"})

        assert response.status_code == 200


@pytest.mark.integration
@pytest.mark.asyncio
async def test_health_reports_database(client: AsyncClient):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "ok"}
    assert response.headers["X-Content-Type-Options"] == "nosniff"
