"""
Integration tests for saved family members.
"""
import pytest
from httpx import AsyncClient


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.mark.integration
@pytest.mark.asyncio
class TestFamilyMemberEndpoints:

    async def test_create_and_list(self, client: AsyncClient, member_token, other_token):
        response = await client.post(
            "/api/v1/family-members/",
            headers=_auth(member_token),
            json={"name": "  Robin  ", "age_group": "3-5", "is_default_member": True},
        )

        assert response.status_code == 201
        assert response.json()["name"] == "Robin"
        mine = await client.get("/api/v1/family-members/", headers=_auth(member_token))
        theirs = await client.get("/api/v1/family-members/", headers=_auth(other_token))
        assert [m["name"] for m in mine.json()] == ["Robin"]
        assert theirs.json() == []

    async def test_age_group_from_birth_date(self, client: AsyncClient, member_token):
        response = await client.post(
            "/api/v1/family-members/",
            headers=_auth(member_token),
            json={"name": "Grandpa Joe", "birth_date": "1950-01-01"},
        )

        assert response.json()["age_group"] == "11+"

    async def test_name_too_short(self, client: AsyncClient, member_token):
        response = await client.post("/api/v1/family-members/", headers=_auth(member_token), json={"name": "J"})

        assert response.status_code == 400

    async def test_update(self, client: AsyncClient, member_token):
        created = (await client.post(
            "/api/v1/family-members/",
            headers=_auth(member_token),
            json={"name": "Robin", "age_group": "3-5"},
        )).json()

        response = await client.patch(
            f"/api/v1/family-members/{created['id']}",
            headers=_auth(member_token),
            json={"age_group": "6-10"},
        )

        assert response.status_code == 200
        assert response.json()["age_group"] == "6-10"

    async def test_other_users_member_is_hidden(self, client: AsyncClient, member_token, other_token):
        created = (await client.post(
            "/api/v1/family-members/",
            headers=_auth(member_token),
            json={"name": "Robin"},
        )).json()

        patch = await client.patch(f"/api/v1/family-members/{created['id']}", headers=_auth(other_token), json={"name": "Taken"})
        delete = await client.delete(f"/api/v1/family-members/{created['id']}", headers=_auth(other_token))

        assert patch.status_code == 404
        assert delete.status_code == 404

    async def test_delete(self, client: AsyncClient, member_token):
        created = (await client.post(
            "/api/v1/family-members/",
            headers=_auth(member_token),
            json={"name": "Robin"},
        )).json()

        response = await client.delete(f"/api/v1/family-members/{created['id']}", headers=_auth(member_token))

        assert response.status_code == 204
        assert (await client.get("/api/v1/family-members/", headers=_auth(member_token))).json() == []
