import pytest
from httpx import AsyncClient

from conftest import headers_for, make_profile


class TestTeamMembers:
    """Tests for the team management endpoints."""

    @pytest.mark.asyncio
    async def test_list_members(
        self, client: AsyncClient, admin_profile, member_profile, other_organization, db_session
    ):
        await make_profile(db_session, other_organization)

        response = await client.get("/api/team/members", headers=headers_for(admin_profile))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        ids = [m["id"] for m in data["members"]]
        assert ids == [str(admin_profile.id), str(member_profile.id)]
        assert data["members"][0]["is_you"] is True
        assert data["members"][1]["is_you"] is False

    @pytest.mark.asyncio
    async def test_promote_member(self, client: AsyncClient, admin_profile, member_profile):
        response = await client.patch(
            f"/api/team/members/{member_profile.id}",
            json={"role": "admin"},
            headers=headers_for(admin_profile),
        )
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    @pytest.mark.asyncio
    async def test_cannot_demote_self(self, client: AsyncClient, admin_profile):
        response = await client.patch(
            f"/api/team/members/{admin_profile.id}",
            json={"role": "user"},
            headers=headers_for(admin_profile),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "You cannot remove your own admin privileges"

    @pytest.mark.asyncio
    async def test_member_of_other_organization(
        self, client: AsyncClient, admin_profile, other_organization, db_session
    ):
        outsider = await make_profile(db_session, other_organization)
        response = await client.patch(
            f"/api/team/members/{outsider.id}",
            json={"role": "admin"},
            headers=headers_for(admin_profile),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_role(self, client: AsyncClient, admin_profile, member_profile):
        response = await client.patch(
            f"/api/team/members/{member_profile.id}",
            json={"role": "owner"},
            headers=headers_for(admin_profile),
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invite_link(self, client: AsyncClient, admin_profile):
        response = await client.get("/api/team/invite-link", headers=headers_for(admin_profile))
        assert response.status_code == 200
        assert response.json()["invite_link"] == (
            f"https://outstocked.vercel.app/invite?org={admin_profile.organization_id}"
        )
