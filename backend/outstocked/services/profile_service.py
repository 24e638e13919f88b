from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.models.profile import UserProfile


class ProfileService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, profile_id: UUID) -> Optional[UserProfile]:
        result = await self.db.execute(select(UserProfile).where(UserProfile.id == profile_id))
        return result.scalar_one_or_none()

    async def list_by_organization(self, organization_id: UUID) -> list[UserProfile]:
        result = await self.db.execute(
            select(UserProfile)
            .where(UserProfile.organization_id == organization_id)
            .order_by(UserProfile.created_at, UserProfile.email)
        )
        return list(result.scalars().all())

    async def update_role(
        self, acting: UserProfile, member_id: UUID, role: str
    ) -> UserProfile:
        """
        Change a member's role within the acting admin's organization.
        Raises MemberNotFoundError for members of other organizations.
        """
        member = await self.get_by_id(member_id)
        if member is None or member.organization_id != acting.organization_id:
            raise MemberNotFoundError("Member not found")

        if member.id == acting.id and role != "admin":
            raise RoleChangeError("You cannot remove your own admin privileges")

        member.role = role
        await self.db.flush()
        await self.db.refresh(member)
        return member


class MemberNotFoundError(Exception):
    """Member does not exist in the caller's organization."""
    pass


class RoleChangeError(Exception):
    """Role change is not allowed."""
    pass
