from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.client.invite_link import build_invite_link
from outstocked.config import get_settings
from outstocked.database import get_db
from outstocked.models.profile import UserProfile
from outstocked.schemas.profile import (
    InviteLinkResponse,
    TeamMember,
    TeamResponse,
    UpdateRoleRequest,
)
from outstocked.services.profile_service import (
    MemberNotFoundError,
    ProfileService,
    RoleChangeError,
)
from outstocked.utils.auth import get_current_admin

router = APIRouter(prefix="/team", tags=["Team"])


def to_member(profile: UserProfile, current: UserProfile) -> TeamMember:
    return TeamMember(
        id=profile.id,
        email=profile.email,
        display_name=profile.display_name,
        role=profile.role,
        created_at=profile.created_at,
        is_you=profile.id == current.id,
    )


@router.get("/members", response_model=TeamResponse)
async def list_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_admin: Annotated[UserProfile, Depends(get_current_admin)],
) -> TeamResponse:
    members = await ProfileService(db).list_by_organization(current_admin.organization_id)
    return TeamResponse(
        members=[to_member(m, current_admin) for m in members],
        total=len(members),
    )


@router.patch("/members/{member_id}", response_model=TeamMember)
async def update_member_role(
    member_id: UUID,
    role_data: UpdateRoleRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_admin: Annotated[UserProfile, Depends(get_current_admin)],
) -> TeamMember:
    try:
        member = await ProfileService(db).update_role(current_admin, member_id, role_data.role)
    except MemberNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except RoleChangeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    await db.commit()
    return to_member(member, current_admin)


@router.get("/invite-link", response_model=InviteLinkResponse)
async def get_invite_link(
    current_admin: Annotated[UserProfile, Depends(get_current_admin)],
) -> InviteLinkResponse:
    link = build_invite_link(get_settings().site_url, str(current_admin.organization_id))
    return InviteLinkResponse(invite_link=link)
