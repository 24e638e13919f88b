from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.database import get_db
from outstocked.gateway.auth_client import AuthAdminClient
from outstocked.schemas.auth import AuthUser
from outstocked.schemas.invite import InviteRequest, InviteResponse
from outstocked.services.invite_service import InvalidInviteRequestError, InviteService
from outstocked.services.profile_service import ProfileService
from outstocked.utils.auth import get_auth_admin, get_current_auth_user

router = APIRouter(tags=["Invites"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type",
}


@router.options("/invite", include_in_schema=False)
async def invite_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post("/invite", response_model=InviteResponse)
async def send_invites(
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_user: Annotated[AuthUser, Depends(get_current_auth_user)],
    admin: Annotated[AuthAdminClient, Depends(get_auth_admin)],
    invite_data: Optional[InviteRequest] = None,
) -> InviteResponse:
    """Invite up to ten people by e-mail into the caller's organization."""
    response.headers.update(CORS_HEADERS)

    profile = await ProfileService(db).get_by_id(auth_user.id)
    if profile is None or not profile.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can invite users",
        )

    try:
        return await InviteService(admin).send_invites(
            profile, invite_data.emails if invite_data is not None else None
        )
    except InvalidInviteRequestError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
