from typing import Annotated, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.database import get_db
from outstocked.models.profile import UserProfile
from outstocked.schemas.inventory import (
    RequestCreate,
    RequestDetail,
    RequestRead,
    RequestRespond,
    RespondResponse,
)
from outstocked.services.request_service import (
    RequestNotFoundError,
    RequestNotPendingError,
    RequestService,
)
from outstocked.utils.auth import get_current_admin, get_current_profile

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.get("", response_model=list[RequestDetail])
async def list_requests(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_admin: Annotated[UserProfile, Depends(get_current_admin)],
    status_filter: Annotated[
        Literal["pending", "approved", "denied", "all"], Query(alias="status")
    ] = "pending",
) -> list[RequestDetail]:
    status_value: Optional[str] = None if status_filter == "all" else status_filter
    return await RequestService(db).list_requests(
        current_admin.organization_id, status=status_value
    )


@router.post("", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
async def create_request(
    request_data: RequestCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> RequestRead:
    try:
        request = await RequestService(db).create(current_profile, request_data)
    except RequestNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    await db.commit()
    return RequestRead.model_validate(request)


@router.post("/{request_id}/respond", response_model=RespondResponse)
async def respond_to_request(
    request_id: UUID,
    response_data: RequestRespond,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_admin: Annotated[UserProfile, Depends(get_current_admin)],
) -> RespondResponse:
    try:
        request = await RequestService(db).respond(
            current_admin,
            request_id,
            approved=response_data.approved,
            response_notes=response_data.response_notes,
        )
    except RequestNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except RequestNotPendingError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        )
    await db.commit()

    return RespondResponse(
        message=f"Request {request.status} successfully!",
        request=RequestRead.model_validate(request),
    )
