from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.database import get_db
from outstocked.models.profile import UserProfile
from outstocked.schemas.inventory import (
    LOCATION_ACTION_LABELS,
    HistoryRead,
    ItemRead,
    LocationActionRequest,
    LocationActionResponse,
    ManagedLocation,
)
from outstocked.services.location_service import (
    AssignmentNotFoundError,
    InsufficientStockError,
    LocationService,
)
from outstocked.utils.auth import get_current_profile

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.get("/mine", response_model=list[ManagedLocation])
async def get_my_locations(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> list[ManagedLocation]:
    return await LocationService(db).get_managed_locations(current_profile)


@router.get("/items", response_model=list[ItemRead])
async def list_requestable_items(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> list[ItemRead]:
    items = await LocationService(db).list_active_items(current_profile.organization_id)
    return [ItemRead.model_validate(item) for item in items]


@router.post("/assignments/{assignment_id}/actions", response_model=LocationActionResponse)
async def record_location_action(
    assignment_id: UUID,
    action_data: LocationActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> LocationActionResponse:
    try:
        assignment, history = await LocationService(db).record_action(
            current_profile,
            assignment_id,
            action=action_data.action,
            quantity=action_data.quantity,
            notes=action_data.notes,
        )
    except AssignmentNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except InsufficientStockError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    await db.commit()

    return LocationActionResponse(
        message=f"{LOCATION_ACTION_LABELS[action_data.action]} recorded successfully!",
        quantity_assigned=assignment.quantity_assigned,
        history=HistoryRead.model_validate(history),
    )
