from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.database import get_db
from outstocked.models.profile import UserProfile
from outstocked.schemas.inventory import DashboardResponse
from outstocked.services.dashboard_service import DashboardService
from outstocked.utils.auth import get_current_profile

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> DashboardResponse:
    return await DashboardService(db).get_dashboard(current_profile)
