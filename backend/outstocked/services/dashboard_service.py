from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.config import get_settings
from outstocked.models.inventory import (
    InventoryItem,
    InventoryRequest,
    ItemAssignment,
    Location,
    LocationHistory,
)
from outstocked.models.profile import UserProfile
from outstocked.schemas.inventory import (
    ActivityEntry,
    DashboardResponse,
    DashboardStats,
    HistoryRead,
    LocationSummary,
)
from outstocked.services.request_service import RequestService

RECENT_ACTIVITY_LIMIT = 10
PENDING_PREVIEW_LIMIT = 5


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def get_stats(self, organization_id: UUID) -> DashboardStats:
        result = await self.db.execute(
            select(InventoryItem.quantity).where(
                InventoryItem.organization_id == organization_id,
                InventoryItem.deleted_at.is_(None),
            )
        )
        quantities = [q or 0 for q in result.scalars().all()]

        pending = await self.db.scalar(
            select(func.count(InventoryRequest.id)).where(
                InventoryRequest.organization_id == organization_id,
                InventoryRequest.status == "pending",
            )
        )

        return DashboardStats(
            total_items=len(quantities),
            total_quantity=sum(quantities),
            low_stock_count=sum(1 for q in quantities if q <= self.settings.low_stock_threshold),
            pending_requests=pending or 0,
        )

    async def get_location_summaries(self, organization_id: UUID) -> list[LocationSummary]:
        result = await self.db.execute(
            select(Location)
            .where(Location.organization_id == organization_id)
            .order_by(Location.name)
        )

        summaries = []
        for location in result.scalars().all():
            totals = await self.db.execute(
                select(
                    func.coalesce(func.sum(ItemAssignment.quantity_assigned), 0),
                    func.count(ItemAssignment.id),
                ).where(
                    ItemAssignment.location_id == location.id,
                    ItemAssignment.revoked_at.is_(None),
                )
            )
            total_assigned, item_count = totals.one()

            pending = await self.db.scalar(
                select(func.count(InventoryRequest.id)).where(
                    InventoryRequest.location_id == location.id,
                    InventoryRequest.status == "pending",
                )
            )

            summaries.append(
                LocationSummary(
                    id=location.id,
                    name=location.name,
                    address=location.address,
                    total_assigned=int(total_assigned or 0),
                    item_count=item_count or 0,
                    pending_requests=pending or 0,
                )
            )
        return summaries

    async def get_recent_activity(
        self, organization_id: UUID, limit: int = RECENT_ACTIVITY_LIMIT
    ) -> list[ActivityEntry]:
        result = await self.db.execute(
            select(LocationHistory, InventoryItem.name, UserProfile)
            .join(InventoryItem, LocationHistory.item_id == InventoryItem.id)
            .outerjoin(UserProfile, LocationHistory.user_id == UserProfile.id)
            .where(InventoryItem.organization_id == organization_id)
            .order_by(LocationHistory.created_at.desc())
            .limit(limit)
        )

        return [
            ActivityEntry(
                **HistoryRead.model_validate(entry).model_dump(),
                item_name=item_name,
                recorded_by=user.name if user else None,
            )
            for entry, item_name, user in result.all()
        ]

    async def get_dashboard(self, profile: UserProfile) -> DashboardResponse:
        organization_id = profile.organization_id
        pending = []
        if profile.is_admin:
            pending = await RequestService(self.db).list_requests(
                organization_id, status="pending", limit=PENDING_PREVIEW_LIMIT
            )

        return DashboardResponse(
            stats=await self.get_stats(organization_id),
            locations=await self.get_location_summaries(organization_id),
            recent_activity=await self.get_recent_activity(organization_id),
            pending_requests=pending,
        )
