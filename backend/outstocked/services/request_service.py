import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.models.inventory import (
    InventoryItem,
    InventoryRequest,
    ItemAssignment,
    Location,
    LocationHistory,
)
from outstocked.models.profile import UserProfile
from outstocked.schemas.inventory import (
    ItemRead,
    LocationRead,
    RequestCreate,
    RequestDetail,
    RequestRead,
)
from outstocked.schemas.profile import ProfileRead

logger = logging.getLogger(__name__)


class RequestNotFoundError(Exception):
    """Request, item or location does not exist in the caller's organization."""
    pass


class RequestNotPendingError(Exception):
    """The request has already been answered."""
    pass


class RequestService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, organization_id: UUID, request_id: UUID) -> Optional[InventoryRequest]:
        result = await self.db.execute(
            select(InventoryRequest).where(
                InventoryRequest.id == request_id,
                InventoryRequest.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_requests(
        self,
        organization_id: UUID,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[RequestDetail]:
        """
        Requests of an organization, newest first, with item, location and
        requester attached. Requests whose item, location or requester no
        longer exists are left out.
        """
        query = (
            select(InventoryRequest)
            .where(InventoryRequest.organization_id == organization_id)
            .order_by(InventoryRequest.requested_at.desc())
        )
        if status:
            query = query.where(InventoryRequest.status == status)
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        requests = list(result.scalars().all())

        details = []
        for request in requests:
            item = await self.db.get(InventoryItem, request.item_id)
            location = await self.db.get(Location, request.location_id)
            requester = await self.db.get(UserProfile, request.requested_by)
            if item is None or location is None or requester is None:
                logger.debug("Skipping request %s with missing references", request.id)
                continue
            details.append(
                RequestDetail(
                    **RequestRead.model_validate(request).model_dump(),
                    item=ItemRead.model_validate(item),
                    location=LocationRead.model_validate(location),
                    requester=ProfileRead.model_validate(requester),
                )
            )
        return details

    async def create(self, requester: UserProfile, data: RequestCreate) -> InventoryRequest:
        item = await self.db.get(InventoryItem, data.item_id)
        if item is None or item.organization_id != requester.organization_id or item.deleted_at:
            raise RequestNotFoundError("Item not found")
        location = await self.db.get(Location, data.location_id)
        if location is None or location.organization_id != requester.organization_id:
            raise RequestNotFoundError("Location not found")

        request = InventoryRequest(
            organization_id=requester.organization_id,
            location_id=data.location_id,
            item_id=data.item_id,
            quantity_requested=data.quantity_requested,
            notes=data.notes,
            status="pending",
            requested_by=requester.id,
        )
        self.db.add(request)
        await self.db.flush()
        await self.db.refresh(request)
        return request

    async def respond(
        self,
        responder: UserProfile,
        request_id: UUID,
        approved: bool,
        response_notes: Optional[str] = None,
    ) -> InventoryRequest:
        """
        Approve or deny a pending request.

        Approval adds the requested quantity to the active assignment of the
        item at the location, creating the assignment if there is none, and
        records a restock entry in the location history.
        """
        request = await self.get_by_id(responder.organization_id, request_id)
        if request is None:
            raise RequestNotFoundError("Request not found")
        if request.status != "pending":
            raise RequestNotPendingError(f"Request has already been {request.status}")

        request.status = "approved" if approved else "denied"
        request.responded_by = responder.id
        request.responded_at = datetime.now(timezone.utc)
        request.response_notes = response_notes or None

        if approved:
            await self._fulfil(responder, request)

        await self.db.flush()
        await self.db.refresh(request)
        logger.info("Request %s %s by %s", request.id, request.status, responder.id)
        return request

    async def _fulfil(self, responder: UserProfile, request: InventoryRequest) -> None:
        result = await self.db.execute(
            select(ItemAssignment).where(
                ItemAssignment.item_id == request.item_id,
                ItemAssignment.location_id == request.location_id,
                ItemAssignment.revoked_at.is_(None),
            )
        )
        assignment = result.scalars().first()

        current = (assignment.quantity_assigned or 0) if assignment else 0
        if assignment:
            assignment.quantity_assigned = current + request.quantity_requested
        else:
            self.db.add(
                ItemAssignment(
                    item_id=request.item_id,
                    location_id=request.location_id,
                    assigned_by=responder.id,
                    quantity_assigned=request.quantity_requested,
                    notes=f"Fulfilled from request #{str(request.id)[:8]}",
                )
            )

        location = await self.db.get(Location, request.location_id)
        self.db.add(
            LocationHistory(
                item_id=request.item_id,
                user_id=responder.id,
                action="restock",
                quantity_change=request.quantity_requested,
                quantity_after=current + request.quantity_requested,
                location_name=location.name if location else "",
                notes=f"Request approved: {request.quantity_requested} units",
            )
        )
