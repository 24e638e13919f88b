import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from outstocked.models.inventory import (
    InventoryItem,
    ItemAssignment,
    Location,
    LocationHistory,
    LocationManager,
)
from outstocked.models.profile import UserProfile
from outstocked.schemas.inventory import AssignmentRead, ManagedLocation

logger = logging.getLogger(__name__)


class AssignmentNotFoundError(Exception):
    """Assignment does not exist, was revoked or is not managed by the caller."""
    pass


class InsufficientStockError(Exception):
    """Quantity exceeds available stock."""
    pass


class LocationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def managed_location_ids(self, user_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(LocationManager.location_id).where(
                LocationManager.user_id == user_id,
                LocationManager.revoked_at.is_(None),
            )
        )
        return list(result.scalars().all())

    async def get_managed_locations(self, profile: UserProfile) -> list[ManagedLocation]:
        """Locations the user manages, by name, with their active assignments."""
        location_ids = await self.managed_location_ids(profile.id)
        if not location_ids:
            return []

        result = await self.db.execute(
            select(Location)
            .where(
                Location.id.in_(location_ids),
                Location.organization_id == profile.organization_id,
            )
            .order_by(Location.name)
            .options(selectinload(Location.assignments).selectinload(ItemAssignment.item))
        )

        managed = []
        for location in result.scalars().all():
            assignments = [
                AssignmentRead.model_validate(a)
                for a in location.assignments
                if a.revoked_at is None and a.item is not None
            ]
            managed.append(
                ManagedLocation(
                    id=location.id,
                    name=location.name,
                    address=location.address,
                    assignments=assignments,
                )
            )
        return managed

    async def get_assignment(self, assignment_id: UUID) -> Optional[ItemAssignment]:
        result = await self.db.execute(
            select(ItemAssignment)
            .where(ItemAssignment.id == assignment_id)
            .options(selectinload(ItemAssignment.location))
        )
        return result.scalar_one_or_none()

    async def record_action(
        self,
        profile: UserProfile,
        assignment_id: UUID,
        action: str,
        quantity: int,
        notes: Optional[str] = None,
    ) -> tuple[ItemAssignment, LocationHistory]:
        """
        Record a sale, giveaway, restock or adjustment at a managed location.

        Restocks add to the assigned quantity, every other action removes
        from it and may not take more than is in stock. The history entry is
        written before the quantity changes.
        """
        assignment = await self.get_assignment(assignment_id)
        if assignment is None or assignment.revoked_at is not None:
            raise AssignmentNotFoundError("Assignment not found")

        location = assignment.location
        if location is None or location.organization_id != profile.organization_id:
            raise AssignmentNotFoundError("Assignment not found")
        if assignment.location_id not in await self.managed_location_ids(profile.id):
            raise AssignmentNotFoundError("Assignment not found")

        available = assignment.quantity_assigned or 0
        if action != "restock" and quantity > available:
            raise InsufficientStockError("Quantity exceeds available stock")

        change = quantity if action == "restock" else -quantity
        new_quantity = available + change

        history = LocationHistory(
            item_id=assignment.item_id,
            user_id=profile.id,
            action=action,
            quantity_change=change,
            quantity_after=new_quantity,
            location_name=location.name,
            notes=notes or None,
        )
        self.db.add(history)
        await self.db.flush()

        assignment.quantity_assigned = new_quantity
        await self.db.flush()
        await self.db.refresh(history)

        logger.info(
            "%s of %d recorded at %s (now %d)", action, quantity, location.name, new_quantity
        )
        return assignment, history

    async def list_active_items(self, organization_id: UUID) -> list[InventoryItem]:
        result = await self.db.execute(
            select(InventoryItem)
            .where(
                InventoryItem.organization_id == organization_id,
                InventoryItem.deleted_at.is_(None),
            )
            .order_by(InventoryItem.name)
        )
        return list(result.scalars().all())
