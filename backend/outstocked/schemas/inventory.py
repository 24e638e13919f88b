from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from outstocked.schemas.profile import ProfileRead

RequestStatus = Literal["pending", "approved", "denied"]
LocationAction = Literal["sale", "giveaway", "restock", "adjustment"]

LOCATION_ACTION_LABELS = {
    "sale": "Sale",
    "giveaway": "Giveaway",
    "restock": "Restock",
    "adjustment": "Adjustment",
}


class ItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    sku: Optional[str] = None
    quantity: int


class LocationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: Optional[str] = None


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    item_id: UUID
    location_id: UUID
    quantity_assigned: int
    notes: Optional[str] = None
    item: ItemRead


class ManagedLocation(LocationRead):
    assignments: list[AssignmentRead] = []


class RequestCreate(BaseModel):
    location_id: UUID
    item_id: UUID
    quantity_requested: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=1000)


class RequestRespond(BaseModel):
    approved: bool
    response_notes: Optional[str] = Field(None, max_length=1000)


class RequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    location_id: UUID
    item_id: UUID
    quantity_requested: int
    notes: Optional[str] = None
    status: RequestStatus
    requested_by: UUID
    requested_at: Optional[datetime] = None
    responded_by: Optional[UUID] = None
    responded_at: Optional[datetime] = None
    response_notes: Optional[str] = None


class RequestDetail(RequestRead):
    item: ItemRead
    location: LocationRead
    requester: ProfileRead


class RespondResponse(BaseModel):
    message: str
    request: RequestRead


class LocationActionRequest(BaseModel):
    action: LocationAction
    quantity: int = Field(..., ge=1)
    notes: Optional[str] = Field(None, max_length=1000)


class HistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    item_id: UUID
    user_id: Optional[UUID] = None
    action: str
    quantity_change: int
    quantity_after: int
    location_name: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class LocationActionResponse(BaseModel):
    message: str
    quantity_assigned: int
    history: HistoryRead


class DashboardStats(BaseModel):
    total_items: int
    total_quantity: int
    low_stock_count: int
    pending_requests: int


class LocationSummary(LocationRead):
    total_assigned: int
    item_count: int
    pending_requests: int


class ActivityEntry(HistoryRead):
    item_name: Optional[str] = None
    recorded_by: Optional[str] = None


class DashboardResponse(BaseModel):
    stats: DashboardStats
    locations: list[LocationSummary] = []
    recent_activity: list[ActivityEntry] = []
    pending_requests: list[RequestDetail] = []
