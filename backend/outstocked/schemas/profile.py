from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

Role = Literal["admin", "user"]


class ProfileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: UUID
    organization_id: UUID
    email: str
    display_name: Optional[str] = None
    role: Role = "user"
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class OrganizationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: UUID
    name: str


class TeamMember(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    display_name: Optional[str] = None
    role: Role
    created_at: Optional[datetime] = None
    is_you: bool = False


class TeamResponse(BaseModel):
    members: list[TeamMember] = []
    total: int


class UpdateRoleRequest(BaseModel):
    role: Role


class InviteLinkResponse(BaseModel):
    invite_link: str
