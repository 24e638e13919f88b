"""Typed view of the free-form metadata the auth service keeps on a user."""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from uuid import UUID

DEFAULT_ROLE = "user"
ROLES = ("admin", "user")


@dataclass(frozen=True)
class InvitedMetadata:
    """Created through the admin invite; must set a password before a profile exists."""

    invited_by: str
    invited_role: str = DEFAULT_ROLE
    organization_id: Optional[UUID] = None
    display_name: Optional[str] = None


@dataclass(frozen=True)
class OrgMemberMetadata:
    """Signed up through an invite link; a profile can be provisioned directly."""

    organization_id: UUID
    display_name: Optional[str] = None
    invited_role: str = DEFAULT_ROLE


@dataclass(frozen=True)
class NoMetadata:
    pass


UserMetadata = Union[InvitedMetadata, OrgMemberMetadata, NoMetadata]


def _uuid_or_none(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _role(value: Any) -> str:
    return value if value in ROLES else DEFAULT_ROLE


def decode_metadata(metadata: Optional[Mapping[str, Any]]) -> UserMetadata:
    metadata = metadata or {}
    display_name = metadata.get("display_name") or None
    organization_id = _uuid_or_none(metadata.get("organization_id"))

    if metadata.get("invited_by"):
        return InvitedMetadata(
            invited_by=str(metadata["invited_by"]),
            invited_role=_role(metadata.get("invited_role")),
            organization_id=organization_id,
            display_name=display_name,
        )
    if organization_id is not None:
        return OrgMemberMetadata(
            organization_id=organization_id,
            display_name=display_name,
            invited_role=_role(metadata.get("invited_role")),
        )
    return NoMetadata()
