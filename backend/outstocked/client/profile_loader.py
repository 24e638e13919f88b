import logging
from dataclasses import dataclass
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import ValidationError

from outstocked.client.metadata import (
    InvitedMetadata,
    OrgMemberMetadata,
    decode_metadata,
)
from outstocked.gateway.errors import ServiceError
from outstocked.schemas.auth import AuthUser
from outstocked.schemas.profile import OrganizationRead, ProfileRead

logger = logging.getLogger(__name__)

PROFILES_TABLE = "user_profiles"
ORGANIZATIONS_TABLE = "organizations"


# Lookup results: a failed query is never mistaken for a missing row


@dataclass(frozen=True)
class Found:
    row: dict[str, Any]


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class Failed:
    error: Exception


Lookup = Union[Found, Absent, Failed]


# Outcomes


@dataclass(frozen=True)
class Resolved:
    profile: ProfileRead
    organization: Optional[OrganizationRead]


@dataclass(frozen=True)
class NeedsPasswordSetup:
    pass


@dataclass(frozen=True)
class Unresolved:
    reason: str


ProfileOutcome = Union[Resolved, NeedsPasswordSetup, Unresolved]


def profile_row_for(user: AuthUser, organization_id: UUID, display_name: Optional[str], role: str) -> dict[str, Any]:
    return {
        "id": str(user.id),
        "organization_id": str(organization_id),
        "email": user.email,
        "display_name": display_name or user.email_local_part,
        "role": role,
    }


class ProfileLoader:
    """
    Resolves the profile and organization of a signed-in user.

    Order of evaluation:
    1. profile by user id;
    2. if found, its organization (missing organization is not fatal);
    3. if absent, the user's metadata decides: invited users must set a
       password first, invite-link members get a profile provisioned, anyone
       else stays unresolved.
    """

    def __init__(self, auth, db):
        self.auth = auth
        self.db = db

    async def lookup_profile(self, user_id: UUID) -> Lookup:
        try:
            row = await self.db.select_one(PROFILES_TABLE, id=str(user_id))
        except ServiceError as e:
            return Failed(e)
        return Found(row) if row else Absent()

    async def get_organization(self, organization_id: UUID) -> Optional[OrganizationRead]:
        try:
            row = await self.db.select_one(ORGANIZATIONS_TABLE, id=str(organization_id))
        except ServiceError as e:
            logger.warning("Organization %s lookup failed: %s", organization_id, e.message)
            return None
        if row is None:
            logger.warning("Organization %s not found", organization_id)
            return None
        return OrganizationRead.model_validate(row)

    async def load(self, user_id: UUID) -> ProfileOutcome:
        lookup = await self.lookup_profile(user_id)

        if isinstance(lookup, Failed):
            logger.error("Profile query for %s failed: %s", user_id, lookup.error)
            return Unresolved("profile query failed")

        if isinstance(lookup, Found):
            try:
                profile = ProfileRead.model_validate(lookup.row)
            except ValidationError as e:
                logger.error("Malformed profile row for %s: %s", user_id, e)
                return Unresolved("malformed profile")
            organization = await self.get_organization(profile.organization_id)
            return Resolved(profile, organization)

        logger.info("No profile found for %s, checking if invited user...", user_id)
        try:
            user = await self.auth.get_user()
        except ServiceError as e:
            logger.error("Could not re-fetch user %s: %s", user_id, e.message)
            return Unresolved("user lookup failed")
        if user is None:
            return Unresolved("not authenticated")

        metadata = decode_metadata(user.user_metadata)

        if isinstance(metadata, InvitedMetadata):
            logger.info("Invited user %s needs to complete password setup", user_id)
            return NeedsPasswordSetup()

        if isinstance(metadata, OrgMemberMetadata):
            return await self._provision(user, metadata)

        logger.info("No organization_id in metadata for %s", user_id)
        return Unresolved("no organization metadata")

    async def _provision(self, user: AuthUser, metadata: OrgMemberMetadata) -> ProfileOutcome:
        row = profile_row_for(
            user, metadata.organization_id, metadata.display_name, metadata.invited_role
        )
        try:
            created = await self.db.insert(PROFILES_TABLE, row)
        except ServiceError as e:
            logger.error("Error creating profile for %s: %s", user.id, e.message)
            return Unresolved("profile creation failed")

        profile = ProfileRead.model_validate(created)
        logger.info("Provisioned profile for %s in organization %s", user.id, profile.organization_id)
        organization = await self.get_organization(profile.organization_id)
        return Resolved(profile, organization)
