import logging
from typing import Optional

from outstocked.client.errors import InputError, OrganizationConflictError
from outstocked.client.profile_loader import ORGANIZATIONS_TABLE, PROFILES_TABLE
from outstocked.client.validation import validate_credentials
from outstocked.gateway.errors import ServiceError
from outstocked.schemas.auth import Session

logger = logging.getLogger(__name__)


class InviteFlow:
    """Joining an organization from an invite link, by signing up or signing in."""

    def __init__(self, auth, db, organization_id: Optional[str]):
        self.auth = auth
        self.db = db
        self.organization_id = organization_id

    async def load_organization_name(self) -> Optional[str]:
        if not self.organization_id:
            return None
        try:
            row = await self.db.select_one(
                ORGANIZATIONS_TABLE, columns="name", id=self.organization_id
            )
        except ServiceError as e:
            logger.error("Error fetching organization %s: %s", self.organization_id, e.message)
            return None
        return row["name"] if row else None

    async def sign_up(
        self, email: str, password: str, display_name: Optional[str] = None
    ) -> Optional[Session]:
        validate_credentials(email, password)
        if not self.organization_id:
            raise InputError("Invalid invite link")

        # The auth listener picks up the new session; profile provisioning follows
        return await self.auth.sign_up(
            email,
            password,
            data={
                "organization_id": self.organization_id,
                "display_name": display_name or email.split("@")[0],
            },
        )

    async def sign_in(self, email: str, password: str) -> Session:
        validate_credentials(email, password)
        session = await self.auth.sign_in_with_password(email, password)

        if self.organization_id:
            try:
                profile = await self.db.select_one(
                    PROFILES_TABLE, columns="organization_id", id=str(session.user.id)
                )
            except ServiceError as e:
                logger.warning("Could not check organization of %s: %s", session.user.id, e.message)
                profile = None

            # One organization per account
            if profile and str(profile["organization_id"]) != str(self.organization_id):
                await self.auth.sign_out()
                raise OrganizationConflictError()

        return session
