import logging
from typing import Any
from uuid import UUID

from outstocked.config import get_settings
from outstocked.gateway.auth_client import AuthAdminClient
from outstocked.gateway.errors import AuthServiceError
from outstocked.models.profile import UserProfile
from outstocked.schemas.invite import InviteResponse, InviteResult

logger = logging.getLogger(__name__)

INVITED_ROLE = "user"


def normalize_email(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def summarize(results: list[InviteResult]) -> str:
    successful = sum(1 for r in results if r.success)
    failed = len(results) - successful
    message = f"Sent {successful} invite(s)"
    if failed > 0:
        message += f", {failed} failed"
    return message


class InvalidInviteRequestError(Exception):
    """The e-mail list is missing, empty or too long."""
    pass


class InviteService:
    """Sends organization invites through the auth service's admin API."""

    def __init__(self, admin: AuthAdminClient):
        self.admin = admin
        self.settings = get_settings()

    def validate_emails(self, emails: Any) -> list[Any]:
        if not emails or not isinstance(emails, list):
            raise InvalidInviteRequestError("Please provide at least one email")
        limit = self.settings.max_invites_per_request
        if len(emails) > limit:
            raise InvalidInviteRequestError(f"Maximum {limit} invites at a time")
        return emails

    async def invite_one(self, inviter: UserProfile, raw_email: Any) -> InviteResult:
        email = normalize_email(raw_email)
        if not email or "@" not in email:
            shown = email or (raw_email if isinstance(raw_email, str) else str(raw_email))
            return InviteResult(email=shown, success=False, error="Invalid email")

        try:
            await self.admin.invite_user_by_email(
                email,
                data=invite_metadata(inviter.organization_id, inviter.id),
                redirect_to=self.settings.invite_redirect_url,
            )
        except AuthServiceError as e:
            if e.status is None:
                # No answer from the auth service at all
                logger.error("Invite to %s failed: %s", email, e.message)
                return InviteResult(email=email, success=False, error="Failed to send")
            logger.warning("Invite to %s rejected: %s", email, e.message)
            return InviteResult(email=email, success=False, error=e.message)

        logger.info("Invited %s to organization %s", email, inviter.organization_id)
        return InviteResult(email=email, success=True)

    async def send_invites(self, inviter: UserProfile, emails: Any) -> InviteResponse:
        # Sequential, in input order; one failure does not stop the rest
        results = [
            await self.invite_one(inviter, email) for email in self.validate_emails(emails)
        ]
        return InviteResponse(message=summarize(results), results=results)


def invite_metadata(organization_id: UUID, invited_by: UUID) -> dict[str, str]:
    return {
        "organization_id": str(organization_id),
        "invited_by": str(invited_by),
        "invited_role": INVITED_ROLE,
    }
