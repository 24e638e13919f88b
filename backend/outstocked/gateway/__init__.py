"""HTTP clients for the hosted auth service and database."""

from dataclasses import dataclass
from typing import Optional

from outstocked.config import Settings, get_settings
from outstocked.gateway.auth_client import AuthAdminClient, AuthClient, Subscription
from outstocked.gateway.errors import AuthServiceError, DatabaseError, ServiceError
from outstocked.gateway.rest_client import RestClient
from outstocked.gateway.session_store import FileSessionStore, MemorySessionStore


@dataclass
class Backend:
    auth: AuthClient
    db: RestClient

    async def aclose(self) -> None:
        await self.auth.aclose()
        await self.db.aclose()


def create_backend(settings: Optional[Settings] = None, store=None) -> Backend:
    """Build the client-side auth + database pair sharing one session."""
    settings = settings or get_settings()
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be configured")

    if store is None:
        store = (
            FileSessionStore(settings.session_file)
            if settings.session_file
            else MemorySessionStore()
        )

    auth = AuthClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        store=store,
        timeout=settings.auth_request_timeout,
    )
    db = RestClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        token_provider=lambda: auth.access_token,
        timeout=settings.auth_request_timeout,
    )
    return Backend(auth=auth, db=db)


__all__ = [
    "AuthAdminClient",
    "AuthClient",
    "AuthServiceError",
    "Backend",
    "DatabaseError",
    "FileSessionStore",
    "MemorySessionStore",
    "RestClient",
    "ServiceError",
    "Subscription",
    "create_backend",
]
