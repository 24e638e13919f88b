from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from outstocked.config import get_settings
from outstocked.database import get_db
from outstocked.gateway.auth_client import AuthAdminClient
from outstocked.gateway.errors import AuthServiceError
from outstocked.models.profile import UserProfile
from outstocked.schemas.auth import AuthUser, TokenPayload
from outstocked.services.profile_service import ProfileService

settings = get_settings()

# HTTP Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)

# Audience the auth service stamps on user access tokens
TOKEN_AUDIENCE = "authenticated"

_admin_client: Optional[AuthAdminClient] = None


def get_auth_admin() -> AuthAdminClient:
    """Shared service-role client for the hosted auth service."""
    global _admin_client
    if _admin_client is None:
        _admin_client = AuthAdminClient(
            settings.supabase_url,
            settings.supabase_service_role_key or settings.supabase_anon_key or "",
            timeout=settings.auth_request_timeout,
        )
    return _admin_client


async def close_auth_admin() -> None:
    global _admin_client
    if _admin_client is not None:
        await _admin_client.aclose()
        _admin_client = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> TokenPayload:
    """Verify an access token signed with the project's JWT secret."""
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=TOKEN_AUDIENCE,
            options={"verify_exp": True},
        )
        return TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise _unauthorized("Unauthorized")


async def get_current_auth_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    admin: Annotated[AuthAdminClient, Depends(get_auth_admin)],
) -> AuthUser:
    """
    Identity behind the bearer token.

    Tokens are checked locally when SUPABASE_JWT_SECRET is configured,
    otherwise the auth service is asked who the token belongs to.
    """
    if not credentials or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Missing authorization")

    token = credentials.credentials
    if settings.supabase_jwt_secret:
        return decode_token(token).to_user()

    try:
        return await admin.get_user(token)
    except AuthServiceError:
        raise _unauthorized("Unauthorized")


async def get_current_profile(
    auth_user: Annotated[AuthUser, Depends(get_current_auth_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserProfile:
    profile = await ProfileService(db).get_by_id(auth_user.id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not found",
        )
    return profile


def require_admin(profile: UserProfile, detail: str = "Admin access required") -> None:
    if not profile.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


async def get_current_admin(
    profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> UserProfile:
    require_admin(profile)
    return profile

