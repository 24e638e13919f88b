import time
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# Refresh a little before the token actually expires
EXPIRY_MARGIN_SECONDS = 10


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def email_local_part(self) -> str | None:
        if not self.email:
            return None
        return self.email.split("@")[0]


class Session(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None  # Unix timestamp
    user: AuthUser

    def model_post_init(self, __context: Any) -> None:
        if self.expires_at is None and self.expires_in is not None:
            self.expires_at = int(time.time()) + self.expires_in

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = time.time() if now is None else now
        return self.expires_at <= now + EXPIRY_MARGIN_SECONDS


class TokenPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sub: UUID  # Identity id issued by the auth service
    exp: int
    aud: str | list[str] | None = None
    email: str | None = None
    role: str | None = None  # Postgres role ("authenticated"), not the profile role
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    def to_user(self) -> AuthUser:
        return AuthUser(id=self.sub, email=self.email, user_metadata=self.user_metadata)
