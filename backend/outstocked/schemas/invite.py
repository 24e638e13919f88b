from typing import Any, Optional

from pydantic import BaseModel


class InviteRequest(BaseModel):
    # Left loose so malformed lists are answered with 400 rather than 422
    emails: Any = None


class InviteResult(BaseModel):
    email: str
    success: bool
    error: Optional[str] = None


class InviteResponse(BaseModel):
    message: str
    results: list[InviteResult]
