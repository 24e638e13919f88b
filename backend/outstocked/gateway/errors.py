from typing import Optional

import httpx

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class ServiceError(Exception):
    """Error reported by the hosted backend. ``message`` is the provider's own text."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class AuthServiceError(ServiceError):
    pass


class DatabaseError(ServiceError):
    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, status)
        self.code = code

    @property
    def is_conflict(self) -> bool:
        return self.code == UNIQUE_VIOLATION or self.status == 409


def error_message(response: httpx.Response) -> str:
    """Pull the human readable message out of an auth/REST error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"
