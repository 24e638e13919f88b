"""Client-side session bootstrap and profile state."""

from outstocked.client.auth_provider import AuthProvider
from outstocked.client.auth_state import AuthState, AuthStore
from outstocked.client.errors import (
    AuthFlowError,
    InputError,
    NotAuthenticatedError,
    OrganizationConflictError,
    PasswordSetupError,
)

__all__ = [
    "AuthFlowError",
    "AuthProvider",
    "AuthState",
    "AuthStore",
    "InputError",
    "NotAuthenticatedError",
    "OrganizationConflictError",
    "PasswordSetupError",
]
