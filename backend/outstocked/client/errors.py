class AuthFlowError(Exception):
    """A failure meant to be shown to the user as an alert."""

    title = "Error"

    def __init__(self, message: str, title: str | None = None):
        super().__init__(message)
        self.message = message
        if title is not None:
            self.title = title


class InputError(AuthFlowError):
    """Rejected before any call to the backend."""


class NotAuthenticatedError(AuthFlowError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class PasswordSetupError(AuthFlowError):
    pass


class OrganizationConflictError(AuthFlowError):
    title = "Already in Organization"

    def __init__(self) -> None:
        super().__init__(
            "Your account is already associated with another organization. "
            "Please use a different email to join this organization."
        )
