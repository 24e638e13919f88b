"""
Process-wide auth state and its single mutation entry point.

Every change goes through ``AuthStore.dispatch``. Actions that change who is
signed in bump the store version; results computed for an older version are
rejected, so a slow session fetch or profile load can never overwrite what a
newer sign-in, sign-out or timeout already decided. Profile results for the
same session are last-write-wins.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Optional, Union

from outstocked.schemas.auth import AuthUser, Session
from outstocked.schemas.profile import OrganizationRead, ProfileRead

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    session: Optional[Session] = None
    user: Optional[AuthUser] = None
    profile: Optional[ProfileRead] = None
    organization: Optional[OrganizationRead] = None
    initialized: bool = False
    needs_password_setup: bool = False

    @property
    def is_admin(self) -> bool:
        return self.profile is not None and self.profile.role == "admin"

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


# Actions


@dataclass(frozen=True)
class SessionRestored:
    """Result of the startup session fetch."""

    session: Optional[Session]


@dataclass(frozen=True)
class InitializationForced:
    """The startup safety timer fired before the session fetch finished."""


@dataclass(frozen=True)
class SignedIn:
    """SIGNED_IN or TOKEN_REFRESHED."""

    session: Session


@dataclass(frozen=True)
class SignedOut:
    pass


@dataclass(frozen=True)
class ProfileResolved:
    profile: ProfileRead
    organization: Optional[OrganizationRead]


@dataclass(frozen=True)
class PasswordSetupRequired:
    pass


@dataclass(frozen=True)
class PasswordSetupCleared:
    pass


AuthAction = Union[
    SessionRestored,
    InitializationForced,
    SignedIn,
    SignedOut,
    ProfileResolved,
    PasswordSetupRequired,
    PasswordSetupCleared,
]

SESSION_ACTIONS = (SessionRestored, InitializationForced, SignedIn, SignedOut)


def reduce(state: AuthState, action: AuthAction) -> AuthState:
    if isinstance(action, SessionRestored):
        if action.session is None:
            return AuthState(initialized=True)
        return AuthState(session=action.session, user=action.session.user, initialized=True)

    if isinstance(action, InitializationForced):
        return replace(state, initialized=True)

    if isinstance(action, SignedIn):
        same_user = state.user is not None and state.user.id == action.session.user.id
        if same_user:
            return replace(
                state, session=action.session, user=action.session.user, initialized=True
            )
        # A different identity must not inherit the previous profile
        return AuthState(session=action.session, user=action.session.user, initialized=True)

    if isinstance(action, SignedOut):
        return AuthState(initialized=True)

    if isinstance(action, ProfileResolved):
        return replace(
            state,
            profile=action.profile,
            organization=action.organization,
            needs_password_setup=False,
        )

    if isinstance(action, PasswordSetupRequired):
        return replace(state, profile=None, organization=None, needs_password_setup=True)

    if isinstance(action, PasswordSetupCleared):
        return replace(state, needs_password_setup=False)

    raise TypeError(f"Unknown auth action: {action!r}")


Listener = Callable[[AuthState], None]


class AuthStore:
    def __init__(self, state: Optional[AuthState] = None):
        self._state = state or AuthState()
        self._version = 0
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def version(self) -> int:
        return self._version

    def dispatch(self, action: AuthAction, expected_version: Optional[int] = None) -> bool:
        """
        Apply an action.
        Returns False and leaves state untouched when ``expected_version`` is
        given and the store has moved on since it was read.
        """
        if expected_version is not None and expected_version != self._version:
            logger.debug(
                "Dropping stale %s (version %s, current %s)",
                type(action).__name__,
                expected_version,
                self._version,
            )
            return False

        if isinstance(action, SESSION_ACTIONS):
            self._version += 1

        new_state = reduce(self._state, action)
        if new_state != self._state:
            self._state = new_state
            for listener in list(self._listeners):
                try:
                    listener(new_state)
                except Exception:
                    logger.exception("Auth state listener failed")
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
