"""Which screen stack is reachable for a given auth state."""

from enum import Enum
from typing import Optional

from outstocked.client.auth_state import AuthState


class Route(str, Enum):
    LOGIN = "/(auth)/login"
    REGISTER = "/(auth)/register"
    INVITE = "/(auth)/invite"
    SET_PASSWORD = "/(auth)/set-password"
    TABS = "/(app)/(tabs)"
    ADMIN = "/(app)/(tabs)/admin"
    MY_LOCATIONS = "/(app)/(tabs)/my-locations"


class Tab(str, Enum):
    DASHBOARD = "index"
    INVENTORY = "inventory"
    MY_LOCATIONS = "my-locations"
    ADMIN = "admin"
    PROFILE = "profile"


def entry_route(state: AuthState) -> Optional[Route]:
    """Landing decision. None means keep waiting: nothing is decided before initialization."""
    if not state.initialized:
        return None
    if state.is_authenticated:
        if state.needs_password_setup:
            return Route.SET_PASSWORD
        return Route.TABS
    return Route.LOGIN


def auth_stack_redirect(state: AuthState) -> Optional[Route]:
    # Signed-in users never stay on login/register/invite
    if state.initialized and state.user is not None:
        return Route.TABS
    return None


def set_password_redirect(state: AuthState) -> Optional[Route]:
    if state.user is None:
        return Route.LOGIN
    if not state.needs_password_setup:
        return Route.TABS
    return None


def admin_redirect(state: AuthState) -> Optional[Route]:
    if not state.initialized:
        return None
    if not state.is_admin:
        return Route.TABS
    return None


def visible_tabs(state: AuthState) -> list[Tab]:
    tabs = [Tab.DASHBOARD, Tab.INVENTORY]
    if state.is_admin:
        tabs.append(Tab.ADMIN)
    else:
        tabs.append(Tab.MY_LOCATIONS)
    tabs.append(Tab.PROFILE)
    return tabs
