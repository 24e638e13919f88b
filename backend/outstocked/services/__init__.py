"""Service layer for business logic."""

from outstocked.services.dashboard_service import DashboardService
from outstocked.services.invite_service import InviteService
from outstocked.services.location_service import LocationService
from outstocked.services.profile_service import ProfileService
from outstocked.services.request_service import RequestService

__all__ = [
    "DashboardService",
    "InviteService",
    "LocationService",
    "ProfileService",
    "RequestService",
]
