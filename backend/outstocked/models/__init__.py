"""Database models."""

from outstocked.models.inventory import (
    InventoryItem,
    InventoryRequest,
    ItemAssignment,
    Location,
    LocationHistory,
    LocationManager,
)
from outstocked.models.organization import Organization
from outstocked.models.profile import UserProfile

__all__ = [
    "Organization",
    "UserProfile",
    "InventoryItem",
    "InventoryRequest",
    "ItemAssignment",
    "Location",
    "LocationHistory",
    "LocationManager",
]
