# backend/trialdesk/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import get_actor, get_optional_actor
from .database import get_db
from .services import (
    get_availability_service,
    get_booking_service,
    get_family_payment_service,
    get_follow_up_service,
    get_lifecycle_service,
    get_payment_link_client,
    get_slot_search_service,
)

__all__ = [
    # Auth
    "get_actor",
    "get_optional_actor",
    # Database
    "get_db",
    # Services
    "get_availability_service",
    "get_booking_service",
    "get_family_payment_service",
    "get_follow_up_service",
    "get_lifecycle_service",
    "get_payment_link_client",
    "get_slot_search_service",
]
