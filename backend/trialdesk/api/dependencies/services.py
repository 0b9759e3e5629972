# backend/trialdesk/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected. Every service built
for one request shares that request's session, so a booking and the
lifecycle rows it writes commit together.
"""

from functools import lru_cache
import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from ...integrations.payment_link_client import NullPaymentLinkClient, PaymentLinkClient
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.family_payment_service import FamilyPaymentService
from ...services.follow_up_service import FollowUpService
from ...services.round_robin import RoundRobinAssigner
from ...services.slot_search_service import SlotSearchService
from ...services.status_lifecycle import LifecycleService
from .database import get_db

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_payment_link_client() -> PaymentLinkClient:
    """Payment provider client; the null client until a provider is wired in."""
    logger.info("No payment provider configured; payment links use the null client")
    return NullPaymentLinkClient()


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_lifecycle_service(db: Session = Depends(get_db)) -> LifecycleService:
    return LifecycleService(db)


def get_slot_search_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SlotSearchService:
    return SlotSearchService(db, availability_service=availability_service)


def get_booking_service(
    db: Session = Depends(get_db),
    availability_service: AvailabilityService = Depends(get_availability_service),
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> BookingService:
    """
    Get BookingService instance.

    Args:
        db: Database session
        availability_service: Slot reservation service sharing the session
        lifecycle_service: Status lifecycle sharing the session

    Returns:
        BookingService instance
    """
    return BookingService(
        db,
        availability_service=availability_service,
        assigner=RoundRobinAssigner(db),
        lifecycle_service=lifecycle_service,
    )


def get_family_payment_service(
    db: Session = Depends(get_db),
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
    payment_client: PaymentLinkClient = Depends(get_payment_link_client),
) -> FamilyPaymentService:
    return FamilyPaymentService(db, payment_client=payment_client, lifecycle_service=lifecycle_service)


def get_follow_up_service(
    db: Session = Depends(get_db),
    lifecycle_service: LifecycleService = Depends(get_lifecycle_service),
) -> FollowUpService:
    return FollowUpService(db, lifecycle_service=lifecycle_service)
