# backend/trialdesk/repositories/factory.py
"""
Repository Factory for the trial booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .assignment_repository import AssignmentRepository
    from .availability_repository import AvailabilityRepository
    from .family_repository import FamilyRepository
    from .follow_up_repository import FollowUpRepository, StatusChangeRepository
    from .package_repository import (
        FamilySelectionRepository,
        PackageRepository,
        PaymentLinkRepository,
    )
    from .trial_booking_repository import TrialBookingRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability operations."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_assignment_repository(db: Session) -> "AssignmentRepository":
        """Create repository for round-robin statistics."""
        from .assignment_repository import AssignmentRepository

        return AssignmentRepository(db)

    @staticmethod
    def create_trial_booking_repository(db: Session) -> "TrialBookingRepository":
        from .trial_booking_repository import TrialBookingRepository

        return TrialBookingRepository(db)

    @staticmethod
    def create_family_repository(db: Session) -> "FamilyRepository":
        from .family_repository import FamilyRepository

        return FamilyRepository(db)

    @staticmethod
    def create_package_repository(db: Session) -> "PackageRepository":
        from .package_repository import PackageRepository

        return PackageRepository(db)

    @staticmethod
    def create_family_selection_repository(db: Session) -> "FamilySelectionRepository":
        from .package_repository import FamilySelectionRepository

        return FamilySelectionRepository(db)

    @staticmethod
    def create_payment_link_repository(db: Session) -> "PaymentLinkRepository":
        from .package_repository import PaymentLinkRepository

        return PaymentLinkRepository(db)

    @staticmethod
    def create_follow_up_repository(db: Session) -> "FollowUpRepository":
        from .follow_up_repository import FollowUpRepository

        return FollowUpRepository(db)

    @staticmethod
    def create_status_change_repository(db: Session) -> "StatusChangeRepository":
        from .follow_up_repository import StatusChangeRepository

        return StatusChangeRepository(db)
