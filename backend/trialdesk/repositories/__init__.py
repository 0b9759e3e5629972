"""
Repository layer for the trial booking engine.

Repositories own data access only; services own transactions.
"""

from .assignment_repository import AssignmentRepository
from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .factory import RepositoryFactory
from .family_repository import FamilyRepository
from .follow_up_repository import FollowUpRepository, StatusChangeRepository
from .package_repository import FamilySelectionRepository, PackageRepository, PaymentLinkRepository
from .trial_booking_repository import TrialBookingRepository

__all__ = [
    "AssignmentRepository",
    "AvailabilityRepository",
    "BaseRepository",
    "FamilyRepository",
    "FamilySelectionRepository",
    "FollowUpRepository",
    "PackageRepository",
    "PaymentLinkRepository",
    "RepositoryFactory",
    "StatusChangeRepository",
    "TrialBookingRepository",
]
