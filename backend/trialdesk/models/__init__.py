"""
Database models for the trial booking engine.

- Staff users (teachers carry a teacher_type)
- Teacher availability on the half-hour grid
- Students, family groups and their trial bookings
- Round-robin assignment statistics
- Packages, family package selections and payment links
- Follow-ups and status history
"""

from .assignment import TeacherAssignmentStat
from .availability import TeacherAvailabilitySlot
from .follow_up import FollowUp, StatusChange
from .payment import FamilyPackageSelection, Package, PaymentLinkRecord
from .student import FamilyGroup, Student
from .trial_booking import TrialBooking
from .user import User

__all__ = [
    "FamilyGroup",
    "FamilyPackageSelection",
    "FollowUp",
    "Package",
    "PaymentLinkRecord",
    "StatusChange",
    "Student",
    "TeacherAssignmentStat",
    "TeacherAvailabilitySlot",
    "TrialBooking",
    "User",
]
