# backend/trialdesk/core/enums.py
"""
Core enums for the trial booking engine.

String-valued enums so they persist as plain strings and serialize
directly in API responses.
"""

from enum import Enum
from typing import FrozenSet


class RoleName(str, Enum):
    """Staff roles supplied by the identity provider."""

    ADMIN = "admin"
    SALES = "sales"
    TEACHER = "teacher"
    SUPERVISOR = "supervisor"


class UserStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TeacherType(str, Enum):
    """Closed set of teacher specialisations."""

    KIDS = "kids"
    ADULT = "adult"
    MIXED = "mixed"
    EXPERT = "expert"


# Search filter values that match every teacher type
ANY_TEACHER_TYPE_FILTERS: FrozenSet[str] = frozenset({TeacherType.MIXED.value, "any"})


class Platform(str, Enum):
    ZOOM = "zoom"
    GOOGLE_MEET = "google-meet"


class TrialStatus(str, Enum):
    """Lifecycle states of a student or family record."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    TRIAL_COMPLETED = "trial-completed"
    TRIAL_GHOSTED = "trial-ghosted"
    FOLLOW_UP = "follow-up"
    AWAITING_PAYMENT = "awaiting-payment"
    PAID = "paid"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    DROPPED = "dropped"


class LifecycleEvent(str, Enum):
    """Events that drive the status lifecycle."""

    TEACHER_CONFIRMS = "teacher_confirms"
    TRIAL_COMPLETED = "trial_completed"
    TRIAL_GHOSTED = "trial_ghosted"
    RECONFIRM = "reconfirm"
    SCHEDULE_FOLLOW_UP = "schedule_follow_up"
    CREATE_PAYMENT_LINK = "create_payment_link"
    FOLLOW_UP_READY = "follow_up_ready"
    FOLLOW_UP_NOT_INTERESTED = "follow_up_not_interested"
    PAYMENT_RECEIVED = "payment_received"
    RETRACT_PAYMENT_LINK = "retract_payment_link"
    REGISTRATION_COMPLETED = "registration_completed"
    PACKAGE_EXPIRED = "package_expired"
    CANCEL = "cancel"
    DROP = "drop"
    RESCHEDULE = "reschedule"


class AssignmentMethod(str, Enum):
    ROUND_ROBIN = "round_robin"
    MANUAL = "manual"


class FollowUpReason(str, Enum):
    PAYMENT_DELAY = "payment-delay"
    NEEDS_CONSULTATION = "needs-consultation"
    QUESTIONS = "questions"
    PRICE_NEGOTIATION = "price-negotiation"
    FAMILY_DECISION = "family-decision"
    TECHNICAL_ISSUES = "technical-issues"
    OTHER = "other"


class FollowUpOutcome(str, Enum):
    READY = "ready"
    NOT_INTERESTED = "not_interested"


class PaymentLinkStatus(str, Enum):
    PENDING = "pending"
    CLICKED = "clicked"
    EXPIRED = "expired"
    PAID = "paid"
