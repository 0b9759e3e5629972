# backend/trialdesk/models/trial_booking.py
"""
Trial booking model.

One row per student per trial. Siblings booked together share the teacher,
the availability slot and the family_group_id. The civil trial_date and
trial_time are the reference-timezone wall clock teachers see, while
start_utc/end_utc are the authoritative instants. Rows are never
hard-deleted; cancellations and drops are status changes.
"""

from sqlalchemy import CheckConstraint, Column, Date, ForeignKey, Index, String, Time
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import AssignmentMethod, TrialStatus
from ..database import Base
from .types import UTCDateTime, now_utc

_STATUS_VALUES = ",".join(f"'{s.value}'" for s in TrialStatus)


class TrialBooking(Base):
    __tablename__ = "trial_bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    student_id = Column(String(26), ForeignKey("students.id"), nullable=False)
    family_group_id = Column(String(26), ForeignKey("family_groups.id"), nullable=True)
    assigned_teacher_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    availability_slot_id = Column(
        String(26),
        ForeignKey("teacher_availability.id", ondelete="SET NULL"),
        nullable=True,
    )
    teacher_type = Column(String(20), nullable=False)
    trial_date = Column(Date, nullable=False)
    trial_time = Column(Time, nullable=False)
    start_utc = Column(UTCDateTime(), nullable=False)
    end_utc = Column(UTCDateTime(), nullable=False)
    client_timezone = Column(String(64), nullable=False)
    status = Column(String(20), nullable=False, default=TrialStatus.PENDING.value)
    assignment_method = Column(
        String(20), nullable=False, default=AssignmentMethod.ROUND_ROBIN.value
    )
    sales_agent_id = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    student = relationship("Student", back_populates="trial_bookings")
    availability_slot = relationship("TeacherAvailabilitySlot")

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_trial_bookings_status"),
        CheckConstraint(
            "assignment_method IN ('round_robin','manual')",
            name="ck_trial_bookings_assignment_method",
        ),
        Index("idx_trial_bookings_student", "student_id"),
        Index("idx_trial_bookings_family", "family_group_id"),
        Index("idx_trial_bookings_teacher_start", "assigned_teacher_id", "start_utc"),
    )

    @property
    def has_session(self) -> bool:
        """A trial session exists once a teacher and a reserved slot are attached."""
        return bool(self.assigned_teacher_id) and bool(self.availability_slot_id)
