# backend/trialdesk/models/availability.py
"""
Teacher availability on the half-hour grid.

Each row is one bookable half hour for one teacher, stored as a UTC
interval plus the calendar date of the slot in the reference timezone
(the date the same-day lock is evaluated against). A row moves to
is_booked only through the conditional UPDATE in AvailabilityRepository.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class TeacherAvailabilitySlot(Base):
    __tablename__ = "teacher_availability"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    slot_date = Column(Date, nullable=False)
    start_utc = Column(UTCDateTime(), nullable=False)
    end_utc = Column(UTCDateTime(), nullable=False)
    is_booked = Column(Boolean, nullable=False, default=False)
    booked_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    teacher = relationship("User", back_populates="availability_slots")

    __table_args__ = (
        UniqueConstraint("teacher_id", "start_utc", name="uq_teacher_availability_teacher_start"),
        CheckConstraint("end_utc > start_utc", name="ck_teacher_availability_interval"),
        Index("idx_teacher_availability_start_free", "start_utc", "is_booked"),
        Index("idx_teacher_availability_teacher_date", "teacher_id", "slot_date"),
    )

    def __repr__(self) -> str:
        state = "booked" if self.is_booked else "open"
        return f"<TeacherAvailabilitySlot {self.teacher_id} {self.start_utc.isoformat()} {state}>"
