# backend/trialdesk/models/student.py
"""
Students and family groups.

A student booked on their own carries their lifecycle status directly. When
several siblings are booked together they share a FamilyGroup, and the
family row holds the status that all of its members move through together.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
import ulid

from ..core.enums import TrialStatus
from ..database import Base
from .types import UTCDateTime, now_utc

_STATUS_VALUES = ",".join(f"'{s.value}'" for s in TrialStatus)


class FamilyGroup(Base):
    __tablename__ = "family_groups"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    unique_id = Column(String(40), nullable=False, unique=True)
    parent_name = Column(String(200), nullable=False)
    phone = Column(String(40), nullable=False)
    country = Column(String(80), nullable=True)
    platform = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    teacher_type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=TrialStatus.PENDING.value)
    currency = Column(String(3), nullable=True)
    currency_locked_at = Column(UTCDateTime(), nullable=True)
    student_count = Column(Integer, nullable=False, default=0)
    assigned_teacher_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    assigned_sales_agent_id = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    students = relationship(
        "Student",
        back_populates="family_group",
        order_by="Student.unique_id",
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_family_groups_status"),
        CheckConstraint("platform IN ('zoom','google-meet')", name="ck_family_groups_platform"),
        Index("idx_family_groups_status", "status"),
    )


class Student(Base):
    __tablename__ = "students"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    unique_id = Column(String(40), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=True)
    phone = Column(String(40), nullable=True)
    country = Column(String(80), nullable=True)
    platform = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=TrialStatus.PENDING.value)
    family_group_id = Column(
        String(26),
        ForeignKey("family_groups.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_sales_agent_id = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    family_group = relationship("FamilyGroup", back_populates="students")
    trial_bookings = relationship("TrialBooking", back_populates="student")

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_VALUES})", name="ck_students_status"),
        CheckConstraint("age IS NULL OR (age >= 3 AND age <= 100)", name="ck_students_age"),
        Index("idx_students_family", "family_group_id"),
    )
