# backend/trialdesk/schemas/booking.py
"""
Trial booking request and result schemas.

Family and individual bookings share one request shape: one student is an
individual booking, several (or is_multi_student=True) form a family.
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import Field, model_validator

from ..core.enums import AssignmentMethod, Platform, TeacherType
from .base import StandardizedModel, StrictRequestModel


class StudentIn(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=200)
    age: Optional[int] = Field(default=None, ge=3, le=100)
    notes: Optional[str] = None


class ContactIn(StrictRequestModel):
    """Parent (family) or student (individual) contact details."""

    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=5, max_length=40)
    country: Optional[str] = None
    platform: Platform = Platform.ZOOM
    notes: Optional[str] = None


class SlotSelection(StrictRequestModel):
    """
    The slot the agent picked: either the group they saw (teacher_ids) or one
    explicit teacher.
    """

    start_utc: datetime
    end_utc: datetime
    teacher_ids: List[str] = Field(default_factory=list)
    teacher_id: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "SlotSelection":
        if not self.teacher_ids and not self.teacher_id:
            raise ValueError("Either teacher_ids or teacher_id is required")
        if self.start_utc.tzinfo is None or self.end_utc.tzinfo is None:
            raise ValueError("start_utc and end_utc must be timezone-aware")
        if self.end_utc <= self.start_utc:
            raise ValueError("end_utc must be after start_utc")
        return self

    @property
    def is_manual(self) -> bool:
        return self.teacher_id is not None


class BookingRequest(StrictRequestModel):
    students: List[StudentIn] = Field(..., min_length=1, max_length=10)
    contact: ContactIn
    client_timezone: str
    teacher_type: str = TeacherType.MIXED.value
    slot: SlotSelection
    is_multi_student: Optional[bool] = None

    @property
    def multi_student(self) -> bool:
        return len(self.students) > 1 or bool(self.is_multi_student)


class RescheduleRequest(StrictRequestModel):
    slot: SlotSelection
    client_timezone: Optional[str] = None
    teacher_type: Optional[str] = None


class TrialBookingOut(StandardizedModel):
    id: str
    student_id: str
    family_group_id: Optional[str] = None
    assigned_teacher_id: str
    trial_date: date
    trial_time: time
    start_utc: datetime
    end_utc: datetime
    status: str


class BookingResult(StandardizedModel):
    subject_id: str
    family_group_id: Optional[str] = None
    family_unique_id: Optional[str] = None
    student_ids: List[str]
    student_unique_ids: List[str]
    bookings: List[TrialBookingOut]
    teacher_id: str
    teacher_name: str
    start_utc: datetime
    end_utc: datetime
    status: str
    assignment_method: AssignmentMethod
    client_time_display: str
    reference_time_display: str
