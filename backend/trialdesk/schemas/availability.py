# backend/trialdesk/schemas/availability.py
"""
Availability and slot search schemas.

SlotCandidate and SlotGroup are ephemeral search results; they are never
persisted. A SlotGroup travels back in the booking request as the set of
teacher ids the agent saw.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator

from .base import StandardizedModel, StrictRequestModel


class SlotCandidate(StandardizedModel):
    teacher_id: str
    teacher_name: str
    teacher_type: str
    start_utc: datetime
    end_utc: datetime
    client_time_display: str
    reference_time_display: str
    client_zone_label: Optional[str] = None


class SlotGroup(StandardizedModel):
    start_utc: datetime
    end_utc: datetime
    members: List[SlotCandidate]
    client_time_display: str
    reference_time_display: str
    teacher_count: int
    display_label: str

    @property
    def teacher_ids(self) -> List[str]:
        return [member.teacher_id for member in self.members]


class SlotSearchResponse(StandardizedModel):
    requested_date: date
    client_timezone: str
    teacher_type: str
    groups: List[SlotGroup]
    total_groups: int


class OpenSlotsRequest(StrictRequestModel):
    """Open half-hour slots for a teacher on one local date."""

    teacher_id: str
    local_date: date
    hours: List[float] = Field(..., min_length=1, max_length=48)
    timezone: Optional[str] = Field(
        default=None, description="Zone the hours are expressed in (defaults to the teacher's)"
    )

    @field_validator("hours")
    @classmethod
    def check_half_hour_aligned(cls, value: List[float]) -> List[float]:
        for hour in value:
            if (hour * 2) != int(hour * 2):
                raise ValueError(f"Hour {hour} is not aligned to the half-hour grid")
        return value


class AvailabilitySlotResponse(StandardizedModel):
    id: str
    teacher_id: str
    slot_date: date
    start_utc: datetime
    end_utc: datetime
    is_booked: bool
