# backend/trialdesk/schemas/follow_up.py
from datetime import datetime
from typing import Optional

from pydantic import field_validator

from ..core.enums import FollowUpOutcome, FollowUpReason
from .base import StandardizedModel, StrictRequestModel


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("scheduled_at_utc must be timezone-aware")
    return value


class FollowUpCreate(StrictRequestModel):
    subject_id: str
    scheduled_at_utc: datetime
    reason: FollowUpReason
    notes: Optional[str] = None

    @field_validator("scheduled_at_utc")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)


class FollowUpReschedule(StrictRequestModel):
    scheduled_at_utc: datetime

    @field_validator("scheduled_at_utc")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)


class FollowUpComplete(StrictRequestModel):
    outcome: FollowUpOutcome
    notes: Optional[str] = None


class FollowUpOut(StandardizedModel):
    id: str
    subject_id: str
    subject_type: str
    scheduled_at_utc: datetime
    reason: str
    notes: Optional[str] = None
    completed: bool
    completed_at: Optional[datetime] = None
    outcome: Optional[str] = None
    sales_agent_id: Optional[str] = None
