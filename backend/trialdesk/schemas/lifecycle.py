# backend/trialdesk/schemas/lifecycle.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import StandardizedModel, StrictRequestModel


class TransitionRequest(StrictRequestModel):
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    note: Optional[str] = None


class StatusChangeOut(StandardizedModel):
    from_status: Optional[str] = None
    to_status: str
    event: str
    actor_id: Optional[str] = None
    occurred_at: datetime


class LifecycleStateResponse(StandardizedModel):
    subject_id: str
    subject_type: str
    status: str
    available_actions: List[str]
    history: List[StatusChangeOut] = Field(default_factory=list)
