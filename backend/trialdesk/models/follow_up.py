# backend/trialdesk/models/follow_up.py
"""
Sales follow-ups and the append-only status history.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, Index, String, Text
import ulid

from ..database import Base
from .types import UTCDateTime, now_utc


class FollowUp(Base):
    """A scheduled call-back for a student or family that is not ready to pay yet."""

    __tablename__ = "follow_ups"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    subject_id = Column(String(26), nullable=False)
    subject_type = Column(String(10), nullable=False)
    scheduled_at_utc = Column(UTCDateTime(), nullable=False)
    reason = Column(String(40), nullable=False)
    notes = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(UTCDateTime(), nullable=True)
    outcome = Column(String(20), nullable=True)
    sales_agent_id = Column(String(64), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        CheckConstraint(
            "reason IN ('payment-delay','needs-consultation','questions','price-negotiation',"
            "'family-decision','technical-issues','other')",
            name="ck_follow_ups_reason",
        ),
        CheckConstraint(
            "outcome IS NULL OR outcome IN ('ready','not_interested')",
            name="ck_follow_ups_outcome",
        ),
        Index("idx_follow_ups_open_due", "completed", "scheduled_at_utc"),
        Index("idx_follow_ups_subject", "subject_id"),
    )


class StatusChange(Base):
    """Append-only lifecycle transition history."""

    __tablename__ = "status_changes"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    subject_id = Column(String(26), nullable=False)
    subject_type = Column(String(10), nullable=False)
    from_status = Column(String(20), nullable=True)
    to_status = Column(String(20), nullable=False)
    event = Column(String(40), nullable=False)
    actor_id = Column(String(64), nullable=True)
    note = Column(Text, nullable=True)
    occurred_at = Column(UTCDateTime(), nullable=False, default=now_utc)

    __table_args__ = (
        Index("idx_status_changes_subject_occurred", "subject_id", "occurred_at"),
    )
