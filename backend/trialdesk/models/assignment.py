# backend/trialdesk/models/assignment.py
"""
Persisted round-robin fairness state.

last_assignment_seq is a global monotonic counter: the teacher with the
smallest value (or none at all) is next in line. Updated in the same
transaction as the slot reservation it records.
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, String

from ..database import Base
from .types import UTCDateTime, now_utc


class TeacherAssignmentStat(Base):
    __tablename__ = "teacher_assignment_stats"

    teacher_id = Column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    teacher_type = Column(String(20), nullable=False)
    last_assignment_seq = Column(Integer, nullable=True)
    last_assigned_at = Column(UTCDateTime(), nullable=True)
    assignment_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(UTCDateTime(), nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (Index("idx_assignment_stats_seq", "last_assignment_seq"),)
