# backend/trialdesk/repositories/follow_up_repository.py
"""
Follow-ups and lifecycle history.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.follow_up import FollowUp, StatusChange
from .base_repository import BaseRepository


class FollowUpRepository(BaseRepository[FollowUp]):
    def __init__(self, db: Session):
        super().__init__(db, FollowUp)

    def get_open_for_subject(self, subject_id: str) -> Optional[FollowUp]:
        return (
            self.db.query(FollowUp)
            .filter(FollowUp.subject_id == subject_id, FollowUp.completed.is_(False))
            .order_by(FollowUp.created_at.desc())
            .first()
        )

    def list_due(self, now: datetime, limit: int = 200) -> List[FollowUp]:
        """Open follow-ups scheduled at or before now, oldest first."""
        return (
            self.db.query(FollowUp)
            .filter(FollowUp.completed.is_(False), FollowUp.scheduled_at_utc <= now)
            .order_by(FollowUp.scheduled_at_utc, FollowUp.id)
            .limit(limit)
            .all()
        )


class StatusChangeRepository(BaseRepository[StatusChange]):
    def __init__(self, db: Session):
        super().__init__(db, StatusChange)

    def history(self, subject_id: str) -> List[StatusChange]:
        return (
            self.db.query(StatusChange)
            .filter(StatusChange.subject_id == subject_id)
            .order_by(StatusChange.occurred_at, StatusChange.id)
            .all()
        )
