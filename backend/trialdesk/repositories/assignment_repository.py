# backend/trialdesk/repositories/assignment_repository.py
"""
Round-robin fairness statistics.
"""

from datetime import datetime
from typing import Dict, Iterable

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import supports_row_locking
from ..models.assignment import TeacherAssignmentStat
from .base_repository import BaseRepository


class AssignmentRepository(BaseRepository[TeacherAssignmentStat]):
    def __init__(self, db: Session):
        super().__init__(db, TeacherAssignmentStat)

    def get_stats(
        self, teacher_ids: Iterable[str], lock: bool = False
    ) -> Dict[str, TeacherAssignmentStat]:
        """
        Stats for the given teachers, keyed by teacher id. Teachers never
        assigned have no row.

        With lock=True the rows stay locked until the caller's transaction
        ends (PostgreSQL only), so concurrent bookings of one group order
        against the same statistics.
        """
        ids = list(teacher_ids)
        if not ids:
            return {}
        try:
            query = self.db.query(TeacherAssignmentStat).filter(TeacherAssignmentStat.teacher_id.in_(ids))
            if lock and supports_row_locking(self.db):
                query = query.with_for_update()
            rows = query.order_by(TeacherAssignmentStat.teacher_id).all()
            return {row.teacher_id: row for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading assignment stats: {str(e)}")
            raise RepositoryException(f"Failed to load assignment stats: {str(e)}")

    def next_sequence(self) -> int:
        current = self.db.query(func.max(TeacherAssignmentStat.last_assignment_seq)).scalar()
        return int(current or 0) + 1

    def record_assignment(
        self, teacher_id: str, teacher_type: str, assigned_at: datetime
    ) -> TeacherAssignmentStat:
        """Stamp the teacher with the next global sequence number. Flushes, never commits."""
        try:
            seq = self.next_sequence()
            stat = self.db.get(TeacherAssignmentStat, teacher_id)
            if stat is None:
                stat = TeacherAssignmentStat(
                    teacher_id=teacher_id,
                    teacher_type=teacher_type,
                    assignment_count=0,
                )
                self.db.add(stat)
            stat.teacher_type = teacher_type
            stat.last_assignment_seq = seq
            stat.last_assigned_at = assigned_at
            stat.assignment_count = (stat.assignment_count or 0) + 1
            self.db.flush()
            return stat
        except SQLAlchemyError as e:
            self.logger.error(f"Error recording assignment for {teacher_id}: {str(e)}")
            raise RepositoryException(f"Failed to record assignment: {str(e)}") from e
