# backend/trialdesk/repositories/availability_repository.py
"""
Availability Repository for the trial booking engine.

Owns every query against teacher_availability. The reserve/release pair
is a compare-and-set on is_booked executed as a single conditional UPDATE,
so two sessions racing for the same (teacher, start) pair cannot both see
a row count of one.
"""

from datetime import date, datetime
import logging
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import RoleName, UserStatus
from ..core.exceptions import RepositoryException
from ..models.availability import TeacherAvailabilitySlot
from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityRepository(BaseRepository[TeacherAvailabilitySlot]):
    """Repository for teacher availability slots."""

    def __init__(self, db: Session):
        super().__init__(db, TeacherAvailabilitySlot)

    def get_slot(
        self, teacher_id: str, start_utc: datetime, *, refresh: bool = False
    ) -> Optional[TeacherAvailabilitySlot]:
        try:
            query = self.db.query(TeacherAvailabilitySlot).filter(
                TeacherAvailabilitySlot.teacher_id == teacher_id,
                TeacherAvailabilitySlot.start_utc == start_utc,
            )
            if refresh:
                query = query.populate_existing()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting slot for {teacher_id} at {start_utc}: {str(e)}")
            raise RepositoryException(f"Failed to get availability slot: {str(e)}")

    def find_free_slots(
        self,
        start_utc: datetime,
        end_utc: datetime,
        teacher_types: Optional[Iterable[str]] = None,
    ) -> List[Tuple[TeacherAvailabilitySlot, User]]:
        """
        Open slots exactly covering [start_utc, end_utc) for approved teachers.

        Args:
            start_utc: Slot start instant
            end_utc: Slot end instant
            teacher_types: Teacher types to include, None for all

        Returns:
            (slot, teacher) pairs ordered by teacher id
        """
        try:
            query = (
                self.db.query(TeacherAvailabilitySlot, User)
                .join(User, TeacherAvailabilitySlot.teacher_id == User.id)
                .filter(
                    TeacherAvailabilitySlot.start_utc == start_utc,
                    TeacherAvailabilitySlot.end_utc == end_utc,
                    TeacherAvailabilitySlot.is_booked.is_(False),
                    User.role == RoleName.TEACHER.value,
                    User.status == UserStatus.APPROVED.value,
                )
            )
            if teacher_types is not None:
                query = query.filter(User.teacher_type.in_(list(teacher_types)))
            return [(slot, user) for slot, user in query.order_by(User.id).all()]
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding free slots at {start_utc}: {str(e)}")
            raise RepositoryException(f"Failed to find free slots: {str(e)}")

    def reserve(
        self,
        teacher_id: str,
        start_utc: datetime,
        end_utc: datetime,
        booked_at: datetime,
    ) -> Optional[TeacherAvailabilitySlot]:
        """
        Flip is_booked from false to true for exactly one row.

        Returns:
            The reserved slot, or None if no open row matched
        """
        try:
            updated = (
                self.db.query(TeacherAvailabilitySlot)
                .filter(
                    TeacherAvailabilitySlot.teacher_id == teacher_id,
                    TeacherAvailabilitySlot.start_utc == start_utc,
                    TeacherAvailabilitySlot.end_utc == end_utc,
                    TeacherAvailabilitySlot.is_booked.is_(False),
                )
                .update(
                    {
                        TeacherAvailabilitySlot.is_booked: True,
                        TeacherAvailabilitySlot.booked_at: booked_at,
                        TeacherAvailabilitySlot.updated_at: booked_at,
                    },
                    synchronize_session=False,
                )
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error reserving slot for {teacher_id} at {start_utc}: {str(e)}")
            raise RepositoryException(f"Failed to reserve slot: {str(e)}") from e

        if updated != 1:
            return None
        self.db.flush()
        return self.get_slot(teacher_id, start_utc, refresh=True)

    def release(self, teacher_id: str, start_utc: datetime, released_at: datetime) -> int:
        """Flip is_booked back to false. Returns the number of rows changed."""
        try:
            updated = (
                self.db.query(TeacherAvailabilitySlot)
                .filter(
                    TeacherAvailabilitySlot.teacher_id == teacher_id,
                    TeacherAvailabilitySlot.start_utc == start_utc,
                    TeacherAvailabilitySlot.is_booked.is_(True),
                )
                .update(
                    {
                        TeacherAvailabilitySlot.is_booked: False,
                        TeacherAvailabilitySlot.booked_at: None,
                        TeacherAvailabilitySlot.updated_at: released_at,
                    },
                    synchronize_session=False,
                )
            )
            if updated:
                self.db.flush()
            return int(updated)
        except SQLAlchemyError as e:
            self.logger.error(f"Error releasing slot for {teacher_id} at {start_utc}: {str(e)}")
            raise RepositoryException(f"Failed to release slot: {str(e)}") from e

    def create_slot(
        self,
        teacher_id: str,
        slot_date: date,
        start_utc: datetime,
        end_utc: datetime,
    ) -> TeacherAvailabilitySlot:
        """Insert one open slot; duplicates are the caller's concern."""
        try:
            slot = TeacherAvailabilitySlot(
                teacher_id=teacher_id,
                slot_date=slot_date,
                start_utc=start_utc,
                end_utc=end_utc,
                is_booked=False,
            )
            self.db.add(slot)
            self.db.flush()
            return slot
        except IntegrityError as e:
            self.logger.error(f"Duplicate slot for {teacher_id} at {start_utc}: {str(e)}")
            raise RepositoryException(f"Slot already exists: {str(e)}") from e

    def get_teacher(self, teacher_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == teacher_id).first()
