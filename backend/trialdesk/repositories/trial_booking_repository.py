# backend/trialdesk/repositories/trial_booking_repository.py
"""
Trial Booking Repository.

Bookings are never deleted; status moves are bulk updates over every
booking belonging to a subject (one student, or every member of a family).
"""

from datetime import datetime
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.trial_booking import TrialBooking
from .base_repository import BaseRepository


class TrialBookingRepository(BaseRepository[TrialBooking]):
    def __init__(self, db: Session):
        super().__init__(db, TrialBooking)

    def list_for_student(self, student_id: str) -> List[TrialBooking]:
        return (
            self.db.query(TrialBooking)
            .filter(TrialBooking.student_id == student_id)
            .order_by(TrialBooking.created_at)
            .all()
        )

    def list_for_family(self, family_group_id: str) -> List[TrialBooking]:
        return (
            self.db.query(TrialBooking)
            .filter(TrialBooking.family_group_id == family_group_id)
            .order_by(TrialBooking.student_id)
            .all()
        )

    def set_status(self, bookings: List[TrialBooking], status: str, updated_at: datetime) -> None:
        try:
            for booking in bookings:
                booking.status = status
                booking.updated_at = updated_at
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating trial booking status: {str(e)}")
            raise RepositoryException(f"Failed to update trial bookings: {str(e)}") from e
