# backend/trialdesk/services/availability_service.py
"""
Availability Service for the trial booking engine.

Answers "which teachers are free for this half hour" and owns the only
mutation that can mark a slot booked. Two rules hold everywhere:

1. Reservation is a compare-and-set on is_booked; exactly one caller wins.
2. The same-day lock: a slot dated "today" in the teacher's reference
   timezone cannot be opened, closed, reserved or released. "Today" is read
   from the clock on every call, so the lock lifts as soon as the reference
   date advances.

reserve() and release() run inside the caller's transaction and never
commit; open_slots() and close_slot() are complete units of work.
"""

from datetime import date, datetime, timedelta
import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import ANY_TEACHER_TYPE_FILTERS, RoleName, TeacherType
from ..core.exceptions import (
    AlreadyBookedException,
    ConflictException,
    NotFoundException,
    SlotLockedException,
    ValidationException,
)
from ..core.slot_lock import slot_lock
from ..models.availability import TeacherAvailabilitySlot
from ..models.user import User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService, Clock
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


def teacher_types_for_filter(teacher_type: Optional[str]) -> Optional[List[str]]:
    """
    Teacher types matched by a search filter.

    'mixed' (or 'any') matches every teacher; any other type matches that type
    plus mixed teachers, who take students of every kind.

    Returns:
        The types to include, or None for no restriction
    """
    if teacher_type is None:
        return None
    normalized = teacher_type.strip().lower()
    if normalized in ANY_TEACHER_TYPE_FILTERS:
        return None
    valid = {t.value for t in TeacherType}
    if normalized not in valid:
        raise ValidationException(
            f"Unknown teacher type: {teacher_type!r}",
            code="INVALID_TEACHER_TYPE",
            details={"teacher_type": teacher_type, "allowed": sorted(valid | {"any"})},
        )
    return [normalized, TeacherType.MIXED.value]


class AvailabilityService(BaseService):
    """Service for teacher availability and slot reservation."""

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        super().__init__(db, clock)
        self.repository = RepositoryFactory.create_availability_repository(db)

    # Queries

    def reference_zone_for(self, teacher: Optional[User]) -> str:
        if teacher is not None and teacher.timezone:
            return teacher.timezone
        return settings.reference_timezone

    def is_locked(
        self, teacher_id: str, slot_date: date, reference_zone: Optional[str] = None
    ) -> bool:
        """True if slot_date is today in the teacher's reference timezone right now."""
        if reference_zone is None:
            reference_zone = self.reference_zone_for(self.repository.get_teacher(teacher_id))
        return slot_date == TimezoneService.today_in(reference_zone, self.now())

    def _slot_locked(self, slot: TeacherAvailabilitySlot, teacher: Optional[User]) -> bool:
        return self.is_locked(slot.teacher_id, slot.slot_date, self.reference_zone_for(teacher))

    def find_free_slots(
        self,
        start_utc: datetime,
        end_utc: datetime,
        teacher_type: Optional[str],
    ) -> List[Tuple[TeacherAvailabilitySlot, User]]:
        """Open, unlocked slots covering [start_utc, end_utc) for qualifying teachers."""
        types = teacher_types_for_filter(teacher_type)
        pairs = self.repository.find_free_slots(start_utc, end_utc, types)
        return [(slot, teacher) for slot, teacher in pairs if not self._slot_locked(slot, teacher)]

    @BaseService.measure_operation("find_free")
    def find_free(
        self, start_utc: datetime, end_utc: datetime, teacher_type: Optional[str]
    ) -> List[str]:
        """Teacher ids free for exactly [start_utc, end_utc), ordered by id."""
        return [teacher.id for _, teacher in self.find_free_slots(start_utc, end_utc, teacher_type)]

    # Mutations inside the caller's transaction

    def _require_unlocked(self, slot: TeacherAvailabilitySlot) -> None:
        teacher = self.repository.get_teacher(slot.teacher_id)
        zone = self.reference_zone_for(teacher)
        if self.is_locked(slot.teacher_id, slot.slot_date, zone):
            raise SlotLockedException(slot.teacher_id, slot.slot_date, zone)

    def reserve(self, teacher_id: str, start_utc: datetime, end_utc: datetime) -> TeacherAvailabilitySlot:
        """
        Atomically mark the teacher's slot booked.

        Does not commit; the reservation lives or dies with the caller's
        transaction.

        Raises:
            SlotLockedException: The slot is dated today in the reference zone
            AlreadyBookedException: Another caller won, or the slot no longer exists
        """
        slot = self.repository.get_slot(teacher_id, start_utc)
        if slot is None:
            prometheus_metrics.record_slot_reservation("missing")
            raise AlreadyBookedException(teacher_id, start_utc)
        try:
            self._require_unlocked(slot)
        except SlotLockedException:
            prometheus_metrics.record_slot_reservation("locked")
            raise

        with slot_lock(teacher_id, start_utc) as acquired:
            if not acquired:
                prometheus_metrics.record_slot_reservation("already_booked")
                raise AlreadyBookedException(teacher_id, start_utc)
            reserved = self.repository.reserve(teacher_id, start_utc, end_utc, self.now())

        if reserved is None:
            prometheus_metrics.record_slot_reservation("already_booked")
            self.logger.info(
                "Slot reservation lost",
                extra={"teacher_id": teacher_id, "start_utc": start_utc.isoformat()},
            )
            raise AlreadyBookedException(teacher_id, start_utc)

        prometheus_metrics.record_slot_reservation("reserved")
        self.log_operation("reserve", teacher_id=teacher_id, start_utc=start_utc.isoformat())
        return reserved

    def release(self, teacher_id: str, start_utc: datetime) -> Optional[TeacherAvailabilitySlot]:
        """
        Return a reserved slot to the open pool. Does not commit.

        Raises:
            SlotLockedException: The slot is dated today in the reference zone
        """
        slot = self.repository.get_slot(teacher_id, start_utc)
        if slot is None:
            return None
        self._require_unlocked(slot)
        self.repository.release(teacher_id, start_utc, self.now())
        self.log_operation("release", teacher_id=teacher_id, start_utc=start_utc.isoformat())
        return self.repository.get_slot(teacher_id, start_utc, refresh=True)

    # Teacher availability maintenance

    @BaseService.measure_operation("open_slots")
    def open_slots(
        self,
        teacher_id: str,
        local_date: date,
        hours: Sequence[float],
        zone: Optional[str] = None,
    ) -> List[TeacherAvailabilitySlot]:
        """
        Open half-hour slots starting at each local hour on local_date.

        Already-open hours are returned unchanged, so repeating a request is
        harmless.
        """
        teacher = self.repository.get_teacher(teacher_id)
        if teacher is None or teacher.role != RoleName.TEACHER.value:
            raise NotFoundException(f"Teacher {teacher_id} not found", code="TEACHER_NOT_FOUND")

        reference_zone = self.reference_zone_for(teacher)
        zone_id = TimezoneService.resolve_zone(zone or reference_zone)
        slot_length = timedelta(minutes=settings.slot_minutes)

        planned = []
        for hour in sorted(set(hours)):
            if (hour * 60) % settings.slot_minutes:
                raise ValidationException(
                    f"Hour {hour} is not aligned to the {settings.slot_minutes}-minute grid",
                    code="UNALIGNED_SLOT",
                    details={"hour": hour},
                )
            start_utc = TimezoneService.to_utc(local_date, hour, zone_id)
            slot_date, _ = TimezoneService.from_utc(start_utc, reference_zone)
            if self.is_locked(teacher_id, slot_date, reference_zone):
                raise SlotLockedException(teacher_id, slot_date, reference_zone)
            planned.append((slot_date, start_utc, start_utc + slot_length))

        with self.transaction():
            slots = []
            for slot_date, start_utc, end_utc in planned:
                existing = self.repository.get_slot(teacher_id, start_utc)
                if existing is not None:
                    slots.append(existing)
                    continue
                slots.append(self.repository.create_slot(teacher_id, slot_date, start_utc, end_utc))

        self.log_operation(
            "open_slots", teacher_id=teacher_id, local_date=str(local_date), count=len(slots)
        )
        return slots

    @BaseService.measure_operation("close_slot")
    def close_slot(self, slot_id: str) -> None:
        slot = self.repository.get_by_id(slot_id)
        if slot is None:
            raise NotFoundException(f"Availability slot {slot_id} not found", code="SLOT_NOT_FOUND")
        if slot.is_booked:
            raise ConflictException(
                "A booked slot cannot be closed; reschedule or cancel the trial first",
                code="SLOT_BOOKED",
                details={"slot_id": slot_id},
            )
        self._require_unlocked(slot)

        with self.transaction():
            self.repository.delete(slot_id)

        self.log_operation("close_slot", slot_id=slot_id, teacher_id=slot.teacher_id)
